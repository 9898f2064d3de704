"""
Modelo de Listing (solo lectura).

Refleja una fila de la tabla `listings` del inventario. Este subsistema no
escribe listings; solo los lee para evaluar criterios.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Listing(BaseModel):
    """Propiedad del inventario vivo."""

    model_config = ConfigDict(from_attributes=True, extra="ignore", frozen=True)

    # Identificadores
    id: str = Field(..., description="UUID generado por Supabase")
    listing_number: Optional[str] = Field(None, description="Número MLS")
    agent_id: Optional[str] = Field(None, description="Agente que publica")

    # Ubicación
    address: Optional[str] = Field(None, description="Dirección (número + calle)")
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    # Datos económicos y físicos
    price: Optional[float] = None
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    square_feet: Optional[float] = None
    year_built: Optional[int] = None
    total_parking_spaces: Optional[int] = None
    lot_size: Optional[float] = None

    # Vocabulario de almacenamiento (ej: "Condominium", no "condo")
    property_type: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None

    # Actividad
    open_houses: Optional[Any] = Field(None, description="Open houses programados (JSON)")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
