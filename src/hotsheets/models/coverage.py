"""
Modelo de Área de Cobertura.

Región geográfica en la que un agente/comprador declaró interés. La tabla
la administra otro módulo; acá solo se lee para estimar destinatarios.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CoverageArea(BaseModel):
    """Fila de `agent_buyer_coverage_areas`."""

    model_config = ConfigDict(
        from_attributes=True, extra="ignore", frozen=True, populate_by_name=True
    )

    owner_id: str = Field(..., alias="agent_id", description="Dueño del área")
    state: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    neighborhood: Optional[str] = None
