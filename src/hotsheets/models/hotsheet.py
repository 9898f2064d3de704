"""
Modelo de Hotsheet (búsqueda guardada).

Una hotsheet es un snapshot con nombre de un Criteria, propiedad de un
usuario. El snapshot se toma al crear/editar y nunca se re-deriva del estado
de la UI. `delivered_listing_ids` solo crece.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hotsheets.models.criteria import Criteria


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class HotsheetSubscription(BaseModel):
    """Hotsheet persistida en la tabla `hot_sheets`."""

    model_config = ConfigDict(from_attributes=True)

    # Identificadores
    id: Optional[str] = Field(None, description="UUID generado por Supabase")
    owner_id: str = Field(..., description="FK al usuario dueño")
    name: str = Field(..., description="Nombre visible de la hotsheet")

    # Snapshot del criterio
    criteria: Criteria = Field(default_factory=Criteria)

    # Listings ya enviados (append-only)
    delivered_listing_ids: frozenset[str] = Field(default_factory=frozenset)

    # Estado
    is_active: bool = Field(default=True, description="Hotsheet activa")
    version: int = Field(default=1, ge=1, description="Versión para edición optimista")

    # Metadatos
    created_at: str = Field(default_factory=_utcnow, description="Fecha de creación")
    updated_at: str = Field(default_factory=_utcnow, description="Última edición")

    def to_db_dict(self) -> dict:
        """Convierte a diccionario para inserción en Supabase."""
        return {
            "user_id": self.owner_id,
            "name": self.name,
            "criteria": self.criteria.to_document(),
            "delivered_listing_ids": sorted(self.delivered_listing_ids),
            "is_active": self.is_active,
            "version": self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_db_row(cls, row: dict) -> "HotsheetSubscription":
        """
        Construye desde una fila de Supabase.

        El criterio se lee como documento suelto: campos faltantes o extra
        no rompen, se normalizan igual que lo que manda la UI. Un precio
        invertido guardado por versiones viejas se descarta en vez de fallar.
        """
        from hotsheets.matching.normalizer import normalize_criteria

        return cls(
            id=row.get("id"),
            owner_id=row.get("user_id") or row.get("owner_id"),
            name=row.get("name") or "",
            criteria=normalize_criteria(row.get("criteria"), strict=False),
            delivered_listing_ids=frozenset(row.get("delivered_listing_ids") or []),
            is_active=row.get("is_active", True),
            version=row.get("version") or 1,
            created_at=row.get("created_at") or _utcnow(),
            updated_at=row.get("updated_at") or _utcnow(),
        )
