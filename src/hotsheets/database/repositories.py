"""
Repositorios para operaciones CRUD en Supabase.

Cada repositorio maneja una tabla/entidad específica. Cada escritura es una
sola operación atómica del store.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog

from hotsheets.database.supabase_client import get_supabase_client, SupabaseClient
from hotsheets.models import HotsheetSubscription

logger = structlog.get_logger()


class BaseRepository:
    """Clase base para repositorios."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client


class HotsheetRepository(BaseRepository):
    """Repositorio para hotsheets (búsquedas guardadas)."""

    TABLE = "hot_sheets"
    APPEND_RPC = "append_hot_sheet_deliveries"

    def create(self, hotsheet: HotsheetSubscription) -> dict:
        """
        Inserta una nueva hotsheet.

        Returns:
            El registro insertado con su ID
        """
        data = hotsheet.to_db_dict()
        query = self.client.table(self.TABLE).insert(data)
        response = self.client.execute(query, operation="hot_sheets.create")
        logger.info(
            "Hotsheet creada",
            owner_id=hotsheet.owner_id,
            name=hotsheet.name,
        )
        return response.data[0] if response.data else {}

    def get_by_id(self, hotsheet_id: str) -> Optional[dict]:
        """Obtiene una hotsheet por su UUID."""
        query = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("id", hotsheet_id)
            .limit(1)
        )
        response = self.client.execute(query, operation="hot_sheets.get")
        return response.data[0] if response.data else None

    def get_by_owner(self, owner_id: str) -> list[dict]:
        """Obtiene las hotsheets de un usuario, más nuevas primero."""
        query = (
            self.client.table(self.TABLE)
            .select("*")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
        )
        response = self.client.execute(query, operation="hot_sheets.by_owner")
        return response.data

    def replace_criteria(
        self,
        hotsheet_id: str,
        criteria_document: dict,
        expected_version: int,
    ) -> Optional[dict]:
        """
        Reemplaza el snapshot completo del criterio.

        El update solo aplica si la versión sigue siendo `expected_version`.

        Returns:
            La fila actualizada, o None si no existe o cambió la versión
        """
        data = {
            "criteria": criteria_document,
            "version": expected_version + 1,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        query = (
            self.client.table(self.TABLE)
            .update(data)
            .eq("id", hotsheet_id)
            .eq("version", expected_version)
        )
        response = self.client.execute(query, operation="hot_sheets.replace_criteria")
        if not response.data:
            return None
        logger.info(
            "Criterio de hotsheet reemplazado",
            hotsheet_id=hotsheet_id,
            version=expected_version + 1,
        )
        return response.data[0]

    def set_active(self, hotsheet_id: str, is_active: bool) -> Optional[dict]:
        """Activa o desactiva una hotsheet."""
        query = (
            self.client.table(self.TABLE)
            .update({
                "is_active": is_active,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", hotsheet_id)
        )
        response = self.client.execute(query, operation="hot_sheets.set_active")
        return response.data[0] if response.data else None

    def delete(self, hotsheet_id: str) -> bool:
        """Borra una hotsheet. Devuelve False si no existía."""
        query = self.client.table(self.TABLE).delete().eq("id", hotsheet_id)
        response = self.client.execute(query, operation="hot_sheets.delete")
        deleted = len(response.data or []) > 0
        if deleted:
            logger.info("Hotsheet borrada", hotsheet_id=hotsheet_id)
        return deleted

    def append_delivered(
        self, hotsheet_id: str, listing_ids: list[str]
    ) -> Optional[list[str]]:
        """
        Une `listing_ids` a los ya enviados en una sola operación.

        Usa la función RPC append_hot_sheet_deliveries (ver sql/hot_sheets.sql),
        así dos envíos concurrentes no se pisan.

        Returns:
            El set completo de enviados, o None si la hotsheet no existe
        """
        data = self.client.rpc(
            self.APPEND_RPC,
            {"p_hot_sheet_id": hotsheet_id, "p_listing_ids": listing_ids},
        )
        if data is None:
            return None
        logger.info(
            "Listings marcados como enviados",
            hotsheet_id=hotsheet_id,
            added=len(listing_ids),
            total=len(data),
        )
        return list(data)
