"""
Stores de solo lectura.

- InventoryStore: listings (modo registros y modo conteo)
- CoverageAreaStore: áreas de cobertura de agentes/compradores

Las implementaciones de Supabase traducen el AST con `postgrest.py`.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from hotsheets.database.postgrest import apply_order, apply_predicate
from hotsheets.database.supabase_client import SupabaseClient, get_supabase_client
from hotsheets.matching.compiler import SortOrder
from hotsheets.matching.predicates import Predicate
from hotsheets.models import CoverageArea

logger = structlog.get_logger()


class InventoryStore(ABC):
    """Inventario de listings."""

    @abstractmethod
    def fetch(self, predicate: Predicate, sort: SortOrder, limit: int) -> list[dict]:
        """
        Devuelve las filas que cumplen el predicado.

        Args:
            predicate: Predicado compilado
            sort: Orden (el store agrega desempate por id ascendente)
            limit: Máximo de filas

        Returns:
            Lista de filas como dict
        """

    @abstractmethod
    def count(self, predicate: Predicate) -> int:
        """Cuenta las filas que cumplen el predicado sin traerlas."""


class CoverageAreaStore(ABC):
    """Áreas de cobertura declaradas."""

    @abstractmethod
    def fetch(self, predicate: Predicate) -> list[dict]:
        """Devuelve las áreas que cumplen el predicado."""

    def owner_ids(self, predicate: Predicate) -> set[str]:
        """Dueños distintos de las áreas que cumplen el predicado."""
        return {
            CoverageArea.model_validate(row).owner_id
            for row in self.fetch(predicate)
            if row.get("agent_id")
        }


class SupabaseInventoryStore(InventoryStore):
    """Inventario sobre la tabla `listings` de Supabase."""

    TABLE = "listings"
    COLUMNS = (
        "id, listing_number, agent_id, address, city, neighborhood, state, "
        "zip_code, price, bedrooms, bathrooms, square_feet, year_built, "
        "total_parking_spaces, lot_size, property_type, status, description, "
        "created_at, updated_at, open_houses"
    )

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client

    def fetch(self, predicate: Predicate, sort: SortOrder, limit: int) -> list[dict]:
        query = self.client.table(self.TABLE).select(self.COLUMNS)
        query = apply_predicate(query, predicate)
        query = apply_order(query, sort).limit(limit)
        response = self.client.execute(query, operation="listings.fetch")
        return response.data or []

    def count(self, predicate: Predicate) -> int:
        # head=True: solo el conteo, sin filas
        query = self.client.table(self.TABLE).select("id", count="exact", head=True)
        query = apply_predicate(query, predicate)
        response = self.client.execute(query, operation="listings.count")
        return response.count or 0


class SupabaseCoverageAreaStore(CoverageAreaStore):
    """Áreas de cobertura sobre `agent_buyer_coverage_areas`."""

    TABLE = "agent_buyer_coverage_areas"
    COLUMNS = "agent_id, state, county, city, neighborhood"
    PAGE_SIZE = 1000

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or get_supabase_client()

    @property
    def client(self) -> SupabaseClient:
        return self._client

    def fetch(self, predicate: Predicate) -> list[dict]:
        rows = self._read_pages(predicate, self.COLUMNS)
        logger.debug("Áreas de cobertura leídas", total=len(rows))
        return rows

    def owner_ids(self, predicate: Predicate) -> set[str]:
        # Solo la columna del dueño: un head count cuenta áreas, no dueños
        rows = self._read_pages(predicate, "agent_id")
        owners = {row["agent_id"] for row in rows if row.get("agent_id")}
        logger.debug("Dueños de cobertura leídos", areas=len(rows), owners=len(owners))
        return owners

    def _read_pages(self, predicate: Predicate, columns: str) -> list[dict]:
        rows: list[dict] = []
        start = 0
        while True:
            query = self.client.table(self.TABLE).select(columns)
            query = apply_predicate(query, predicate)
            query = query.order("id").range(start, start + self.PAGE_SIZE - 1)
            response = self.client.execute(query, operation="coverage.fetch")
            page = response.data or []
            rows.extend(page)
            if len(page) < self.PAGE_SIZE:
                break
            start += self.PAGE_SIZE

        return rows
