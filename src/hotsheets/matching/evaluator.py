"""
Evaluador de matches.

Ejecuta un predicado compilado contra el inventario de listings:
- find: registros completos, ordenados y con tope duro
- count: solo el conteo, sin transferir filas
"""

from typing import Optional

import structlog

from hotsheets.config import get_settings
from hotsheets.matching.compiler import SortOrder, compile_criteria, compile_sort
from hotsheets.matching.normalizer import RawCriteria, normalize_criteria
from hotsheets.matching.predicates import Predicate
from hotsheets.models import Listing

logger = structlog.get_logger()


class MatchEvaluator:
    """
    Evaluador sobre un InventoryStore.

    El tope `max_results` acota el costo sin importar qué tan amplio sea el
    predicado. El orden lo pide el llamador; el store desempata por id
    ascendente para que dos evaluaciones del mismo inventario coincidan.
    """

    def __init__(
        self,
        store=None,
        max_results: Optional[int] = None,
        default_statuses: Optional[list[str]] = None,
    ):
        if store is None:
            from hotsheets.database import SupabaseInventoryStore

            store = SupabaseInventoryStore()
        if max_results is None:
            max_results = get_settings().max_results
        if default_statuses is None:
            default_statuses = get_settings().default_statuses

        self.store = store
        self.max_results = max_results
        self.default_statuses = tuple(default_statuses)

    def find(
        self,
        predicate: Predicate,
        sort: Optional[SortOrder] = None,
        limit: Optional[int] = None,
    ) -> list[Listing]:
        """
        Busca listings que cumplen el predicado.

        Args:
            predicate: Predicado compilado
            sort: Orden pedido (default: más nuevos primero)
            limit: Máximo pedido; nunca supera max_results

        Returns:
            Lista de Listing en el orden pedido

        Raises:
            TransientStoreError: Si el store falla de forma transitoria
        """
        sort = sort or SortOrder()
        effective_limit = self.max_results if limit is None else min(limit, self.max_results)
        if effective_limit <= 0:
            return []

        rows = self.store.fetch(predicate, sort, effective_limit)
        listings = [Listing.model_validate(row) for row in rows]

        logger.debug(
            "Listings encontrados",
            total=len(listings),
            limit=effective_limit,
            sort=sort.column,
        )
        return listings

    def count(self, predicate: Predicate) -> int:
        """Cuenta listings que cumplen el predicado."""
        return self.store.count(predicate)

    def compile(self, raw: RawCriteria) -> tuple[Predicate, SortOrder, Optional[int]]:
        """Normaliza y compila con los estados elegibles por defecto."""
        criteria = normalize_criteria(raw)
        predicate = compile_criteria(criteria, self.default_statuses)
        return predicate, compile_sort(criteria), criteria.limit

    def search(self, raw: RawCriteria) -> list[Listing]:
        """Búsqueda completa desde el filtro de la UI."""
        predicate, sort, limit = self.compile(raw)
        return self.find(predicate, sort, limit)

    def count_matches(self, raw: RawCriteria) -> int:
        """Conteo desde el filtro de la UI (ej: "N propiedades coinciden")."""
        predicate, _, _ = self.compile(raw)
        return self.count(predicate)
