"""
Registro de hotsheets.

CRUD de búsquedas guardadas más la re-evaluación bajo demanda:
- current_matches: re-compila el snapshot y consulta el inventario vivo
- new_since_last_delivery: matches actuales que todavía no se enviaron
- mark_delivered: unión atómica de ids enviados (nunca se quitan)

El registro decide QUÉ enviar; el envío en sí es del dispatcher.
"""

from typing import Iterable, Optional

import structlog

from hotsheets.config import get_settings
from hotsheets.errors import ConcurrentEditError, NotFound, ValidationError
from hotsheets.matching.compiler import compile_criteria, compile_sort
from hotsheets.matching.evaluator import MatchEvaluator
from hotsheets.matching.normalizer import RawCriteria, normalize_criteria
from hotsheets.matching.predicates import In, Not, all_of
from hotsheets.models import HotsheetSubscription, Listing

logger = structlog.get_logger()

NAME_MAX_LENGTH = 100


class HotsheetRegistry:
    """
    Registro de hotsheets sobre un HotsheetRepository.

    Las ediciones reemplazan el snapshot completo y llevan chequeo optimista
    de versión: si otra sesión editó antes, se levanta ConcurrentEditError
    en vez de pisar en silencio.
    """

    def __init__(
        self,
        repository=None,
        evaluator: Optional[MatchEvaluator] = None,
        dispatcher=None,
        review_limit: Optional[int] = None,
    ):
        if repository is None:
            from hotsheets.database import HotsheetRepository

            repository = HotsheetRepository()
        self.repository = repository
        self.evaluator = evaluator or MatchEvaluator()
        self.dispatcher = dispatcher
        self.review_limit = review_limit or get_settings().hotsheet_review_limit

    def create(
        self, owner_id: str, name: str, criteria: RawCriteria
    ) -> HotsheetSubscription:
        """
        Crea una hotsheet con un snapshot inmutable del criterio.

        Raises:
            ValidationError: Nombre inválido o criterio que viola invariantes
        """
        snapshot = normalize_criteria(criteria)
        hotsheet = HotsheetSubscription(
            owner_id=owner_id,
            name=_validate_name(name),
            criteria=snapshot,
        )
        row = self.repository.create(hotsheet)
        return HotsheetSubscription.from_db_row(row) if row else hotsheet

    def get(self, hotsheet_id: str) -> HotsheetSubscription:
        """Obtiene una hotsheet o levanta NotFound."""
        row = self.repository.get_by_id(hotsheet_id)
        if not row:
            raise NotFound("Hotsheet", hotsheet_id)
        return HotsheetSubscription.from_db_row(row)

    def list_for_owner(self, owner_id: str) -> list[HotsheetSubscription]:
        """Hotsheets de un usuario."""
        rows = self.repository.get_by_owner(owner_id)
        return [HotsheetSubscription.from_db_row(r) for r in rows]

    def edit(
        self,
        hotsheet_id: str,
        criteria: RawCriteria,
        expected_version: Optional[int] = None,
    ) -> HotsheetSubscription:
        """
        Reemplaza el snapshot completo del criterio.

        Args:
            hotsheet_id: UUID de la hotsheet
            criteria: Criterio nuevo (se normaliza y valida antes de escribir)
            expected_version: Versión que el llamador leyó. Si es None se usa
                la versión actual.

        Raises:
            NotFound: Si la hotsheet no existe
            ConcurrentEditError: Si la versión cambió
        """
        snapshot = normalize_criteria(criteria)
        if expected_version is None:
            expected_version = self.get(hotsheet_id).version

        row = self.repository.replace_criteria(
            hotsheet_id, snapshot.to_document(), expected_version
        )
        if row is None:
            if self.repository.get_by_id(hotsheet_id) is None:
                raise NotFound("Hotsheet", hotsheet_id)
            logger.warning(
                "Edición concurrente de hotsheet",
                hotsheet_id=hotsheet_id,
                expected_version=expected_version,
            )
            raise ConcurrentEditError(hotsheet_id, expected_version)
        return HotsheetSubscription.from_db_row(row)

    def set_active(self, hotsheet_id: str, is_active: bool) -> HotsheetSubscription:
        """Activa o pausa una hotsheet."""
        row = self.repository.set_active(hotsheet_id, is_active)
        if not row:
            raise NotFound("Hotsheet", hotsheet_id)
        return HotsheetSubscription.from_db_row(row)

    def delete(self, hotsheet_id: str) -> None:
        """Borra una hotsheet."""
        if not self.repository.delete(hotsheet_id):
            raise NotFound("Hotsheet", hotsheet_id)

    def current_matches(self, hotsheet_id: str) -> list[Listing]:
        """Matches actuales contra el inventario vivo (nunca cacheados)."""
        return self._matches_for(self.get(hotsheet_id))

    def new_since_last_delivery(self, hotsheet_id: str) -> list[Listing]:
        """
        Matches actuales menos los ya enviados, en el orden de búsqueda.

        Los ids enviados se excluyen en la consulta, antes del límite: si no,
        una hotsheet cuyos primeros N resultados ya se enviaron nunca
        mostraría los siguientes.
        """
        hotsheet = self.get(hotsheet_id)
        fresh = self._matches_for(hotsheet, exclude_ids=hotsheet.delivered_listing_ids)

        logger.info(
            "Hotsheet re-evaluada",
            hotsheet_id=hotsheet_id,
            delivered=len(hotsheet.delivered_listing_ids),
            new=len(fresh),
        )
        return fresh

    def mark_delivered(
        self, hotsheet_id: str, listing_ids: Iterable[str]
    ) -> frozenset[str]:
        """
        Agrega ids al set de enviados (unión, nunca resta).

        Returns:
            El set completo de ids enviados
        """
        ids = _unique(listing_ids)
        if not ids:
            return self.get(hotsheet_id).delivered_listing_ids

        delivered = self.repository.append_delivered(hotsheet_id, ids)
        if delivered is None:
            raise NotFound("Hotsheet", hotsheet_id)
        return frozenset(delivered)

    def deliver(
        self,
        hotsheet_id: str,
        listing_ids: Optional[Iterable[str]] = None,
    ) -> list[str]:
        """
        Envía listings de una hotsheet y los marca como enviados.

        Args:
            hotsheet_id: UUID de la hotsheet
            listing_ids: Selección explícita. None = todos los nuevos.

        Returns:
            Los ids enviados. Si el dispatcher falla no se marca nada.
        """
        if self.dispatcher is None:
            raise RuntimeError("HotsheetRegistry sin dispatcher configurado")

        if listing_ids is None:
            ids = [m.id for m in self.new_since_last_delivery(hotsheet_id)]
        else:
            self.get(hotsheet_id)
            ids = _unique(listing_ids)

        if not ids:
            logger.info("Nada nuevo para enviar", hotsheet_id=hotsheet_id)
            return []

        self.dispatcher.dispatch(hotsheet_id, ids)
        self.mark_delivered(hotsheet_id, ids)
        return ids

    def _matches_for(
        self,
        hotsheet: HotsheetSubscription,
        exclude_ids: Iterable[str] = (),
    ) -> list[Listing]:
        criteria = hotsheet.criteria
        predicate = compile_criteria(criteria, self.evaluator.default_statuses)
        excluded = tuple(sorted(exclude_ids))
        if excluded:
            predicate = all_of(predicate, Not(In("id", excluded)))
        return self.evaluator.find(
            predicate,
            compile_sort(criteria),
            criteria.limit or self.review_limit,
        )


def _validate_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("El nombre de la hotsheet es obligatorio", field="name")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValidationError(
            f"El nombre de la hotsheet supera {NAME_MAX_LENGTH} caracteres",
            field="name",
        )
    return cleaned


def _unique(ids: Iterable[str]) -> list[str]:
    result: list[str] = []
    for listing_id in ids:
        if listing_id and listing_id not in result:
            result.append(listing_id)
    return result
