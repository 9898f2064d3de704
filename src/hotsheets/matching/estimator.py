"""
Estimador de destinatarios.

Traduce la parte geográfica de un Criteria a la cantidad aproximada de
agentes/compradores cuya área de cobertura se cruza con el pedido. Sirve
para mostrar "llega a N destinatarios" antes de un envío masivo; no es un
conteo garantizado de entrega.
"""

from dataclasses import dataclass
from typing import Literal, Union

import structlog

from hotsheets.matching.predicates import TRUE, Eq, In, Predicate, all_of, any_of
from hotsheets.models import Criteria, GeoFilter

logger = structlog.get_logger()

EstimateLevel = Literal["city", "state", "all"]


@dataclass
class RecipientEstimate:
    """Resultado de la estimación."""

    count: int
    level: EstimateLevel  # Granularidad usada: city, state o all


class RecipientEstimator:
    """Estimador sobre un CoverageAreaStore."""

    def __init__(self, store=None):
        if store is None:
            from hotsheets.database import SupabaseCoverageAreaStore

            store = SupabaseCoverageAreaStore()
        self.store = store

    def estimate(self, geo: Union[GeoFilter, Criteria]) -> RecipientEstimate:
        """
        Estima destinatarios distintos para una geografía.

        Sin selectores de ciudad/barrio cae a cobertura por estado; sin estado
        tampoco, cuenta todos los dueños de áreas.
        """
        if isinstance(geo, Criteria):
            geo = geo.geo

        predicate, level = coverage_predicate(geo)
        owners = self.store.owner_ids(predicate)

        logger.info(
            "Destinatarios estimados",
            state=geo.state,
            selectors=len(geo.selectors),
            level=level,
            recipients=len(owners),
        )
        return RecipientEstimate(count=len(owners), level=level)


def coverage_predicate(geo: GeoFilter) -> tuple[Predicate, EstimateLevel]:
    """
    Predicado sobre áreas de cobertura.

    - Ciudad sola: cualquier área de esa ciudad, con o sin barrio
    - Ciudad+barrio: áreas de ese barrio o de la ciudad entera
    """
    if not geo.selectors:
        if geo.state:
            return Eq("state", geo.state), "state"
        return TRUE, "all"

    clauses: list[Predicate] = []
    if geo.state:
        clauses.append(Eq("state", geo.state))
    if geo.county:
        clauses.append(any_of(Eq("county", geo.county), Eq("county", None)))

    branches: list[Predicate] = []
    cities = list(dict.fromkeys(s.city for s in geo.city_only))
    if cities:
        branches.append(In("city", tuple(cities)))
    for selector in geo.with_neighborhood:
        branches.append(
            all_of(
                Eq("city", selector.city),
                any_of(
                    Eq("neighborhood", selector.neighborhood),
                    Eq("neighborhood", None),
                ),
            )
        )

    clauses.append(any_of(*branches))
    return all_of(*clauses), "city"
