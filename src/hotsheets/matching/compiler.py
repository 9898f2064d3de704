"""
Compilador de criterios a predicados.

Traduce un `Criteria` a un AST de predicados (ver `predicates.py`) que
un adaptador de store ejecuta. La compilación es pura: mismo criterio y
mismo `now`, mismo predicado, sin tocar la base.

Política ante datos raros: una cota no numérica o no finita se trata como
ausente. La búsqueda degrada en vez de fallar.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import structlog

from hotsheets.config import DEFAULT_SORT_COLUMN, PROPERTY_TYPE_MAP, SORTABLE_COLUMNS
from hotsheets.matching.predicates import (
    Eq,
    In,
    Like,
    Not,
    Predicate,
    Range,
    all_of,
    any_of,
    negate,
)
from hotsheets.models import Criteria, GeoFilter, KeywordFilter, NumericRange, PriceFilter

logger = structlog.get_logger()

# Dimensión del criterio -> columna de la tabla listings
RANGE_COLUMNS = {
    "beds": "bedrooms",
    "baths": "bathrooms",
    "sqft": "square_feet",
    "year_built": "year_built",
    "parking": "total_parking_spaces",
    "lot_size": "lot_size",
}


@dataclass(frozen=True)
class SortOrder:
    """Orden pedido por el llamador. El desempate por id lo agrega el evaluador."""

    column: str = DEFAULT_SORT_COLUMN
    descending: bool = True


def compile_criteria(
    criteria: Criteria,
    default_statuses: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> Predicate:
    """
    Compila un Criteria a un predicado.

    Args:
        criteria: Criterio ya normalizado
        default_statuses: Estados elegibles si el criterio no filtra por estado
        now: Momento de referencia para las ventanas de días (default: ahora UTC)

    Returns:
        Predicado compuesto. Un criterio vacío (sin default_statuses) da TRUE.
    """
    clauses: list[Optional[Predicate]] = [
        _state_clause(criteria.geo),
        _geo_clause(criteria.geo),
        _price_clause(criteria.price),
        _property_type_clause(criteria.property_types),
        _status_clause(criteria.statuses, default_statuses),
    ]

    for dimension, column in RANGE_COLUMNS.items():
        clauses.append(_range_clause(column, getattr(criteria, dimension)))

    clauses.append(_keyword_clause(criteria.keywords))

    # Dirección
    if criteria.street_number:
        clauses.append(Like("address", criteria.street_number.strip()))
    if criteria.street_name:
        clauses.append(Like("address", criteria.street_name.strip()))
    if criteria.zip_code:
        clauses.append(Like("zip_code", criteria.zip_code.strip(), mode="prefix"))
    if criteria.listing_number:
        clauses.append(Like("listing_number", criteria.listing_number.strip()))

    clauses.extend(_agent_clauses(criteria, now or datetime.now(timezone.utc)))

    return all_of(*[c for c in clauses if c is not None])


def compile_sort(criteria: Criteria) -> SortOrder:
    """Obtiene el orden del criterio; columnas desconocidas caen al default."""
    column = criteria.sort_column or DEFAULT_SORT_COLUMN
    if column not in SORTABLE_COLUMNS:
        logger.warning("Columna de orden desconocida, uso la default", column=column)
        return SortOrder()
    return SortOrder(column=column, descending=criteria.sort_direction != "asc")


def map_property_types(property_types: Iterable[str]) -> tuple[str, ...]:
    """
    Mapea tipos de la UI al vocabulario de la base.

    Los tipos que no están en el diccionario pasan tal cual.
    """
    # TODO: decidir con producto si un tipo sin mapeo debe pasar o loguearse como error
    return tuple(sorted({PROPERTY_TYPE_MAP.get(t, t) for t in property_types}))


def _state_clause(geo: GeoFilter) -> Optional[Predicate]:
    if not geo.state:
        return None
    return Eq("state", geo.state)


def _geo_clause(geo: GeoFilter) -> Optional[Predicate]:
    """
    (city IN ciudades_solas) OR (city = c AND neighborhood = n) OR ...

    Un selector de ciudad sola y uno de ciudad+barrio de la misma ciudad no
    se excluyen: la ciudad sola ya cubre todos sus barrios y el OR lo respeta.

    La comparación es exacta (Eq/In, sensible a mayúsculas): los nombres
    vienen del mismo catálogo de ciudades que carga `listings`, y el
    normalizador solo recorta espacios.
    """
    cities = _unique(s.city for s in geo.city_only)
    branches: list[Predicate] = []

    if cities:
        branches.append(In("city", tuple(cities)))

    for selector in geo.with_neighborhood:
        branches.append(
            all_of(
                Eq("city", selector.city),
                Eq("neighborhood", selector.neighborhood),
            )
        )

    if not branches:
        return None
    return any_of(*branches)


def _price_clause(price: PriceFilter) -> Optional[Predicate]:
    # Los flags has_no_min/has_no_max mandan sobre los valores
    low = None if price.has_no_min else _bound(price.min)
    high = None if price.has_no_max else _bound(price.max)
    if low is None and high is None:
        return None
    return Range("price", low, high)


def _property_type_clause(property_types: frozenset) -> Optional[Predicate]:
    if not property_types:
        return None
    return In("property_type", map_property_types(property_types))


def _status_clause(
    statuses: frozenset, default_statuses: Iterable[str]
) -> Optional[Predicate]:
    chosen = statuses or frozenset(default_statuses)
    if not chosen:
        return None
    return In("status", tuple(sorted(chosen)))


def _range_clause(column: str, rng: NumericRange) -> Optional[Predicate]:
    low = _bound(rng.min)
    high = _bound(rng.max)
    if low is None and high is None:
        return None
    return Range(column, low, high)


def _keyword_clause(keywords: KeywordFilter) -> Optional[Predicate]:
    combine = all_of if keywords.mode == "all" else any_of
    clauses: list[Predicate] = []

    include = split_terms(keywords.include)
    if include:
        clauses.append(combine(*[Like("description", t) for t in include]))

    exclude = split_terms(keywords.exclude)
    if exclude:
        clauses.append(negate(combine(*[Like("description", t) for t in exclude])))

    if not clauses:
        return None
    return all_of(*clauses)


def _agent_clauses(criteria: Criteria, now: datetime) -> list[Predicate]:
    """Filtros de la búsqueda de agentes: fecha de alta, actividad, open houses."""
    clauses: list[Predicate] = []

    if criteria.list_date_days is not None:
        if criteria.list_date_days == 0:
            cutoff = now.replace(hour=0, minute=0, second=0, microsecond=0)
        else:
            cutoff = now - timedelta(days=criteria.list_date_days)
        clauses.append(Range("created_at", cutoff.isoformat(), None))

    if criteria.off_market_days is not None:
        cutoff = now - timedelta(days=criteria.off_market_days)
        clauses.append(Range("updated_at", cutoff.isoformat(), None))

    if criteria.only_open_houses:
        clauses.append(Not(Eq("open_houses", None)))

    if criteria.max_price_per_sqft is not None:
        # Sin superficie no hay precio por pie cuadrado: square_feet > 0
        # TODO: aplicar el tope con una columna calculada price / square_feet
        clauses.append(Not(Eq("square_feet", None)))
        clauses.append(negate(Range("square_feet", None, 0.0)))

    return clauses


def split_terms(text: Optional[str]) -> list[str]:
    """'pileta, cochera,,' -> ['pileta', 'cochera']"""
    if not text:
        return []
    return _unique(t.strip() for t in text.split(",") if t.strip())


def _bound(value) -> Optional[float]:
    """Cota utilizable o None si no es un número finito."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _unique(items: Iterable[str]) -> list[str]:
    seen: set = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
