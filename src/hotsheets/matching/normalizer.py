"""
Normalizador de criterios.

Convierte el objeto de filtros que manda la UI (o un documento persistido en
`hot_sheets.criteria`) a un `Criteria` canónico. Distintas pantallas usan
claves distintas para lo mismo (`priceMin`, `minPrice`, `min_price`...); la
tabla FIELD_ALIASES documenta cuál gana.

Reglas:
- La clave explícita (primera de la lista) gana sobre los alias legacy
- Campo ausente y lista vacía son equivalentes: sin filtro
- Valores numéricos mal formados se descartan (solo esa cota)
- Normalizar un Criteria ya canónico lo devuelve sin cambios
"""

import math
import re
from typing import Any, Iterable, Mapping, Optional, Union

import structlog

from hotsheets.config import SORT_PRESETS
from hotsheets.errors import ValidationError
from hotsheets.models import (
    Criteria,
    GeoFilter,
    GeoSelector,
    KeywordFilter,
    NumericRange,
    PriceFilter,
)

logger = structlog.get_logger()

# Campo canónico -> claves aceptadas, en orden de precedencia
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "property_types": ("propertyTypes", "property_types"),
    "statuses": ("statuses", "status"),
    "price_min": ("priceMin", "minPrice", "min_price", "price_min"),
    "price_max": ("priceMax", "maxPrice", "max_price", "price_max"),
    "has_no_min": ("hasNoMin", "has_no_min"),
    "has_no_max": ("hasNoMax", "has_no_max"),
    "beds_min": ("bedsMin", "bedrooms", "minBeds", "beds_min"),
    "beds_max": ("bedsMax", "maxBeds", "beds_max"),
    "baths_min": ("bathsMin", "bathrooms", "minBaths", "baths_min"),
    "baths_max": ("bathsMax", "maxBaths", "baths_max"),
    "sqft_min": ("sqftMin", "minSqft", "sqft_min"),
    "sqft_max": ("sqftMax", "maxSqft", "sqft_max"),
    "year_built_min": ("yearBuiltMin", "minYearBuilt", "year_built_min"),
    "year_built_max": ("yearBuiltMax", "maxYearBuilt", "year_built_max"),
    "parking_min": ("parkingMin", "parkingSpaces", "minParkingSpaces"),
    "parking_max": ("parkingMax", "maxParkingSpaces"),
    "lot_size_min": ("lotSizeMin", "minLotSize", "lot_size_min"),
    "lot_size_max": ("lotSizeMax", "maxLotSize", "lot_size_max"),
    "towns": ("selectedTowns", "cities", "towns"),
    "state": ("state",),
    "county": ("county", "selectedCountyId"),
    "zip_code": ("zipCode", "zip", "zip_code"),
    "street_number": ("streetNumber", "street_number"),
    "street_name": ("streetName", "streetAddress", "address", "street_name"),
    "listing_number": ("listingNumber", "listing_number"),
    "keywords_include": ("keywordsInclude", "keywords", "keywords_include"),
    "keywords_exclude": ("keywordsExclude", "keywords_exclude"),
    "keyword_mode": ("keywordMode", "keyword_mode"),
    "limit": ("limit",),
    "sort_column": ("sortColumn", "sort_column"),
    "sort_direction": ("sortDirection", "sort_direction"),
    "sort_preset": ("sortBy",),
    "list_date": ("listDate", "list_date"),
    "off_market_window": ("offMarketWindow", "off_market_window"),
    "only_open_houses": ("onlyOpenHouses", "only_open_houses"),
    "max_price_per_sqft": ("maxPricePerSqft", "max_price_per_sqft"),
}

# Valores que la UI usa para "todos" en los selects
_ALL_SENTINELS = {"all", "any"}

RawCriteria = Union[Criteria, Mapping[str, Any], None]


def normalize_criteria(raw: RawCriteria, strict: bool = True) -> Criteria:
    """
    Normaliza un filtro suelto a Criteria.

    Args:
        raw: Criteria (se devuelve igual), dict de la UI/documento, o None
        strict: False al leer documentos guardados: un precio invertido se
            descarta con un warning en vez de levantar ValidationError

    Returns:
        Criteria canónico

    Raises:
        ValidationError: Si el precio queda con min > max sin overrides (strict)
    """
    if raw is None:
        return Criteria()
    if isinstance(raw, Criteria):
        return raw
    if not isinstance(raw, Mapping):
        raise TypeError(f"Criterio no soportado: {type(raw).__name__}")

    def pick(field: str) -> Any:
        for key in FIELD_ALIASES[field]:
            value = raw.get(key)
            if not _is_blank(value):
                return value
        return None

    sort_column = _to_text(pick("sort_column"))
    sort_direction = _to_text(pick("sort_direction"))
    preset = SORT_PRESETS.get(_to_text(pick("sort_preset")) or "")
    if sort_column is None and preset:
        sort_column, preset_direction = preset
        sort_direction = sort_direction or preset_direction

    criteria = Criteria(
        geo=GeoFilter(
            state=_to_geo_text(pick("state")),
            county=_to_geo_text(pick("county")),
            selectors=parse_selectors(pick("towns")),
        ),
        price=_price_filter(
            _to_number(pick("price_min")),
            _to_number(pick("price_max")),
            _to_flag(pick("has_no_min")),
            _to_flag(pick("has_no_max")),
            strict,
        ),
        property_types=_to_set(pick("property_types")),
        statuses=_to_set(pick("statuses")),
        beds=_range(pick("beds_min"), pick("beds_max")),
        baths=_range(pick("baths_min"), pick("baths_max")),
        sqft=_range(pick("sqft_min"), pick("sqft_max")),
        year_built=_range(pick("year_built_min"), pick("year_built_max")),
        parking=_range(pick("parking_min"), pick("parking_max")),
        lot_size=_range(pick("lot_size_min"), pick("lot_size_max")),
        keywords=KeywordFilter(
            include=_to_text(pick("keywords_include")),
            exclude=_to_text(pick("keywords_exclude")),
            mode="all" if _to_text(pick("keyword_mode")) == "all" else "any",
        ),
        zip_code=_to_text(pick("zip_code")),
        street_number=_to_text(pick("street_number")),
        street_name=_to_text(pick("street_name")),
        listing_number=_to_text(pick("listing_number")),
        list_date_days=_to_days(pick("list_date"), allow_today=True),
        off_market_days=_to_days(pick("off_market_window")),
        only_open_houses=_to_flag(pick("only_open_houses")),
        max_price_per_sqft=_positive(_to_number(pick("max_price_per_sqft"))),
        limit=_to_limit(pick("limit")),
        sort_column=sort_column,
        sort_direction="asc" if sort_direction == "asc" else "desc",
    )

    ignored = set(raw) - _KNOWN_KEYS
    if ignored:
        logger.debug("Claves de criterio ignoradas", keys=sorted(ignored))

    return criteria


def parse_selectors(value: Any) -> tuple[GeoSelector, ...]:
    """
    Convierte la lista de pueblos seleccionados a GeoSelectors.

    Acepta "Ciudad", "Ciudad-Barrio" (se corta en el primer guion) o dicts
    {"city": ..., "neighborhood": ...}. Descarta vacíos y duplicados.
    """
    if _is_blank(value):
        return ()
    if isinstance(value, (str, Mapping)):
        value = [value]

    selectors: list[GeoSelector] = []
    for item in value:
        selector = _parse_selector(item)
        if selector is not None and selector not in selectors:
            selectors.append(selector)
    return tuple(selectors)


def _parse_selector(item: Any) -> Optional[GeoSelector]:
    if isinstance(item, GeoSelector):
        return item
    if isinstance(item, Mapping):
        city = _to_text(item.get("city"))
        neighborhood = _to_text(item.get("neighborhood"))
    elif isinstance(item, str):
        city, _, neighborhood = item.partition("-")
        city = city.strip()
        neighborhood = neighborhood.strip() or None
    else:
        return None
    if not city:
        return None
    return GeoSelector(city=city, neighborhood=neighborhood)


def _price_filter(
    low: Optional[float],
    high: Optional[float],
    has_no_min: bool,
    has_no_max: bool,
    strict: bool,
) -> PriceFilter:
    try:
        return PriceFilter(
            min=low, max=high, has_no_min=has_no_min, has_no_max=has_no_max
        )
    except ValidationError:
        if strict:
            raise
        logger.warning(
            "Precio invertido en criterio guardado, se descarta", min=low, max=high
        )
        return PriceFilter(has_no_min=has_no_min, has_no_max=has_no_max)


def _range(low: Any, high: Any) -> NumericRange:
    return NumericRange(min=_to_number(low), max=_to_number(high))


def _to_number(value: Any) -> Optional[float]:
    """'1,250,000' -> 1250000.0; basura -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").replace("$", "").strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_limit(value: Any) -> Optional[int]:
    number = _to_number(value)
    if number is None or number < 1:
        return None
    return int(number)


def _to_days(value: Any, allow_today: bool = False) -> Optional[int]:
    """'today' -> 0 (si se permite), '7' o '7d' -> 7; 'any' o basura -> None."""
    text = _to_text(value)
    if text is None or text.lower() in _ALL_SENTINELS:
        return None
    if text.lower() == "today":
        return 0 if allow_today else None
    match = re.match(r"\d+", text)
    if not match or int(match.group()) < 1:
        return None
    return int(match.group())


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def _to_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _to_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (bool, Mapping, list, tuple, set, frozenset)):
        return None
    text = str(value).strip()
    return text or None


def _to_geo_text(value: Any) -> Optional[str]:
    text = _to_text(value)
    if text is None or text.lower() in _ALL_SENTINELS:
        return None
    return text


def _to_set(value: Any) -> frozenset:
    if _is_blank(value):
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, Iterable):
        return frozenset()
    return frozenset(t for t in (_to_text(v) for v in value) if t)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


_KNOWN_KEYS = {key for keys in FIELD_ALIASES.values() for key in keys}
