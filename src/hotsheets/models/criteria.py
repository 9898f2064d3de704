"""
Modelo de Criterio de búsqueda.

Representación canónica y tipada de un filtro de búsqueda. La UI manda
objetos sueltos con claves sinónimas; el normalizador los convierte a este
modelo y todo lo que viene después (compilador, hotsheets, estimador)
trabaja solo con `Criteria`.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from hotsheets.errors import ValidationError


class GeoSelector(BaseModel):
    """
    Par (ciudad, barrio opcional).

    Sin barrio significa "cualquier listing de la ciudad"; con barrio,
    solo ese barrio de esa ciudad.
    """

    model_config = ConfigDict(frozen=True)

    city: str = Field(..., min_length=1, description="Ciudad")
    neighborhood: Optional[str] = Field(None, description="Barrio (None = toda la ciudad)")

    @property
    def is_city_only(self) -> bool:
        return self.neighborhood is None


class GeoFilter(BaseModel):
    """Filtro geográfico: estado, condado y selectores de ciudad/barrio."""

    model_config = ConfigDict(frozen=True)

    state: Optional[str] = Field(None, description="Estado, ej: MA")
    county: Optional[str] = Field(None, description="Condado")
    selectors: tuple[GeoSelector, ...] = Field(
        default_factory=tuple, description="Ciudades y barrios seleccionados"
    )

    @property
    def city_only(self) -> list[GeoSelector]:
        return [s for s in self.selectors if s.is_city_only]

    @property
    def with_neighborhood(self) -> list[GeoSelector]:
        return [s for s in self.selectors if not s.is_city_only]


class PriceFilter(BaseModel):
    """
    Rango de precio con flags de override.

    `has_no_min` / `has_no_max` mandan sobre los valores: si el flag está
    prendido no se aplica esa cota aunque `min`/`max` tengan número. Así la UI
    puede "limpiar" una cota temporalmente sin perder el número cargado.
    """

    model_config = ConfigDict(frozen=True)

    min: Optional[float] = Field(None, description="Precio mínimo")
    max: Optional[float] = Field(None, description="Precio máximo")
    has_no_min: bool = Field(default=False, description="Ignorar el mínimo")
    has_no_max: bool = Field(default=False, description="Ignorar el máximo")

    @model_validator(mode="after")
    def _check_bounds(self) -> "PriceFilter":
        if (
            self.min is not None
            and self.max is not None
            and not self.has_no_min
            and not self.has_no_max
            and self.min > self.max
        ):
            raise ValidationError(
                f"Precio mínimo ({self.min:g}) mayor al máximo ({self.max:g})",
                field="price",
            )
        return self

    @property
    def effective_min(self) -> Optional[float]:
        return None if self.has_no_min else self.min

    @property
    def effective_max(self) -> Optional[float]:
        return None if self.has_no_max else self.max


class NumericRange(BaseModel):
    """Rango numérico genérico (ambientes, baños, superficie, etc)."""

    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None


class KeywordFilter(BaseModel):
    """Palabras clave a incluir/excluir sobre la descripción."""

    model_config = ConfigDict(frozen=True)

    include: Optional[str] = Field(None, description="Términos separados por coma")
    exclude: Optional[str] = Field(None, description="Términos separados por coma")
    mode: Literal["any", "all"] = Field(
        default="any", description="'any' = alguno de los términos, 'all' = todos"
    )


class Criteria(BaseModel):
    """
    Criterio canónico de búsqueda (valor inmutable).

    Sets vacíos y campos en None significan "sin filtro en esa dimensión".
    """

    model_config = ConfigDict(frozen=True)

    geo: GeoFilter = Field(default_factory=GeoFilter)
    price: PriceFilter = Field(default_factory=PriceFilter)

    property_types: frozenset[str] = Field(
        default_factory=frozenset, description="Tipos de propiedad (vocabulario UI)"
    )
    statuses: frozenset[str] = Field(
        default_factory=frozenset, description="Estados del listing"
    )

    # Rangos numéricos
    beds: NumericRange = Field(default_factory=NumericRange)
    baths: NumericRange = Field(default_factory=NumericRange)
    sqft: NumericRange = Field(default_factory=NumericRange)
    year_built: NumericRange = Field(default_factory=NumericRange)
    parking: NumericRange = Field(default_factory=NumericRange)
    lot_size: NumericRange = Field(default_factory=NumericRange)

    keywords: KeywordFilter = Field(default_factory=KeywordFilter)

    # Dirección
    zip_code: Optional[str] = Field(None, description="Prefijo de código postal")
    street_number: Optional[str] = None
    street_name: Optional[str] = None
    listing_number: Optional[str] = Field(None, description="Número MLS (parcial)")

    # Solo agentes
    list_date_days: Optional[int] = Field(
        None, ge=0, description="Publicados en los últimos N días (0 = hoy)"
    )
    off_market_days: Optional[int] = Field(
        None, ge=1, description="Actualizados en los últimos N días"
    )
    only_open_houses: bool = Field(default=False, description="Solo con open house")
    max_price_per_sqft: Optional[float] = Field(
        None, description="Tope de precio por pie cuadrado"
    )

    # Presentación
    limit: Optional[int] = Field(None, ge=1, description="Máximo de resultados")
    sort_column: Optional[str] = None
    sort_direction: Literal["asc", "desc"] = "desc"

    def is_empty(self) -> bool:
        """True si no filtra ninguna dimensión (limit y orden no cuentan)."""
        filters_only = self.model_copy(
            update={"limit": None, "sort_column": None, "sort_direction": "desc"}
        )
        return filters_only == Criteria()

    def to_document(self) -> dict:
        """
        Convierte a documento JSON para persistir (columna JSONB).

        Usa las claves canónicas de la UI, así que volver a normalizar el
        documento devuelve un Criteria igual a este.
        """
        doc: dict = {}

        if self.geo.state:
            doc["state"] = self.geo.state
        if self.geo.county:
            doc["county"] = self.geo.county
        if self.geo.selectors:
            doc["selectedTowns"] = [s.model_dump() for s in self.geo.selectors]

        if self.property_types:
            doc["propertyTypes"] = sorted(self.property_types)
        if self.statuses:
            doc["statuses"] = sorted(self.statuses)

        if self.price.min is not None:
            doc["priceMin"] = _plain(self.price.min)
        if self.price.max is not None:
            doc["priceMax"] = _plain(self.price.max)
        if self.price.has_no_min:
            doc["hasNoMin"] = True
        if self.price.has_no_max:
            doc["hasNoMax"] = True

        for prefix, rng in (
            ("beds", self.beds),
            ("baths", self.baths),
            ("sqft", self.sqft),
            ("yearBuilt", self.year_built),
            ("parking", self.parking),
            ("lotSize", self.lot_size),
        ):
            if rng.min is not None:
                doc[f"{prefix}Min"] = _plain(rng.min)
            if rng.max is not None:
                doc[f"{prefix}Max"] = _plain(rng.max)

        if self.keywords.include:
            doc["keywordsInclude"] = self.keywords.include
        if self.keywords.exclude:
            doc["keywordsExclude"] = self.keywords.exclude
        if self.keywords.include or self.keywords.exclude or self.keywords.mode != "any":
            doc["keywordMode"] = self.keywords.mode

        for key, value in (
            ("zipCode", self.zip_code),
            ("streetNumber", self.street_number),
            ("streetName", self.street_name),
            ("listingNumber", self.listing_number),
            ("limit", self.limit),
            ("sortColumn", self.sort_column),
        ):
            if value is not None:
                doc[key] = value
        doc["sortDirection"] = self.sort_direction

        if self.list_date_days is not None:
            doc["listDate"] = "today" if self.list_date_days == 0 else self.list_date_days
        if self.off_market_days is not None:
            doc["offMarketWindow"] = self.off_market_days
        if self.only_open_houses:
            doc["onlyOpenHouses"] = True
        if self.max_price_per_sqft is not None:
            doc["maxPricePerSqft"] = _plain(self.max_price_per_sqft)

        return doc


def default_criteria() -> Criteria:
    """Devuelve un Criteria nuevo sin filtros (uno por llamada, nunca compartido)."""
    return Criteria()


def _plain(value: float):
    """1200000.0 -> 1200000 para que el documento quede prolijo."""
    return int(value) if float(value).is_integer() else value
