"""
Modelos de datos del sistema.

- Criteria: filtro canónico de búsqueda
- Listing: propiedad del inventario (solo lectura)
- HotsheetSubscription: búsqueda guardada
- CoverageArea: área de interés declarada por un agente
"""

from hotsheets.models.criteria import (
    Criteria,
    GeoFilter,
    GeoSelector,
    KeywordFilter,
    NumericRange,
    PriceFilter,
    default_criteria,
)
from hotsheets.models.listing import Listing
from hotsheets.models.hotsheet import HotsheetSubscription
from hotsheets.models.coverage import CoverageArea

__all__ = [
    # Criterio
    "Criteria",
    "GeoFilter",
    "GeoSelector",
    "KeywordFilter",
    "NumericRange",
    "PriceFilter",
    "default_criteria",
    # Inventario
    "Listing",
    "CoverageArea",
    # Hotsheets
    "HotsheetSubscription",
]
