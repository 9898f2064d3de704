"""
Motor de matching.

Normaliza el filtro de la UI, lo compila a un predicado y lo evalúa contra
el inventario de listings o contra las áreas de cobertura.
"""

from hotsheets.matching.normalizer import normalize_criteria, FIELD_ALIASES
from hotsheets.matching.compiler import SortOrder, compile_criteria, compile_sort
from hotsheets.matching.evaluator import MatchEvaluator
from hotsheets.matching.registry import HotsheetRegistry
from hotsheets.matching.estimator import RecipientEstimator, RecipientEstimate

__all__ = [
    "normalize_criteria",
    "FIELD_ALIASES",
    "SortOrder",
    "compile_criteria",
    "compile_sort",
    "MatchEvaluator",
    "HotsheetRegistry",
    "RecipientEstimator",
    "RecipientEstimate",
]
