"""
Módulo de base de datos.

Provee acceso a Supabase, los stores de solo lectura y el repositorio de
hotsheets.
"""

from hotsheets.database.supabase_client import get_supabase_client, SupabaseClient
from hotsheets.database.stores import (
    InventoryStore,
    CoverageAreaStore,
    SupabaseInventoryStore,
    SupabaseCoverageAreaStore,
)
from hotsheets.database.repositories import HotsheetRepository

__all__ = [
    "get_supabase_client",
    "SupabaseClient",
    "InventoryStore",
    "CoverageAreaStore",
    "SupabaseInventoryStore",
    "SupabaseCoverageAreaStore",
    "HotsheetRepository",
]
