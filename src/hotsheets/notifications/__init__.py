"""
Módulo de notificaciones.

Entrega de hotsheets a través de colaboradores externos.
"""

from hotsheets.notifications.dispatcher import (
    HotsheetDispatcher,
    SupabaseFunctionDispatcher,
)

__all__ = [
    "HotsheetDispatcher",
    "SupabaseFunctionDispatcher",
]
