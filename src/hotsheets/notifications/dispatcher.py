"""
Dispatcher de hotsheets.

El envío real (email al cliente, copia al agente) vive en la Edge Function
`process-hot-sheet`. Este módulo solo la invoca con la selección de listings
que decidió el registro.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from hotsheets.config import get_settings
from hotsheets.database import SupabaseClient, get_supabase_client

logger = structlog.get_logger()


class HotsheetDispatcher(ABC):
    """Colaborador externo que envía listings de una hotsheet."""

    @abstractmethod
    def dispatch(self, hotsheet_id: str, listing_ids: list[str]) -> None:
        """
        Envía los listings indicados.

        Raises:
            Cualquier error del envío; en ese caso no se marca nada como enviado
        """


class SupabaseFunctionDispatcher(HotsheetDispatcher):
    """Dispatcher que invoca la Edge Function de envío."""

    def __init__(
        self,
        client: Optional[SupabaseClient] = None,
        function_name: Optional[str] = None,
    ):
        self._client = client or get_supabase_client()
        self.function_name = function_name or get_settings().hotsheet_dispatch_function

    def dispatch(self, hotsheet_id: str, listing_ids: list[str]) -> None:
        body = {
            "hotSheetId": hotsheet_id,
            "sendInitialBatch": True,
            "selectedListingIds": list(listing_ids),
        }
        self._client.invoke_function(self.function_name, body)
        logger.info(
            "Hotsheet enviada",
            hotsheet_id=hotsheet_id,
            listings=len(listing_ids),
            function=self.function_name,
        )
