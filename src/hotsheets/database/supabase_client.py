"""
Cliente de Supabase.

Singleton para conexión a la base de datos. Todas las llamadas pasan por
`execute`, que reintenta fallas de transporte y las convierte en
TransientStoreError cuando se agotan los intentos.
"""

from functools import lru_cache
from typing import Any, Optional

import httpx
import structlog
from supabase import create_client, Client
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from hotsheets.config import get_settings
from hotsheets.errors import TransientStoreError

logger = structlog.get_logger()


class SupabaseClient:
    """Wrapper del cliente de Supabase con métodos de utilidad."""

    def __init__(
        self,
        client: Client,
        retry_attempts: int = 3,
        retry_max_wait: float = 10.0,
    ):
        self._client = client
        self._retry_attempts = retry_attempts
        self._retry_max_wait = retry_max_wait

    @property
    def client(self) -> Client:
        """Acceso directo al cliente de Supabase."""
        return self._client

    def table(self, name: str):
        """Acceso a una tabla específica."""
        return self._client.table(name)

    def execute(self, query, operation: str = "query") -> Any:
        """
        Ejecuta un query builder de postgrest.

        Args:
            query: Builder listo para `.execute()`
            operation: Nombre de la operación para logs/errores

        Returns:
            La respuesta de postgrest (con `.data` y `.count`)

        Raises:
            TransientStoreError: Si la falla de transporte persiste
        """
        return self._call(query.execute, operation)

    def rpc(self, function_name: str, params: Optional[dict] = None) -> list:
        """
        Ejecuta una función RPC de PostgreSQL.

        Args:
            function_name: Nombre de la función en Supabase
            params: Parámetros de la función

        Returns:
            Lista de resultados
        """
        query = self._client.rpc(function_name, params or {})
        response = self.execute(query, operation=f"rpc:{function_name}")
        return response.data

    def invoke_function(self, function_name: str, body: dict) -> Any:
        """Invoca una Edge Function de Supabase."""
        return self._call(
            lambda: self._client.functions.invoke(
                function_name, invoke_options={"body": body}
            ),
            operation=f"function:{function_name}",
        )

    def _call(self, fn, operation: str) -> Any:
        retryer = Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=self._retry_max_wait),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        try:
            return retryer(fn)
        except httpx.TransportError as e:
            logger.error(
                "Store no disponible",
                operation=operation,
                attempts=self._retry_attempts,
                error=str(e),
            )
            raise TransientStoreError(
                f"Falla transitoria en {operation}: {e}", operation=operation
            ) from e


@lru_cache
def get_supabase_client() -> SupabaseClient:
    """
    Obtiene el cliente de Supabase (singleton cacheado).

    Returns:
        SupabaseClient configurado

    Raises:
        ValueError: Si las credenciales no están configuradas
    """
    settings = get_settings()

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL y SUPABASE_KEY son requeridos. "
            "Configura las variables de entorno."
        )

    # Usar service key si está disponible para operaciones admin
    key = settings.supabase_service_key or settings.supabase_key

    client = create_client(settings.supabase_url, key)
    logger.info("Cliente de Supabase inicializado", url=settings.supabase_url)

    return SupabaseClient(
        client,
        retry_attempts=settings.store_retry_attempts,
        retry_max_wait=settings.store_retry_max_wait,
    )
