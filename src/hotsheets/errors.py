"""
Errores del sistema.

- ValidationError: un criterio o una hotsheet viola un invariante
- TransientStoreError: falla de I/O reintentable contra el store
- NotFound: la hotsheet referenciada no existe
- ConcurrentEditError: otra sesión editó la hotsheet antes
"""

from typing import Optional


class HotsheetError(Exception):
    """Clase base de los errores del sistema."""


class ValidationError(HotsheetError):
    """El valor recibido viola un invariante y se rechaza antes de compilar."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TransientStoreError(HotsheetError):
    """
    Falla transitoria del store (timeout, conexión caída).

    El llamador puede reintentar; este subsistema no reintenta por su cuenta.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class NotFound(HotsheetError):
    """La entidad referenciada no existe."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} no encontrada: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ConcurrentEditError(HotsheetError):
    """El snapshot cambió desde que se leyó (chequeo optimista de versión)."""

    def __init__(self, hotsheet_id: str, expected_version: int):
        super().__init__(
            f"La hotsheet {hotsheet_id} ya no está en la versión {expected_version}"
        )
        self.hotsheet_id = hotsheet_id
        self.expected_version = expected_version
