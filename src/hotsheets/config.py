"""
Configuración centralizada del sistema.
Carga variables de entorno y define settings globales.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Encontrar la raíz del proyecto (donde está el .env)
# config.py -> hotsheets/ -> src/ -> raíz del proyecto
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuración principal de la aplicación."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase
    supabase_url: str = Field(..., description="URL del proyecto Supabase")
    supabase_key: str = Field(..., description="Anon key de Supabase")
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key para operaciones admin"
    )

    # Reintentos del store (solo errores de transporte)
    store_retry_attempts: int = Field(
        3, ge=1, description="Intentos máximos por llamada al store"
    )
    store_retry_max_wait: float = Field(
        10.0, ge=0.0, description="Espera máxima entre reintentos (segundos)"
    )

    # Búsqueda
    max_results: int = Field(
        500, ge=1, description="Tope duro de listings devueltos por búsqueda"
    )
    hotsheet_review_limit: int = Field(
        200, ge=1, description="Límite por defecto al re-evaluar una hotsheet"
    )
    default_statuses: list[str] = Field(
        default_factory=lambda: ["active", "coming_soon"],
        description="Estados elegibles cuando el criterio no filtra por estado",
    )

    # Envío de hotsheets
    hotsheet_dispatch_function: str = Field(
        "process-hot-sheet", description="Edge function que envía las hotsheets"
    )

    # Logging
    log_level: str = Field("INFO", description="Nivel de logging")


@lru_cache
def get_settings() -> Settings:
    """Obtiene la configuración cacheada."""
    return Settings()


# Constantes del sistema

# Tipos de propiedad: código de la UI -> valor almacenado en listings
PROPERTY_TYPE_MAP = {
    "single_family": "Single Family",
    "condo": "Condominium",
    "multi_family": "Multi Family",
    "townhouse": "Townhouse",
    "land": "Land",
    "commercial": "Commercial",
    "business_opp": "Business Opportunity",
}

LISTING_STATUSES = [
    "new",
    "active",
    "price_changed",
    "back_on_market",
    "extended",
    "reactivated",
    "contingent",
    "under_agreement",
    "sold",
    "rented",
    "temporarily_withdrawn",
    "expired",
    "canceled",
    "coming_soon",
    "off_market",
    "private",
]

SORTABLE_COLUMNS = [
    "created_at",
    "list_date",
    "price",
    "bedrooms",
    "bathrooms",
    "square_feet",
    "year_built",
    "lot_size",
    "city",
    "zip_code",
    "listing_number",
]

DEFAULT_SORT_COLUMN = "created_at"

# Presets de orden de la pantalla de revisión de hotsheets
SORT_PRESETS = {
    "newest": ("created_at", "desc"),
    "oldest": ("created_at", "asc"),
    "price-high": ("price", "desc"),
    "price-low": ("price", "asc"),
}
