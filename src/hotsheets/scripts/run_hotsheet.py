"""
Script para revisar y enviar una hotsheet.

Re-evalúa el criterio guardado contra el inventario vivo y muestra los
listings que todavía no se enviaron. Con --send los envía por la Edge
Function y los marca como enviados.

Uso:
    python -m hotsheets.scripts.run_hotsheet --hotsheet-id <uuid>
    python -m hotsheets.scripts.run_hotsheet --hotsheet-id <uuid> --send
    python -m hotsheets.scripts.run_hotsheet --hotsheet-id <uuid> --send --listing-ids a,b
"""

import argparse
import logging
import sys

import structlog

from hotsheets.config import get_settings
from hotsheets.errors import NotFound, TransientStoreError
from hotsheets.matching import HotsheetRegistry
from hotsheets.notifications import SupabaseFunctionDispatcher

# Configurar logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(message)s",
    force=True,
)

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def review_hotsheet(hotsheet_id: str, send: bool = False, listing_ids=None) -> list[str]:
    """
    Revisa una hotsheet y opcionalmente envía.

    Returns:
        IDs nuevos (o enviados, si send=True)
    """
    registry = HotsheetRegistry(
        dispatcher=SupabaseFunctionDispatcher() if send else None,
    )
    hotsheet = registry.get(hotsheet_id)
    logger.info(
        "Revisando hotsheet",
        hotsheet_id=hotsheet_id,
        name=hotsheet.name,
        delivered=len(hotsheet.delivered_listing_ids),
    )

    if send:
        return registry.deliver(hotsheet_id, listing_ids)

    fresh = registry.new_since_last_delivery(hotsheet_id)
    for listing in fresh:
        logger.info(
            "Listing nuevo",
            listing_id=listing.id,
            address=listing.address,
            city=listing.city,
            price=listing.price,
        )
    return [listing.id for listing in fresh]


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(description="Revisión de hotsheets")
    parser.add_argument("--hotsheet-id", required=True, help="UUID de la hotsheet")
    parser.add_argument("--send", action="store_true", help="Enviar los nuevos")
    parser.add_argument(
        "--listing-ids",
        help="IDs separados por coma (default: todos los nuevos)",
    )
    args = parser.parse_args()

    listing_ids = None
    if args.listing_ids:
        listing_ids = [i.strip() for i in args.listing_ids.split(",") if i.strip()]

    try:
        ids = review_hotsheet(args.hotsheet_id, send=args.send, listing_ids=listing_ids)
        logger.info(
            "Revisión completada",
            hotsheet_id=args.hotsheet_id,
            listings=len(ids),
            sent=args.send,
        )
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("Revisión interrumpida por usuario")
        sys.exit(130)
    except NotFound as e:
        logger.error("Hotsheet inexistente", error=str(e))
        sys.exit(1)
    except TransientStoreError as e:
        logger.error("Store no disponible, reintentar más tarde", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("Error fatal en revisión", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
