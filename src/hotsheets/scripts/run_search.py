"""
Script para ejecutar una búsqueda contra el inventario.

Normaliza el criterio, lo compila y lo evalúa contra Supabase.

Uso:
    python -m hotsheets.scripts.run_search --criteria '{"selectedTowns": ["Boston"], "priceMax": 900000}'
    python -m hotsheets.scripts.run_search --criteria-file criteria.json --count
    python -m hotsheets.scripts.run_search --criteria '{"state": "MA"}' --recipients
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import structlog

from hotsheets.config import get_settings
from hotsheets.errors import HotsheetError
from hotsheets.matching import MatchEvaluator, RecipientEstimator, normalize_criteria

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


def load_criteria(args: argparse.Namespace) -> dict:
    """Lee el criterio desde --criteria o --criteria-file."""
    if args.criteria_file:
        return json.loads(Path(args.criteria_file).read_text(encoding="utf-8"))
    return json.loads(args.criteria or "{}")


def run_search(raw: dict, count_only: bool = False, recipients: bool = False) -> dict:
    """
    Ejecuta la búsqueda.

    Args:
        raw: Filtro tal como lo manda la UI
        count_only: Solo contar listings
        recipients: Estimar destinatarios en vez de buscar listings

    Returns:
        Resultado serializable a JSON
    """
    criteria = normalize_criteria(raw)

    if recipients:
        estimate = RecipientEstimator().estimate(criteria)
        return {"recipients": estimate.count, "level": estimate.level}

    evaluator = MatchEvaluator()
    if count_only:
        return {"count": evaluator.count_matches(criteria)}

    listings = evaluator.search(criteria)
    return {
        "count": len(listings),
        "listings": [listing.model_dump() for listing in listings],
    }


def main():
    """Entry point del script."""
    parser = argparse.ArgumentParser(description="Búsqueda de listings por criterio")
    parser.add_argument("--criteria", help="Criterio en JSON")
    parser.add_argument("--criteria-file", help="Archivo JSON con el criterio")
    parser.add_argument("--count", action="store_true", help="Solo contar")
    parser.add_argument(
        "--recipients", action="store_true", help="Estimar destinatarios"
    )
    args = parser.parse_args()

    try:
        raw = load_criteria(args)
        result = run_search(raw, count_only=args.count, recipients=args.recipients)
        print(json.dumps(result, indent=2, ensure_ascii=False))
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("Búsqueda interrumpida por usuario")
        sys.exit(130)
    except (HotsheetError, json.JSONDecodeError) as e:
        logger.error("Criterio o store inválido", error=str(e))
        sys.exit(1)
    except Exception as e:
        logger.error("Error fatal en búsqueda", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
