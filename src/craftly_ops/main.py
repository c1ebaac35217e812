"""Point d'entrée CLI de craftly-ops."""

from __future__ import annotations

import argparse
import datetime
import logging
import sys
from pathlib import Path

from craftly_ops.config.loader import load_config
from craftly_ops.export import ExportOrchestrator
from craftly_ops.models import (
    BalanceError,
    ConfigError,
    DataFetchError,
    FECExportRequest,
    FECFormatError,
    InvalidAmount,
    InvalidPeriod,
    InvalidSiren,
)

logger = logging.getLogger("craftly_ops.main")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _iso_date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"date invalide (attendu AAAA-MM-JJ) : {value!r}") from e


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse les arguments CLI."""
    parser = argparse.ArgumentParser(
        prog="craftly-ops",
        description="Export FEC des factures de vente",
    )
    parser.add_argument("input_dir", help="Répertoire contenant l'export CSV des factures et clients")
    parser.add_argument("output_dir", help="Répertoire de sortie du fichier FEC")
    parser.add_argument("--start", required=True, type=_iso_date, help="Date de début (AAAA-MM-JJ, incluse)")
    parser.add_argument("--end", required=True, type=_iso_date, help="Date de fin (AAAA-MM-JJ, incluse)")
    parser.add_argument("--siren", required=True, help="SIREN de l'entreprise (9 chiffres)")
    parser.add_argument(
        "--excel",
        action="store_true",
        help="Écrit aussi les écritures et anomalies dans un classeur Excel",
    )
    parser.add_argument(
        "--config-dir",
        default="./config/",
        help="Répertoire de configuration YAML (défaut : ./config/)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=VALID_LOG_LEVELS,
        help="Niveau de log (défaut : INFO)",
    )
    return parser.parse_args(args)


def main(args: list[str] | None = None) -> None:
    """Point d'entrée principal."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=getattr(logging, parsed.log_level),
        format=LOG_FORMAT,
    )

    config_dir = Path(parsed.config_dir)
    try:
        config = load_config(config_dir)
    except ConfigError as e:
        logger.error("Erreur de configuration : %s", e)
        sys.exit(2)

    request = FECExportRequest(start_date=parsed.start, end_date=parsed.end, siren=parsed.siren)

    try:
        ExportOrchestrator().run(
            input_dir=Path(parsed.input_dir),
            output_dir=Path(parsed.output_dir),
            request=request,
            config=config,
            with_excel=parsed.excel,
        )
    except (InvalidSiren, InvalidPeriod) as e:
        print(f"ERREUR : {e}")
        sys.exit(3)
    except (DataFetchError, InvalidAmount) as e:
        logger.error("Erreur lors de la récupération des factures : %s", e)
        sys.exit(4)
    except (BalanceError, FECFormatError) as e:
        logger.error("Erreur de génération du FEC : %s", e)
        sys.exit(1)
    except Exception:
        logger.exception("Erreur inattendue")
        sys.exit(1)


if __name__ == "__main__":
    main()
