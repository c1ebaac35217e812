"""Sérialisation au format FEC (Fichier des Écritures Comptables).

Format défini par l'article A47 A-1 du LPF (BOI-CF-IOR-60-40-20) :
18 colonnes séparées par ``|``, une écriture par ligne, dates ``AAAAMMJJ``,
encodage UTF-8. Le format ne prévoit aucun échappement du séparateur.
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path

from craftly_ops.models import AccountingEntry, FECFormatError

logger = logging.getLogger(__name__)

SEPARATOR = "|"
LINE_SEPARATOR = "\n"
ENCODING = "utf-8"

FEC_COLUMNS = [
    "JournalCode",
    "JournalLib",
    "EcritureNum",
    "EcritureDate",
    "CompteNum",
    "CompteLib",
    "CompAuxNum",
    "CompAuxLib",
    "PieceRef",
    "PieceDate",
    "EcritureLib",
    "Debit",
    "Credit",
    "EcritureLet",
    "DateLet",
    "ValidDate",
    "Montantdevise",
    "Idevise",
]


def _format_line(entry: AccountingEntry) -> str:
    row = entry.as_row()
    for column, value in zip(FEC_COLUMNS, row):
        if SEPARATOR in value or "\n" in value or "\r" in value:
            raise FECFormatError(
                f"Champ {column} incompatible avec le format FEC "
                f"(écriture {entry.ecriture_num}) : {value!r}"
            )
    return SEPARATOR.join(row)


def serialize(entries: list[AccountingEntry]) -> str:
    """Rend les écritures au format FEC : en-tête puis une ligne par écriture.

    Les lignes sont séparées par ``\\n``, sans saut de ligne final.
    Une liste vide produit l'en-tête seul.

    Raises:
        FECFormatError: si un champ contient le séparateur ou un saut de ligne.
    """
    lines = [SEPARATOR.join(FEC_COLUMNS)]
    lines.extend(_format_line(entry) for entry in entries)
    return LINE_SEPARATOR.join(lines)


def build_filename(siren: str, end_date: datetime.date) -> str:
    """Nom de fichier normalisé : SIREN + ``FEC`` + date de clôture.

    Examples:
        >>> build_filename("123456789", datetime.date(2024, 12, 31))
        '123456789FEC20241231.txt'
    """
    return f"{siren}FEC{end_date.strftime('%Y%m%d')}.txt"


def write_fec(content: str, output_path: Path) -> None:
    """Écrit le contenu FEC sur disque en UTF-8, sans conversion des fins de ligne."""
    with open(output_path, "w", encoding=ENCODING, newline="") as f:
        f.write(content)
    logger.info("Fichier FEC écrit : %s", output_path)
