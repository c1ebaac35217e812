"""Classe abstraite de base pour les sources de factures."""

from __future__ import annotations

import datetime
import logging
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

import pandas as pd

from craftly_ops.engine.accounts import local_date
from craftly_ops.models import DataFetchError, Invoice

logger = logging.getLogger(__name__)


def select_period(
    invoices: list[Invoice],
    start: datetime.date,
    end: datetime.date,
    tz: datetime.tzinfo,
) -> list[Invoice]:
    """Filtre les factures créées entre *start* et *end* (bornes incluses) et les trie.

    La date de création est évaluée dans le fuseau *tz* : toute la journée de
    *end* est incluse. Tri par ``created_at`` croissant, puis par numéro.
    """
    selected = [
        invoice
        for invoice in invoices
        if start <= local_date(invoice.created_at, tz) <= end
    ]
    return sorted(selected, key=lambda i: (i.created_at, i.number))


class InvoiceSource(ABC):
    """Interface commune des sources de factures (export de base, API, mémoire)."""

    @abstractmethod
    def fetch_invoices(
        self,
        start: datetime.date,
        end: datetime.date,
        tz: datetime.tzinfo,
    ) -> list[Invoice]:
        """Retourne les factures de la période, client et lignes joints, triées par date de création.

        Raises:
            DataFetchError: source illisible ou incomplète.
            InvalidAmount: montant invalide sur une facture.
        """

    def read_csv(
        self,
        source: Path | BytesIO,
        *,
        separator: str,
        encoding: str = "utf-8",
    ) -> pd.DataFrame:
        """Lit un CSV en texte brut (cellules vides = ``""``). Lève DataFetchError."""
        if isinstance(source, BytesIO):
            source.seek(0)
        try:
            df = pd.read_csv(
                source,
                sep=separator,
                encoding=encoding,
                dtype=str,
                keep_default_na=False,
            )
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise DataFetchError(f"Lecture impossible de {self._describe(source)} : {e}") from e
        df.columns = df.columns.str.strip()
        for col in df.columns:
            df[col] = df[col].str.strip()
        return df

    @staticmethod
    def _describe(source: Path | BytesIO) -> str:
        return str(source) if isinstance(source, Path) else "fichier en mémoire"

    def validate_columns(self, df: pd.DataFrame, required: list[str], context: str) -> None:
        """Vérifie que toutes les colonnes requises sont présentes dans le DataFrame.

        Raises:
            DataFetchError: Si des colonnes requises sont absentes du DataFrame.
                Le message liste les colonnes manquantes.
        """
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise DataFetchError(
                f"Colonnes manquantes dans {context} : {', '.join(missing)}"
            )


class StaticInvoiceSource(InvoiceSource):
    """Source en mémoire : factures déjà chargées par l'application hôte."""

    def __init__(self, invoices: list[Invoice]) -> None:
        self._invoices = list(invoices)

    def fetch_invoices(
        self,
        start: datetime.date,
        end: datetime.date,
        tz: datetime.tzinfo,
    ) -> list[Invoice]:
        return select_period(self._invoices, start, end, tz)
