"""Source de factures à partir de l'export CSV des tables invoices, clients et invoice_items."""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path

import pandas as pd

from craftly_ops.config.loader import SourceConfig
from craftly_ops.engine.accounts import parse_amount
from craftly_ops.models import (
    Client,
    DataFetchError,
    Invoice,
    InvoiceLine,
    InvoiceStatus,
)
from craftly_ops.sources.base import InvoiceSource, select_period

logger = logging.getLogger(__name__)

INVOICES_REQUIRED_COLUMNS = [
    "id",
    "number",
    "created_at",
    "status",
    "client_id",
    "totals_ht",
    "totals_vat",
    "totals_ttc",
]

CLIENTS_REQUIRED_COLUMNS = ["id", "name"]

ITEMS_REQUIRED_COLUMNS = [
    "invoice_id",
    "description",
    "quantity",
    "unit_price",
    "vat_rate",
]


def _parse_timestamp(raw: str, column: str, reference: str) -> datetime.datetime:
    """Horodatage ISO 8601 → datetime aware (UTC si aucun fuseau n'est indiqué)."""
    try:
        return pd.to_datetime(raw, utc=True).to_pydatetime()
    except (ValueError, TypeError) as e:
        raise DataFetchError(f"Date '{column}' invalide pour la facture {reference} : {raw!r}") from e


def _parse_date(raw: str, column: str, reference: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(raw[:10])
    except ValueError as e:
        raise DataFetchError(f"Date '{column}' invalide pour la facture {reference} : {raw!r}") from e


def _parse_decimal(raw: str, column: str, reference: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation as e:
        raise DataFetchError(
            f"Valeur '{column}' non numérique pour la ligne de facture {reference} : {raw!r}"
        ) from e


class CsvInvoiceSource(InvoiceSource):
    """Lit les factures depuis des fichiers CSV (chemins ou buffers en mémoire).

    Clés attendues dans *files* : ``invoices``, ``clients`` et, optionnellement,
    ``invoice_items``.
    """

    def __init__(
        self,
        files: dict[str, Path | BytesIO],
        source_config: SourceConfig,
    ) -> None:
        self.files = files
        self.source_config = source_config

    def fetch_invoices(
        self,
        start: datetime.date,
        end: datetime.date,
        tz: datetime.tzinfo,
    ) -> list[Invoice]:
        for key in ("invoices", "clients"):
            if key not in self.files:
                raise DataFetchError(f"Fichier '{key}' manquant pour l'export")

        clients = self._load_clients(self.files["clients"])
        lines = self._load_lines(self.files["invoice_items"]) if "invoice_items" in self.files else {}
        invoices = self._load_invoices(self.files["invoices"], clients, lines)

        selected = select_period(invoices, start, end, tz)
        logger.info(
            "%d factures lues, %d dans la période du %s au %s",
            len(invoices),
            len(selected),
            start.isoformat(),
            end.isoformat(),
        )
        return selected

    def _read(self, source: Path | BytesIO) -> pd.DataFrame:
        return self.read_csv(
            source,
            separator=self.source_config.separator,
            encoding=self.source_config.encoding,
        )

    def _load_clients(self, source: Path | BytesIO) -> dict[str, Client]:
        df = self._read(source)
        self.validate_columns(df, CLIENTS_REQUIRED_COLUMNS, "clients")
        return {
            row["id"]: Client(id=row["id"], name=row["name"])
            for row in df.to_dict("records")
            if row["id"]
        }

    def _load_lines(self, source: Path | BytesIO) -> dict[str, list[InvoiceLine]]:
        df = self._read(source)
        self.validate_columns(df, ITEMS_REQUIRED_COLUMNS, "invoice_items")
        lines: dict[str, list[InvoiceLine]] = defaultdict(list)
        for row in df.to_dict("records"):
            invoice_id = row["invoice_id"]
            lines[invoice_id].append(
                InvoiceLine(
                    description=row["description"],
                    quantity=_parse_decimal(row["quantity"] or "0", "quantity", invoice_id),
                    unit_price=_parse_decimal(row["unit_price"] or "0", "unit_price", invoice_id),
                    vat_rate=_parse_decimal(row["vat_rate"] or "0", "vat_rate", invoice_id),
                )
            )
        return lines

    def _load_invoices(
        self,
        source: Path | BytesIO,
        clients: dict[str, Client],
        lines: dict[str, list[InvoiceLine]],
    ) -> list[Invoice]:
        df = self._read(source)
        self.validate_columns(df, INVOICES_REQUIRED_COLUMNS, "invoices")

        invoices: list[Invoice] = []
        for row in df.to_dict("records"):
            invoices.append(self._build_invoice(row, clients, lines))
        return invoices

    def _build_invoice(
        self,
        row: dict[str, str],
        clients: dict[str, Client],
        lines: dict[str, list[InvoiceLine]],
    ) -> Invoice:
        reference = row["number"] or row["id"]
        if not row["number"]:
            raise DataFetchError(f"Numéro manquant pour la facture {row['id']}")
        if not row["created_at"]:
            raise DataFetchError(f"Date de création manquante pour la facture {reference}")

        raw_status = row["status"].lower()
        if not raw_status:
            logger.warning("Statut vide pour la facture %s — considérée comme brouillon", reference)
            raw_status = InvoiceStatus.DRAFT.value
        try:
            status = InvoiceStatus(raw_status)
        except ValueError as e:
            raise DataFetchError(f"Statut inconnu pour la facture {reference} : {row['status']!r}") from e

        client_id = row["client_id"]
        client = clients.get(client_id) if client_id else None
        if client_id and client is None:
            logger.warning("Client %s introuvable pour la facture %s", client_id, reference)

        paid_raw = row.get("paid_at", "")
        due_raw = row.get("due_date", "")

        return Invoice(
            id=row["id"],
            number=row["number"],
            created_at=_parse_timestamp(row["created_at"], "created_at", reference),
            due_date=_parse_date(due_raw, "due_date", reference) if due_raw else None,
            paid_at=_parse_timestamp(paid_raw, "paid_at", reference) if paid_raw else None,
            status=status,
            client=client,
            totals_ht=parse_amount(row["totals_ht"] or None, "totals_ht", reference),
            totals_vat=parse_amount(row["totals_vat"] or None, "totals_vat", reference),
            totals_ttc=parse_amount(row["totals_ttc"] or None, "totals_ttc", reference),
            lines=tuple(lines.get(row["id"], ())),
        )
