"""Tests unitaires pour sources/csv_source.py et sources/base.py."""

from __future__ import annotations

import datetime
import zoneinfo
from decimal import Decimal
from io import BytesIO
from pathlib import Path

import pytest

from craftly_ops.config.loader import SourceConfig
from craftly_ops.models import Client, DataFetchError, InvalidAmount, Invoice, InvoiceStatus
from craftly_ops.sources import CsvInvoiceSource, StaticInvoiceSource
from craftly_ops.sources.base import select_period

UTC = datetime.timezone.utc
MARCH_START = datetime.date(2024, 3, 1)
MARCH_END = datetime.date(2024, 3, 31)

CLIENTS_CSV = "id,name\nabcdef1234,Atelier Dupont\n"
INVOICES_HEADER = "id,number,created_at,due_date,paid_at,status,client_id,totals_ht,totals_vat,totals_ttc\n"


def _source(
    invoices: str,
    clients: str = CLIENTS_CSV,
    items: str | None = None,
    separator: str = ",",
) -> CsvInvoiceSource:
    files: dict[str, Path | BytesIO] = {
        "invoices": BytesIO(invoices.encode("utf-8")),
        "clients": BytesIO(clients.encode("utf-8")),
    }
    if items is not None:
        files["invoice_items"] = BytesIO(items.encode("utf-8"))
    return CsvInvoiceSource(files, SourceConfig(files={}, separator=separator))


def _make_invoice(**overrides: object) -> Invoice:
    defaults: dict[str, object] = {
        "id": "inv-1",
        "number": "INV-001",
        "created_at": datetime.datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
        "due_date": None,
        "paid_at": None,
        "status": InvoiceStatus.SENT,
        "client": None,
        "totals_ht": Decimal("100.00"),
        "totals_vat": Decimal("20.00"),
        "totals_ttc": Decimal("120.00"),
    }
    defaults.update(overrides)
    return Invoice(**defaults)  # type: ignore[arg-type]


class TestCsvInvoiceSource:
    def test_nominal(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER
            + "inv-1,INV-001,2024-03-01T09:00:00Z,2024-03-31,2024-03-15T14:30:00Z,paid,abcdef1234,500.00,100.00,600.00\n"
        )
        invoices = source.fetch_invoices(MARCH_START, MARCH_END, paris)

        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice.id == "inv-1"
        assert invoice.number == "INV-001"
        assert invoice.created_at == datetime.datetime(2024, 3, 1, 9, 0, tzinfo=UTC)
        assert invoice.due_date == datetime.date(2024, 3, 31)
        assert invoice.paid_at == datetime.datetime(2024, 3, 15, 14, 30, tzinfo=UTC)
        assert invoice.status is InvoiceStatus.PAID
        assert invoice.client == Client(id="abcdef1234", name="Atelier Dupont")
        assert invoice.totals_ht == Decimal("500.00")
        assert invoice.totals_vat == Decimal("100.00")
        assert invoice.totals_ttc == Decimal("600.00")
        assert invoice.lines == ()

    def test_semicolon_separator(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER.replace(",", ";")
            + "inv-1;INV-001;2024-03-01T09:00:00Z;;;sent;abcdef1234;100.00;20.00;120.00\n",
            clients=CLIENTS_CSV.replace(",", ";"),
            separator=";",
        )
        invoices = source.fetch_invoices(MARCH_START, MARCH_END, paris)
        assert invoices[0].client is not None
        assert invoices[0].due_date is None
        assert invoices[0].paid_at is None

    def test_lines_joined(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,abcdef1234,100.00,20.00,120.00\n",
            items=(
                "invoice_id,description,quantity,unit_price,vat_rate\n"
                "inv-1,Conseil,2,30.00,20\n"
                "inv-1,Déplacement,1,40.00,20\n"
                "inv-9,Autre,1,10.00,20\n"
            ),
        )
        invoice = source.fetch_invoices(MARCH_START, MARCH_END, paris)[0]
        assert len(invoice.lines) == 2
        assert invoice.lines[0].description == "Conseil"
        assert invoice.lines[0].quantity == Decimal("2")
        assert invoice.lines[1].unit_price == Decimal("40.00")

    def test_unknown_client_id(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,zzz,100.00,20.00,120.00\n"
        )
        assert source.fetch_invoices(MARCH_START, MARCH_END, paris)[0].client is None

    def test_empty_status_is_draft(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,,abcdef1234,100.00,20.00,120.00\n"
        )
        assert source.fetch_invoices(MARCH_START, MARCH_END, paris)[0].status is InvoiceStatus.DRAFT

    def test_status_case_insensitive(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,OVERDUE,abcdef1234,100.00,20.00,120.00\n"
        )
        assert source.fetch_invoices(MARCH_START, MARCH_END, paris)[0].status is InvoiceStatus.OVERDUE

    def test_naive_timestamp_is_utc(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-31 22:30:00,,,sent,abcdef1234,100.00,20.00,120.00\n"
        )
        # 22h30 UTC le 31/03 = 00h30 le 01/04 à Paris
        assert source.fetch_invoices(MARCH_START, MARCH_END, paris) == []

    def test_sorted_by_created_at(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER
            + "inv-2,INV-002,2024-03-10T09:00:00Z,,,sent,abcdef1234,100.00,20.00,120.00\n"
            + "inv-1,INV-001,2024-03-02T09:00:00Z,,,sent,abcdef1234,100.00,20.00,120.00\n"
        )
        invoices = source.fetch_invoices(MARCH_START, MARCH_END, paris)
        assert [i.number for i in invoices] == ["INV-001", "INV-002"]


class TestCsvInvoiceSourceErrors:
    def test_missing_file(self, paris: zoneinfo.ZoneInfo) -> None:
        source = CsvInvoiceSource({"invoices": BytesIO(b"")}, SourceConfig(files={}))
        with pytest.raises(DataFetchError, match="clients"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_missing_path(self, tmp_path: Path, paris: zoneinfo.ZoneInfo) -> None:
        source = CsvInvoiceSource(
            {"invoices": tmp_path / "absent.csv", "clients": tmp_path / "absent_clients.csv"},
            SourceConfig(files={}),
        )
        with pytest.raises(DataFetchError, match="Lecture impossible"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_missing_columns(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source("id,number,created_at\ninv-1,INV-001,2024-03-01\n")
        with pytest.raises(DataFetchError, match="status, client_id, totals_ht"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_unknown_status(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,cancelled,abcdef1234,100.00,20.00,120.00\n"
        )
        with pytest.raises(DataFetchError, match="Statut inconnu"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_missing_number(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,,2024-03-01T09:00:00Z,,,sent,abcdef1234,100.00,20.00,120.00\n"
        )
        with pytest.raises(DataFetchError, match="Numéro manquant"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_invalid_date(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,pas une date,,,sent,abcdef1234,100.00,20.00,120.00\n"
        )
        with pytest.raises(DataFetchError, match="created_at"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_missing_amount(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,abcdef1234,,20.00,120.00\n"
        )
        with pytest.raises(InvalidAmount, match="totals_ht"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_negative_amount(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,abcdef1234,-100.00,20.00,120.00\n"
        )
        with pytest.raises(InvalidAmount, match="négatif"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)

    def test_totals_keep_source_precision(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,abcdef1234,10.005,2.005,12.01\n"
        )
        invoice = source.fetch_invoices(MARCH_START, MARCH_END, paris)[0]
        assert invoice.totals_ht == Decimal("10.005")
        assert invoice.totals_vat == Decimal("2.005")
        assert invoice.totals_ttc == Decimal("12.01")

    def test_invalid_line_quantity(self, paris: zoneinfo.ZoneInfo) -> None:
        source = _source(
            INVOICES_HEADER + "inv-1,INV-001,2024-03-01T09:00:00Z,,,sent,abcdef1234,100.00,20.00,120.00\n",
            items="invoice_id,description,quantity,unit_price,vat_rate\ninv-1,Conseil,deux,30.00,20\n",
        )
        with pytest.raises(DataFetchError, match="quantity"):
            source.fetch_invoices(MARCH_START, MARCH_END, paris)


class TestSelectPeriod:
    def test_bounds_inclusive(self, paris: zoneinfo.ZoneInfo) -> None:
        invoices = [
            _make_invoice(number="A", created_at=datetime.datetime(2024, 2, 29, 22, 59, tzinfo=UTC)),
            _make_invoice(number="B", created_at=datetime.datetime(2024, 2, 29, 23, 0, tzinfo=UTC)),
            _make_invoice(number="C", created_at=datetime.datetime(2024, 3, 31, 21, 59, tzinfo=UTC)),
            _make_invoice(number="D", created_at=datetime.datetime(2024, 3, 31, 22, 0, tzinfo=UTC)),
        ]
        selected = select_period(invoices, MARCH_START, MARCH_END, paris)
        assert [i.number for i in selected] == ["B", "C"]

    def test_single_day(self, paris: zoneinfo.ZoneInfo) -> None:
        invoices = [_make_invoice(created_at=datetime.datetime(2024, 3, 1, 23, 59, tzinfo=UTC))]
        # 23h59 UTC = 00h59 le 02/03 à Paris
        assert select_period(invoices, MARCH_START, MARCH_START, paris) == []

    def test_tie_broken_by_number(self, paris: zoneinfo.ZoneInfo) -> None:
        same = datetime.datetime(2024, 3, 5, 9, 0, tzinfo=UTC)
        invoices = [_make_invoice(number="INV-010", created_at=same), _make_invoice(number="INV-002", created_at=same)]
        assert [i.number for i in select_period(invoices, MARCH_START, MARCH_END, paris)] == ["INV-002", "INV-010"]


class TestStaticInvoiceSource:
    def test_filters_and_sorts(self, paris: zoneinfo.ZoneInfo) -> None:
        invoices = [
            _make_invoice(number="INV-002", created_at=datetime.datetime(2024, 3, 20, tzinfo=UTC)),
            _make_invoice(number="INV-001", created_at=datetime.datetime(2024, 3, 2, tzinfo=UTC)),
            _make_invoice(number="INV-000", created_at=datetime.datetime(2024, 1, 2, tzinfo=UTC)),
        ]
        source = StaticInvoiceSource(invoices)
        assert [i.number for i in source.fetch_invoices(MARCH_START, MARCH_END, paris)] == ["INV-001", "INV-002"]
