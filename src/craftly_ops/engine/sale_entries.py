"""Génération des écritures de vente (411 → 706 + 4457)."""

from __future__ import annotations

import datetime
from decimal import Decimal

from craftly_ops.config.loader import AppConfig
from craftly_ops.engine.accounts import (
    ZERO,
    build_client_account,
    client_code,
    client_name,
    compute_amounts,
    format_amount,
    format_date,
    sanitize_text,
)
from craftly_ops.models import AccountingEntry, Invoice, InvoiceStatus, Journal


def generate_sale_entries(
    invoice: Invoice, config: AppConfig, tz: datetime.tzinfo
) -> list[AccountingEntry]:
    """Génère les écritures de vente d'une facture : 411 D, 706 C et 4457 C (si TVA).

    Les montants sont ceux de la facture : un TTC différent de HT + TVA donne
    une écriture déséquilibrée, signalée par ``TotalsChecker`` et non bloquante.
    """
    amounts = compute_amounts(invoice)
    return _build_entries(invoice, amounts, config, tz)


def _build_entries(
    invoice: Invoice,
    amounts: dict[str, Decimal],
    config: AppConfig,
    tz: datetime.tzinfo,
) -> list[AccountingEntry]:
    journal = config.journaux[Journal.VENTES]
    number = sanitize_text(invoice.number)
    code = client_code(invoice.client, config)
    name = sanitize_text(client_name(invoice.client, config))
    date_str = format_date(invoice.created_at, tz)
    label = f"Facture {number} - {name}"

    # Lettrage du compte client : marque constante dès que la facture est payée
    is_paid = invoice.status is InvoiceStatus.PAID
    lettrage = config.lettrage_mark if is_paid else ""
    date_let = format_date(invoice.paid_at, tz) if is_paid and invoice.paid_at else ""

    entries: list[AccountingEntry] = []

    # Ligne 411 (client): débit TTC
    entries.append(
        AccountingEntry(
            journal_code=journal.code,
            journal_lib=journal.label,
            ecriture_num=number,
            ecriture_date=date_str,
            compte_num=build_client_account(code, config),
            compte_lib=config.compte_clients_label,
            comp_aux_num=code,
            comp_aux_lib=name,
            piece_ref=number,
            piece_date=date_str,
            ecriture_lib=label,
            debit=format_amount(amounts["ttc"]),
            credit=format_amount(ZERO),
            ecriture_let=lettrage,
            date_let=date_let,
            valid_date=date_str,
        )
    )

    # Ligne 706 (prestations de services): crédit HT
    entries.append(
        AccountingEntry(
            journal_code=journal.code,
            journal_lib=journal.label,
            ecriture_num=number,
            ecriture_date=date_str,
            compte_num=config.compte_ventes.number,
            compte_lib=config.compte_ventes.label,
            comp_aux_num="",
            comp_aux_lib="",
            piece_ref=number,
            piece_date=date_str,
            ecriture_lib=label,
            debit=format_amount(ZERO),
            credit=format_amount(amounts["ht"]),
            ecriture_let="",
            date_let="",
            valid_date=date_str,
        )
    )

    # Ligne 4457 (TVA collectée): omise si TVA = 0
    if amounts["tva"] > ZERO:
        entries.append(
            AccountingEntry(
                journal_code=journal.code,
                journal_lib=journal.label,
                ecriture_num=number,
                ecriture_date=date_str,
                compte_num=config.compte_tva.number,
                compte_lib=config.compte_tva.label,
                comp_aux_num="",
                comp_aux_lib="",
                piece_ref=number,
                piece_date=date_str,
                ecriture_lib=f"TVA sur facture {number}",
                debit=format_amount(ZERO),
                credit=format_amount(amounts["tva"]),
                ecriture_let="",
                date_let="",
                valid_date=date_str,
            )
        )

    return entries
