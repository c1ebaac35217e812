"""Génération des écritures de règlement (512 → 411)."""

from __future__ import annotations

import datetime

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
    verify_balance,
)
from craftly_ops.models import AccountingEntry, Invoice, Journal


def generate_settlement_entries(
    invoice: Invoice, config: AppConfig, tz: datetime.tzinfo
) -> list[AccountingEntry]:
    """Génère la paire de règlement d'une facture payée (512 D / 411 C, montant TTC).

    Retourne ``[]`` si la facture n'est pas payée ou si la date de paiement est absente.
    """
    if not invoice.is_settled or invoice.paid_at is None:
        return []

    journal = config.journaux[Journal.BANQUE]
    number = sanitize_text(invoice.number)
    code = client_code(invoice.client, config)
    name = sanitize_text(client_name(invoice.client, config))
    ttc = format_amount(compute_amounts(invoice)["ttc"])
    paid_str = format_date(invoice.paid_at, tz)
    ecriture_num = f"{config.settlement_prefix}{number}"
    label = f"Règlement facture {number}"

    entries = [
        # Ligne 512 (banque): débit TTC
        AccountingEntry(
            journal_code=journal.code,
            journal_lib=journal.label,
            ecriture_num=ecriture_num,
            ecriture_date=paid_str,
            compte_num=config.compte_banque.number,
            compte_lib=config.compte_banque.label,
            comp_aux_num="",
            comp_aux_lib="",
            piece_ref=number,
            piece_date=paid_str,
            ecriture_lib=label,
            debit=ttc,
            credit=format_amount(ZERO),
            ecriture_let=config.lettrage_mark,
            date_let=paid_str,
            valid_date=paid_str,
        ),
        # Ligne 411 (client): crédit TTC, lettrée avec le débit de la vente
        AccountingEntry(
            journal_code=journal.code,
            journal_lib=journal.label,
            ecriture_num=ecriture_num,
            ecriture_date=paid_str,
            compte_num=build_client_account(code, config),
            compte_lib=config.compte_clients_label,
            comp_aux_num=code,
            comp_aux_lib=name,
            piece_ref=number,
            piece_date=paid_str,
            ecriture_lib=label,
            debit=format_amount(ZERO),
            credit=ttc,
            ecriture_let=config.lettrage_mark,
            date_let=paid_str,
            valid_date=paid_str,
        ),
    ]

    verify_balance(entries)
    return entries
