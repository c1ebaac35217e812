"""Projection des factures en écritures comptables."""

from __future__ import annotations

import datetime
import logging

from craftly_ops.config.loader import AppConfig
from craftly_ops.engine.sale_entries import generate_sale_entries
from craftly_ops.engine.settlement_entries import generate_settlement_entries
from craftly_ops.models import AccountingEntry, Invoice

logger = logging.getLogger(__name__)


def project_invoice(
    invoice: Invoice, config: AppConfig, tz: datetime.tzinfo
) -> list[AccountingEntry]:
    """Écritures d'une facture, dans l'ordre : 411 D, 706 C, 4457 C, puis 512 D / 411 C si payée."""
    return generate_sale_entries(invoice, config, tz) + generate_settlement_entries(invoice, config, tz)


def project(
    invoices: list[Invoice],
    config: AppConfig,
    tz: datetime.tzinfo | None = None,
) -> list[AccountingEntry]:
    """Projette les factures en une séquence ordonnée d'écritures.

    Les factures sont traitées dans l'ordre reçu (le tri par date de création
    incombe à l'appelant). Les totaux sont repris tels quels ; aucune écriture
    n'est retournée si un montant est invalide (InvalidAmount est propagée).

    Args:
        invoices: Factures de la période.
        config: Plan comptable.
        tz: Fuseau horaire des dates FEC (défaut : ``config.timezone``).
    """
    zone = tz if tz is not None else config.tzinfo
    entries = [
        entry
        for invoice in invoices
        for entry in project_invoice(invoice, config, zone)
    ]
    logger.info("%d écritures générées pour %d factures", len(entries), len(invoices))
