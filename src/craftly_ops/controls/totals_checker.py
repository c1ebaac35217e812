"""Contrôle de cohérence des totaux de facture."""

from __future__ import annotations

import logging
from decimal import Decimal

from craftly_ops.models import Anomaly, Invoice, InvoiceStatus

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = Decimal("0.01")  # euros


class TotalsChecker:
    """Contrôles non bloquants sur les factures exportées.

    L'export ne corrige rien : les totaux sont repris tels quels, les écarts
    sont seulement signalés.
    """

    @staticmethod
    def check(invoices: list[Invoice]) -> list[Anomaly]:
        anomalies: list[Anomaly] = []
        for invoice in invoices:
            anomalies.extend(TotalsChecker._check_ttc_coherence(invoice))
            anomalies.extend(TotalsChecker._check_lines(invoice))
            anomalies.extend(TotalsChecker._check_paid_date(invoice))
        return anomalies

    @staticmethod
    def _check_ttc_coherence(invoice: Invoice) -> list[Anomaly]:
        """Contrôle 1 — TTC = HT + TVA."""
        expected = invoice.totals_ht + invoice.totals_vat
        if abs(expected - invoice.totals_ttc) > AMOUNT_TOLERANCE:
            return [
                Anomaly(
                    type="totals_mismatch",
                    severity="warning",
                    reference=invoice.number,
                    detail=(
                        f"Total TTC incohérent : {invoice.totals_ttc}€ au lieu de "
                        f"{expected}€ (HT {invoice.totals_ht}€ + TVA {invoice.totals_vat}€)"
                    ),
                    expected_value=str(expected),
                    actual_value=str(invoice.totals_ttc),
                )
            ]
        return []

    @staticmethod
    def _check_lines(invoice: Invoice) -> list[Anomaly]:
        """Contrôle 2 — ∑ quantité × prix unitaire des lignes = total HT."""
        if not invoice.lines:
            return []
        lines_ht = sum(
            (line.quantity * line.unit_price for line in invoice.lines), Decimal("0")
        ).quantize(Decimal("0.01"))
        if abs(lines_ht - invoice.totals_ht) > AMOUNT_TOLERANCE:
            return [
                Anomaly(
                    type="lines_mismatch",
                    severity="warning",
                    reference=invoice.number,
                    detail=(
                        f"Somme des lignes ({lines_ht}€ HT) différente du total HT "
                        f"de la facture ({invoice.totals_ht}€)"
                    ),
                    expected_value=str(invoice.totals_ht),
                    actual_value=str(lines_ht),
                )
            ]
        return []

    @staticmethod
    def _check_paid_date(invoice: Invoice) -> list[Anomaly]:
        """Contrôle 3 — facture payée sans date de paiement : pas d'écriture de règlement."""
        if invoice.status is InvoiceStatus.PAID and invoice.paid_at is None:
            return [
                Anomaly(
                    type="paid_without_date",
                    severity="warning",
                    reference=invoice.number,
                    detail="Facture payée sans date de paiement — écriture de règlement non générée",
                    expected_value=None,
                    actual_value=None,
                )
            ]
        return []
