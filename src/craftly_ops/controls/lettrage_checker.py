"""Contrôle de lettrage soldé sur les comptes clients (411)."""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal

from craftly_ops.config.loader import AppConfig
from craftly_ops.models import AccountingEntry, Anomaly

logger = logging.getLogger(__name__)


class LettrageChecker:
    """Vérifie que les écritures 411 lettrées de chaque client sont soldées (∑ débits == ∑ crédits)."""

    @staticmethod
    def check(entries: list[AccountingEntry], config: AppConfig) -> list[Anomaly]:
        """Filtre les écritures 411 lettrées, groupe par compte auxiliaire, vérifie l'équilibre."""
        groups: dict[str, list[AccountingEntry]] = defaultdict(list)

        for entry in entries:
            if entry.compte_num.startswith(config.compte_clients_prefix) and entry.ecriture_let:
                groups[entry.comp_aux_num].append(entry)

        anomalies: list[Anomaly] = []

        for aux, group in groups.items():
            total_debit = sum((Decimal(e.debit) for e in group), Decimal("0.00"))
            total_credit = sum((Decimal(e.credit) for e in group), Decimal("0.00"))
            diff = abs(total_debit - total_credit)

            if diff != 0:
                pieces = sorted({e.piece_ref for e in group})
                anomalies.append(
                    Anomaly(
                        type="lettrage_411_unbalanced",
                        severity="warning",
                        reference=aux,
                        detail=(
                            f"Lettrage du compte client {aux} non soldé : "
                            f"débits={total_debit}€, crédits={total_credit}€, "
                            f"écart={diff}€ (pièces : {', '.join(pieces)})"
                        ),
                        expected_value=str(total_debit),
                        actual_value=str(total_credit),
                    )
                )

        if anomalies:
            logger.warning("%d comptes clients lettrés non soldés", len(anomalies))
        return anomalies
