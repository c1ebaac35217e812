"""Export Excel multi-onglets et résumé console."""

from __future__ import annotations

from collections import Counter
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd

from craftly_ops.exporters.fec import FEC_COLUMNS
from craftly_ops.models import AccountingEntry, Anomaly

ENTRIES_COLUMNS = FEC_COLUMNS

ANOMALIES_COLUMNS = [
    "type",
    "severity",
    "reference",
    "detail",
    "expected_value",
    "actual_value",
]

AMOUNT_COLUMNS = ("Debit", "Credit")


def _build_frames(
    entries: list[AccountingEntry], anomalies: list[Anomaly]
) -> tuple[pd.DataFrame, pd.DataFrame]:
    df_entries = pd.DataFrame([e.as_row() for e in entries], columns=ENTRIES_COLUMNS)
    # Montants numériques dans le tableur (texte "0.00" dans le FEC)
    for column in AMOUNT_COLUMNS:
        df_entries[column] = df_entries[column].astype(float)

    anomalies_data = [
        {
            "type": a.type,
            "severity": a.severity,
            "reference": a.reference,
            "detail": a.detail,
            "expected_value": a.expected_value,
            "actual_value": a.actual_value,
        }
        for a in anomalies
    ]
    df_anomalies = pd.DataFrame(anomalies_data, columns=ANOMALIES_COLUMNS)
    return df_entries, df_anomalies


def _write(
    entries: list[AccountingEntry], anomalies: list[Anomaly], target: Path | BytesIO
) -> None:
    df_entries, df_anomalies = _build_frames(entries, anomalies)
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        df_entries.to_excel(writer, sheet_name="Écritures", index=False)
        df_anomalies.to_excel(writer, sheet_name="Anomalies", index=False)


def export(
    entries: list[AccountingEntry],
    anomalies: list[Anomaly],
    output_path: Path,
) -> None:
    """Exporte les écritures et anomalies dans un fichier Excel multi-onglets."""
    _write(entries, anomalies, output_path)


def export_to_bytes(
    entries: list[AccountingEntry],
    anomalies: list[Anomaly],
) -> BytesIO:
    """Même export qu'``export`` mais en mémoire, positionné au début du buffer."""
    buffer = BytesIO()
    _write(entries, anomalies, buffer)
    buffer.seek(0)
    return buffer


def summarize(entries: list[AccountingEntry]) -> dict[str, Any]:
    """Résumé chiffré : écritures par journal, pièces distinctes, totaux débit/crédit."""
    par_journal: Counter[str] = Counter(e.journal_code for e in entries)
    pieces = {e.piece_ref for e in entries}
    total_debit = sum((Decimal(e.debit) for e in entries), Decimal("0.00"))
    total_credit = sum((Decimal(e.credit) for e in entries), Decimal("0.00"))
    return {
        "ecritures": len(entries),
        "factures": len(pieces),
        "ecritures_par_journal": dict(sorted(par_journal.items())),
        "totaux": {"debit": f"{total_debit:.2f}", "credit": f"{total_credit:.2f}"},
    }


def print_summary(
    entries: list[AccountingEntry],
    anomalies: list[Anomaly],
    filename: str,
) -> None:
    """Affiche un résumé en console."""
    summary = summarize(entries)
    totaux = summary["totaux"]

    print("=== Résumé ===")
    print(f"Fichier FEC : {filename}")
    print(f"Factures traitées : {summary['factures']}")
    print(f"Écritures générées : {summary['ecritures']}")
    for journal, count in summary["ecritures_par_journal"].items():
        print(f"  {journal} : {count}")
    print(f"Total débit : {totaux['debit']} / total crédit : {totaux['credit']}")

    if not anomalies:
        print("Aucune anomalie détectée")
        return

    n_serious = len([a for a in anomalies if a.severity != "info"])
    n_info = len([a for a in anomalies if a.severity == "info"])
    print(f"Anomalies : {n_serious} warning/error, {n_info} info")

    # Ventilation par type (ordre d'apparition)
    type_order: list[str] = []
    type_counts: Counter[str] = Counter()
    for a in anomalies:
        if a.type not in type_counts:
            type_order.append(a.type)
        type_counts[a.type] += 1

    print("  Par type :")
    for anom_type in type_order:
        print(f"    {anom_type:<25s}: {type_counts[anom_type]}")
