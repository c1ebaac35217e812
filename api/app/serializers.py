"""Conversion des dataclasses métier vers les structures JSON de l'API."""

from __future__ import annotations

from craftly_ops.exporters.excel import summarize
from craftly_ops.exporters.fec import FEC_COLUMNS
from craftly_ops.models import AccountingEntry, Anomaly, FECExport


def serialize_entry(entry: AccountingEntry) -> dict[str, object]:
    """Sérialise une AccountingEntry : clés = noms des colonnes FEC, valeurs texte."""
    return dict(zip(FEC_COLUMNS, entry.as_row()))


def serialize_anomaly(anomaly: Anomaly) -> dict[str, object]:
    """Sérialise une Anomaly vers le format JSON de l'API."""
    return {
        "type": anomaly.type,
        "severity": anomaly.severity,
        "reference": anomaly.reference,
        "detail": anomaly.detail,
        "expected_value": anomaly.expected_value,
        "actual_value": anomaly.actual_value,
    }


def serialize_response(result: FECExport) -> dict[str, object]:
    """Assemble la réponse complète de /api/process."""
    return {
        "filename": result.filename,
        "entries": [serialize_entry(e) for e in result.entries],
        "anomalies": [serialize_anomaly(a) for a in result.anomalies],
        "summary": summarize(result.entries),
    }
