"""Moteur d'écritures comptables."""

from __future__ import annotations

from craftly_ops.engine.ledger import (
    project,
    project_invoice,
)

__all__ = [
    "project",
    "project_invoice",
]
