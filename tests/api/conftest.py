"""Fixtures pour les tests d'intégration API."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client() -> TestClient:
    """TestClient FastAPI avec configuration de test."""
    config_dir = str(Path(__file__).parent.parent / "fixtures" / "config")
    os.environ["CONFIG_DIR"] = config_dir

    from api.app.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def invoice_files() -> list[tuple[str, tuple[str, bytes, str]]]:
    """Export CSV invoices/clients/invoice_items pour upload multipart."""
    fixtures = Path(__file__).parent.parent / "fixtures" / "csv"
    return [
        ("files", ("invoices.csv", (fixtures / "invoices.csv").read_bytes(), "text/csv")),
        ("files", ("clients.csv", (fixtures / "clients.csv").read_bytes(), "text/csv")),
        ("files", ("invoice_items.csv", (fixtures / "invoice_items.csv").read_bytes(), "text/csv")),
    ]


@pytest.fixture
def march_form() -> dict[str, str]:
    """Champs de formulaire : mars 2024, SIREN valide."""
    return {"start_date": "2024-03-01", "end_date": "2024-03-31", "siren": "123456789"}
