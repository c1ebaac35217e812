import zoneinfo
from pathlib import Path

import pytest

from craftly_ops.config.loader import AppConfig


@pytest.fixture
def fixtures_dir() -> Path:
    """Chemin vers le répertoire de fixtures."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_config() -> AppConfig:
    """AppConfig avec le plan comptable livré (VT/BQ, 411, 706000, 445710, 512000)."""
    return AppConfig()


@pytest.fixture
def paris() -> zoneinfo.ZoneInfo:
    """Fuseau de référence des dates FEC."""
    return zoneinfo.ZoneInfo("Europe/Paris")
