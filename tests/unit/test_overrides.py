"""Tests pour api/app/overrides.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from api.app.overrides import apply_overrides
from craftly_ops.config.loader import AppConfig
from craftly_ops.models import Journal


class TestApplyOverrides:
    def test_empty_returns_same_config(self, sample_config: AppConfig) -> None:
        assert apply_overrides(sample_config, {}) is sample_config

    def test_journal_code(self, sample_config: AppConfig) -> None:
        config = apply_overrides(sample_config, {"journaux": {"ventes": "VE"}})
        assert config.journaux[Journal.VENTES].code == "VE"
        assert config.journaux[Journal.VENTES].label == "Ventes"
        assert config.journaux[Journal.BANQUE].code == "BQ"

    def test_accounts(self, sample_config: AppConfig) -> None:
        config = apply_overrides(
            sample_config,
            {"comptes": {"clients": "4110", "ventes": "706100", "tva_collectee": "445711", "banque": "512100"}},
        )
        assert config.compte_clients_prefix == "4110"
        assert config.compte_ventes.number == "706100"
        assert config.compte_ventes.label == "Prestations de services"
        assert config.compte_tva.number == "445711"
        assert config.compte_banque.number == "512100"

    def test_partial_merge_keeps_others(self, sample_config: AppConfig) -> None:
        config = apply_overrides(sample_config, {"comptes": {"banque": "512100"}})
        assert config.compte_ventes.number == "706000"
        assert config.compte_clients_prefix == "411"

    def test_input_config_untouched(self, sample_config: AppConfig) -> None:
        apply_overrides(sample_config, {"journaux": {"banque": "BNP"}, "comptes": {"ventes": "706100"}})
        assert sample_config.journaux[Journal.BANQUE].code == "BQ"
        assert sample_config.compte_ventes.number == "706000"

    def test_invalid_journal_code(self, sample_config: AppConfig) -> None:
        with pytest.raises(ValidationError):
            apply_overrides(sample_config, {"journaux": {"ventes": "ventes"}})

    def test_invalid_account(self, sample_config: AppConfig) -> None:
        with pytest.raises(ValidationError):
            apply_overrides(sample_config, {"comptes": {"ventes": "70A"}})
