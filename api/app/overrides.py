"""Validation et application des overrides du plan comptable."""

from __future__ import annotations

import dataclasses
import re
from typing import Any

from pydantic import BaseModel, field_validator

from craftly_ops.config.loader import AccountConfig, AppConfig, JournalConfig
from craftly_ops.models import Journal

# --- Regex de validation ---
RE_COMPTE = re.compile(r"^[0-9]{3,10}$")
RE_CODE_JOURNAL = re.compile(r"^[A-Z]{2,3}$")


class JournauxOverride(BaseModel):
    """Override des codes journaux."""

    ventes: str | None = None
    banque: str | None = None

    @field_validator("ventes", "banque")
    @classmethod
    def validate_journal_code(cls, v: str | None) -> str | None:
        if v is not None and not RE_CODE_JOURNAL.match(v):
            raise ValueError(f"Code journal invalide : '{v}'")
        return v


class ComptesOverride(BaseModel):
    """Override des numéros de comptes."""

    clients: str | None = None
    ventes: str | None = None
    tva_collectee: str | None = None
    banque: str | None = None

    @field_validator("clients", "ventes", "tva_collectee", "banque")
    @classmethod
    def validate_compte(cls, v: str | None) -> str | None:
        if v is not None and not RE_COMPTE.match(v):
            raise ValueError(f"Numéro de compte invalide : '{v}'")
        return v


class AccountOverridesSchema(BaseModel):
    """Schéma Pydantic pour les overrides du plan comptable."""

    journaux: JournauxOverride | None = None
    comptes: ComptesOverride | None = None


def _replace_number(account: AccountConfig, number: str | None) -> AccountConfig:
    if number is None:
        return account
    return dataclasses.replace(account, number=number)


def apply_overrides(config: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    """Applique les overrides au config — merge partiel, retourne une copie."""
    schema = AccountOverridesSchema.model_validate(overrides)

    replacements: dict[str, Any] = {}

    if schema.journaux:
        journaux = dict(config.journaux)
        for journal, code in (
            (Journal.VENTES, schema.journaux.ventes),
            (Journal.BANQUE, schema.journaux.banque),
        ):
            if code is not None:
                journaux[journal] = JournalConfig(code=code, label=journaux[journal].label)
        replacements["journaux"] = journaux

    if schema.comptes:
        if schema.comptes.clients is not None:
            replacements["compte_clients_prefix"] = schema.comptes.clients
        replacements["compte_ventes"] = _replace_number(config.compte_ventes, schema.comptes.ventes)
        replacements["compte_tva"] = _replace_number(config.compte_tva, schema.comptes.tva_collectee)
        replacements["compte_banque"] = _replace_number(config.compte_banque, schema.comptes.banque)

    if not replacements:
        return config

    return dataclasses.replace(config, **replacements)
