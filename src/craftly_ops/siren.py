"""Validation du SIREN (identifiant d'entreprise à 9 chiffres)."""

from __future__ import annotations

import re

from craftly_ops.models import InvalidSiren

RE_SIREN = re.compile(r"^[0-9]{9}$")
RE_WHITESPACE = re.compile(r"\s+")
# Numéro de TVA intracommunautaire français : FR + clé (2 caractères) + SIREN
RE_VAT_NUMBER_FR = re.compile(r"FR([0-9A-Z]{2})([0-9]{9})")


def _strip(siren: str) -> str:
    return RE_WHITESPACE.sub("", siren)


def is_valid_siren(siren: str) -> bool:
    """Vrai si *siren* comporte exactement 9 chiffres une fois les espaces retirés.

    Contrôle de format uniquement (pas de clé de Luhn).

    Examples:
        >>> is_valid_siren("123 456 789")
        True
        >>> is_valid_siren("12345678A")
        False
    """
    if not isinstance(siren, str):
        return False
    return RE_SIREN.match(_strip(siren)) is not None


def normalize_siren(siren: str) -> str:
    """Retourne le SIREN sans espaces. Lève InvalidSiren si le format est invalide."""
    if not is_valid_siren(siren):
        raise InvalidSiren(f"Le SIREN doit contenir exactement 9 chiffres (reçu : {siren!r})")
    return _strip(siren)


def siren_from_vat_number(vat_number: str | None) -> str | None:
    """Extrait le SIREN d'un numéro de TVA français (``FR`` + clé + 9 chiffres).

    Retourne ``None`` si le numéro n'a pas ce format.

    Examples:
        >>> siren_from_vat_number("FR 32 123 456 789")
        '123456789'
    """
    if not vat_number:
        return None
    match = RE_VAT_NUMBER_FR.fullmatch(_strip(vat_number).upper())
    if match is None:
        return None
    return match.group(2)
