"""Chargement et validation de la configuration YAML."""

from __future__ import annotations

import logging
import re
import zoneinfo
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from craftly_ops.models import ConfigError, Journal

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = {"utf-8", "utf-8-sig", "latin-1", "iso-8859-1"}
SUPPORTED_SEPARATORS = {",", ";"}
REQUIRED_SOURCE_FILES = ("invoices", "clients")

RE_CODE_JOURNAL = re.compile(r"^[A-Z]{2,3}$")
RE_COMPTE = re.compile(r"^[0-9]{3,10}$")


@dataclass(frozen=True)
class JournalConfig:
    """Code et libellé d'un journal."""

    code: str
    label: str


@dataclass(frozen=True)
class AccountConfig:
    """Numéro et libellé d'un compte du plan comptable."""

    number: str
    label: str


@dataclass
class SourceConfig:
    """Fichiers d'export de la base (non frozen — dataclass technique)."""

    files: dict[str, str]
    encoding: str = "utf-8"
    separator: str = ","


def _default_journaux() -> dict[Journal, JournalConfig]:
    return {
        Journal.VENTES: JournalConfig(code="VT", label="Ventes"),
        Journal.BANQUE: JournalConfig(code="BQ", label="Banque"),
    }


def _default_source() -> SourceConfig:
    return SourceConfig(
        files={
            "invoices": "invoices*.csv",
            "clients": "clients*.csv",
            "invoice_items": "invoice_items*.csv",
        }
    )


@dataclass
class AppConfig:
    """Configuration complète de l'application (non frozen — dataclass technique).

    Les valeurs par défaut correspondent au plan comptable livré dans
    ``config/chart_of_accounts.yaml``.
    """

    # Plan comptable
    journaux: dict[Journal, JournalConfig] = field(default_factory=_default_journaux)
    compte_clients_prefix: str = "411"
    compte_clients_label: str = "Clients"
    compte_ventes: AccountConfig = AccountConfig("706000", "Prestations de services")
    compte_tva: AccountConfig = AccountConfig("445710", "TVA collectée")
    compte_banque: AccountConfig = AccountConfig("512000", "Banque")

    # Comptes auxiliaires clients
    client_code_prefix: str = "C"
    client_code_length: int = 6
    unknown_client_code: str = "CXXXXXX"
    unknown_client_name: str = "Client inconnu"

    # Lettrage et règlements
    lettrage_mark: str = "A"
    settlement_prefix: str = "REG-"

    # Source de données
    source: SourceConfig = field(default_factory=_default_source)
    timezone: str = "Europe/Paris"

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        return zoneinfo.ZoneInfo(self.timezone)


def _load_yaml(filepath: Path) -> dict[str, object]:
    """Charge un fichier YAML et retourne son contenu."""
    if not filepath.exists():
        raise ConfigError(f"Fichier de configuration manquant : {filepath}")
    try:
        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML malformé dans {filepath} : {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Le fichier {filepath} doit contenir un mapping YAML (reçu : {type(data).__name__})")
    return data


def _require_key(data: dict[str, object], key: str, context: str) -> object:
    """Vérifie qu'une clé existe dans un dictionnaire."""
    if key not in data:
        raise ConfigError(f"Clé obligatoire '{key}' manquante dans {context}")
    return data[key]


def _require_mapping(data: dict[str, object], key: str, context: str) -> dict[str, object]:
    value = _require_key(data, key, context)
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' doit être un mapping dans {context}")
    return value


def _validate_account(data: dict[str, object], key: str, context: str) -> AccountConfig:
    """Valide un compte ``{numero, libelle}``."""
    raw = _require_mapping(data, key, context)
    number = str(_require_key(raw, "numero", f"{context}/{key}"))
    if not RE_COMPTE.match(number):
        raise ConfigError(f"Numéro de compte invalide pour '{key}' dans {context} : '{number}'")
    label = str(_require_key(raw, "libelle", f"{context}/{key}"))
    return AccountConfig(number=number, label=label)


def _validate_journaux(data: dict[str, object], context: str) -> dict[Journal, JournalConfig]:
    """Valide les journaux ventes et banque."""
    raw = _require_mapping(data, "journaux", context)
    journaux: dict[Journal, JournalConfig] = {}
    for journal in Journal:
        entry = _require_mapping(raw, journal.value, f"{context}/journaux")
        code = str(_require_key(entry, "code", f"{context}/journaux/{journal.value}"))
        if not RE_CODE_JOURNAL.match(code):
            raise ConfigError(f"Code journal invalide pour '{journal.value}' dans {context} : '{code}'")
        label = str(_require_key(entry, "libelle", f"{context}/journaux/{journal.value}"))
        journaux[journal] = JournalConfig(code=code, label=label)
    return journaux


def _validate_chart(data: dict[str, object]) -> dict[str, object]:
    """Valide et extrait le plan comptable sous forme de kwargs AppConfig."""
    context = "chart_of_accounts.yaml"

    journaux = _validate_journaux(data, context)
    comptes = _require_mapping(data, "comptes", context)

    clients = _require_mapping(comptes, "clients", f"{context}/comptes")
    prefix = str(_require_key(clients, "prefix", f"{context}/comptes/clients"))
    if not RE_COMPTE.match(prefix):
        raise ConfigError(f"Préfixe de compte client invalide dans {context} : '{prefix}'")

    kwargs: dict[str, object] = {
        "journaux": journaux,
        "compte_clients_prefix": prefix,
        "compte_clients_label": str(clients.get("libelle", "Clients")),
        "compte_ventes": _validate_account(comptes, "ventes", f"{context}/comptes"),
        "compte_tva": _validate_account(comptes, "tva_collectee", f"{context}/comptes"),
        "compte_banque": _validate_account(comptes, "banque", f"{context}/comptes"),
    }

    aux_raw = data.get("comptes_auxiliaires", {})
    if not isinstance(aux_raw, dict):
        raise ConfigError(f"'comptes_auxiliaires' doit être un mapping dans {context}")
    if "prefix" in aux_raw:
        kwargs["client_code_prefix"] = str(aux_raw["prefix"])
    if "longueur" in aux_raw:
        length = aux_raw["longueur"]
        if not isinstance(length, int) or isinstance(length, bool) or length <= 0:
            raise ConfigError(f"'longueur' doit être un entier positif dans {context}/comptes_auxiliaires")
        kwargs["client_code_length"] = length
    if "client_inconnu" in aux_raw:
        unknown = aux_raw["client_inconnu"]
        if not isinstance(unknown, dict):
            raise ConfigError(f"'client_inconnu' doit être un mapping dans {context}/comptes_auxiliaires")
        kwargs["unknown_client_code"] = str(_require_key(unknown, "code", f"{context}/client_inconnu"))
        kwargs["unknown_client_name"] = str(_require_key(unknown, "libelle", f"{context}/client_inconnu"))

    if "lettrage" in data:
        mark = str(data["lettrage"])
        if not mark.strip():
            raise ConfigError(f"'lettrage' ne peut pas être vide dans {context}")
        kwargs["lettrage_mark"] = mark
    if "prefix_reglement" in data:
        kwargs["settlement_prefix"] = str(data["prefix_reglement"])

    return kwargs


def _validate_sources(data: dict[str, object]) -> tuple[SourceConfig, str]:
    """Valide et extrait la configuration des fichiers source et le fuseau horaire."""
    context = "sources.yaml"

    files = _require_mapping(data, "files", context)
    for key in REQUIRED_SOURCE_FILES:
        if key not in files:
            raise ConfigError(f"Pattern fichier '{key}' manquant dans {context}")
    for file_key, pattern in files.items():
        if not pattern or not str(pattern).strip():
            raise ConfigError(f"Pattern fichier vide pour '{file_key}' dans {context}")

    encoding = str(_require_key(data, "encoding", context))
    if encoding not in SUPPORTED_ENCODINGS:
        raise ConfigError(
            f"Encodage '{encoding}' non supporté. "
            f"Encodages acceptés : {', '.join(sorted(SUPPORTED_ENCODINGS))}"
        )

    separator = str(_require_key(data, "separator", context))
    if separator not in SUPPORTED_SEPARATORS:
        raise ConfigError(
            f"Séparateur '{separator}' non supporté. "
            f"Séparateurs acceptés : {', '.join(sorted(SUPPORTED_SEPARATORS))}"
        )

    timezone = str(data.get("timezone", "Europe/Paris"))
    try:
        zoneinfo.ZoneInfo(timezone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Fuseau horaire inconnu dans {context} : '{timezone}'") from e

    source = SourceConfig(
        files={str(k): str(v) for k, v in files.items()},
        encoding=encoding,
        separator=separator,
    )
    return source, timezone


def load_config(config_dir: Path) -> AppConfig:
    """Charge et valide la configuration complète depuis un répertoire.

    Args:
        config_dir: Répertoire contenant ``chart_of_accounts.yaml`` et ``sources.yaml``.

    Returns:
        AppConfig validée.

    Raises:
        ConfigError: Si un fichier est manquant, malformé, ou contient des valeurs invalides.
    """
    logger.info("Chargement de la configuration depuis %s", config_dir)

    chart_data = _load_yaml(config_dir / "chart_of_accounts.yaml")
    sources_data = _load_yaml(config_dir / "sources.yaml")

    chart_kwargs = _validate_chart(chart_data)
    source, timezone = _validate_sources(sources_data)

    config = AppConfig(source=source, timezone=timezone, **chart_kwargs)  # type: ignore[arg-type]

    logger.debug("Fuseau horaire : %s", config.timezone)

    return config
