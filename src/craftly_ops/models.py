"""Modèles de données métier et hiérarchie d'exceptions."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


# --- Exceptions métier ---


class CraftlyOpsError(Exception):
    """Erreur de base pour l'application craftly-ops."""


class ConfigError(CraftlyOpsError):
    """YAML malformé, clé manquante, valeur invalide."""


class InvalidSiren(CraftlyOpsError):
    """SIREN absent ou ne comportant pas exactement 9 chiffres."""


class InvalidPeriod(CraftlyOpsError):
    """Date de début postérieure à la date de fin."""


class DataFetchError(CraftlyOpsError):
    """Lecture des factures impossible (fichier manquant, colonne absente, source indisponible)."""


class InvalidAmount(CraftlyOpsError):
    """Montant de facture manquant, négatif ou non numérique."""


class BalanceError(CraftlyOpsError):
    """Déséquilibre débit/crédit (bug moteur)."""


class FECFormatError(CraftlyOpsError):
    """Valeur incompatible avec le format FEC (séparateur ou saut de ligne dans un champ)."""


# --- Énumérations ---


class InvoiceStatus(str, Enum):
    """Statut d'une facture."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class Journal(str, Enum):
    """Journaux utilisés par l'export (codes et libellés dans chart_of_accounts.yaml)."""

    VENTES = "ventes"
    BANQUE = "banque"


# --- Dataclasses métier (frozen) ---


@dataclass(frozen=True)
class Client:
    """Client rattaché à une facture."""

    id: str
    name: str


@dataclass(frozen=True)
class InvoiceLine:
    """Ligne de facture (prestation ou article)."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    vat_rate: Decimal


@dataclass(frozen=True)
class Invoice:
    """Facture de vente validée à la frontière de la source de données."""

    id: str
    number: str
    created_at: datetime.datetime
    due_date: datetime.date | None
    paid_at: datetime.datetime | None
    status: InvoiceStatus
    client: Client | None
    totals_ht: Decimal
    totals_vat: Decimal
    totals_ttc: Decimal
    lines: tuple[InvoiceLine, ...] = ()

    @property
    def is_settled(self) -> bool:
        """Vrai si la facture donne lieu à une écriture de règlement."""
        return self.status is InvoiceStatus.PAID and self.paid_at is not None


@dataclass(frozen=True)
class AccountingEntry:
    """Ligne d'écriture FEC : les 18 champs, déjà formatés."""

    journal_code: str
    journal_lib: str
    ecriture_num: str
    ecriture_date: str
    compte_num: str
    compte_lib: str
    comp_aux_num: str
    comp_aux_lib: str
    piece_ref: str
    piece_date: str
    ecriture_lib: str
    debit: str
    credit: str
    ecriture_let: str
    date_let: str
    valid_date: str
    montant_devise: str = ""
    idevise: str = ""

    def as_row(self) -> list[str]:
        """Retourne les 18 valeurs dans l'ordre des colonnes FEC."""
        return [
            self.journal_code,
            self.journal_lib,
            self.ecriture_num,
            self.ecriture_date,
            self.compte_num,
            self.compte_lib,
            self.comp_aux_num,
            self.comp_aux_lib,
            self.piece_ref,
            self.piece_date,
            self.ecriture_lib,
            self.debit,
            self.credit,
            self.ecriture_let,
            self.date_let,
            self.valid_date,
            self.montant_devise,
            self.idevise,
        ]


@dataclass(frozen=True)
class Anomaly:
    """Anomalie détectée lors du traitement."""

    type: str
    severity: str
    reference: str
    detail: str
    expected_value: str | None
    actual_value: str | None


@dataclass(frozen=True)
class FECExportRequest:
    """Paramètres d'un export : période (bornes incluses) et SIREN."""

    start_date: datetime.date
    end_date: datetime.date
    siren: str


@dataclass(frozen=True)
class FECExport:
    """Résultat d'un export FEC.

    Convention : les listes ne doivent pas être mutées après construction.
    """

    content: str
    filename: str
    entries: list[AccountingEntry] = field(default_factory=list)
    anomalies: list[Anomaly] = field(default_factory=list)
