"""Utilitaires partagés du moteur d'écritures comptables."""

from __future__ import annotations

import datetime
import re
from decimal import Decimal, InvalidOperation

from craftly_ops.config.loader import AppConfig
from craftly_ops.models import AccountingEntry, BalanceError, Client, InvalidAmount, Invoice

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
FEC_DATE_FORMAT = "%Y%m%d"

# Caractères interdits dans un champ FEC : le séparateur et les fins de ligne
RE_FORBIDDEN = re.compile(r"[|\r\n]")


def client_code(client: Client | None, config: AppConfig) -> str:
    """Construit le code auxiliaire d'un client.

    Concatène ``prefix + id[:longueur]`` en majuscules.

    Examples:
        >>> client_code(Client(id="abcdef1234", name="ACME"), AppConfig())
        'CABCDEF'
        >>> client_code(None, AppConfig())
        'CXXXXXX'
    """
    if client is None:
        return config.unknown_client_code
    return f"{config.client_code_prefix}{client.id[: config.client_code_length].upper()}"


def client_name(client: Client | None, config: AppConfig) -> str:
    """Libellé du compte auxiliaire client."""
    if client is None or not client.name:
        return config.unknown_client_name
    return client.name


def build_client_account(code: str, config: AppConfig) -> str:
    """Numéro de compte client : ``411`` + code auxiliaire.

    Examples:
        >>> build_client_account("CABCDEF", AppConfig())
        '411CABCDEF'
    """
    return f"{config.compte_clients_prefix}{code}"


def sanitize_text(value: str) -> str:
    """Remplace par un espace les caractères qui casseraient une ligne FEC."""
    return RE_FORBIDDEN.sub(" ", value)


def parse_amount(value: object, field_name: str, reference: str) -> Decimal:
    """Convertit un montant en Decimal sans l'arrondir (``-0`` devient ``0``).

    Raises:
        InvalidAmount: montant manquant, non numérique, non fini ou négatif.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"Montant '{field_name}' manquant pour la facture {reference}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise InvalidAmount(
            f"Montant '{field_name}' non numérique pour la facture {reference} : {value!r}"
        ) from e
    if not amount.is_finite():
        raise InvalidAmount(f"Montant '{field_name}' invalide pour la facture {reference} : {value!r}")
    if amount < 0:
        raise InvalidAmount(f"Montant '{field_name}' négatif pour la facture {reference} : {amount}")
    return abs(amount)


def round_amount(amount: Decimal, field_name: str, reference: str) -> Decimal:
    """Arrondit un montant au centime. Lève InvalidAmount si le montant dépasse la précision décimale."""
    try:
        return amount.quantize(CENT)
    except InvalidOperation as e:
        raise InvalidAmount(
            f"Montant '{field_name}' hors limites pour la facture {reference} : {amount}"
        ) from e


def to_amount(value: object, field_name: str, reference: str) -> Decimal:
    """Convertit un montant en Decimal arrondi au centime.

    Raises:
        InvalidAmount: montant manquant, non numérique, non fini, négatif ou hors limites.
    """
    return round_amount(parse_amount(value, field_name, reference), field_name, reference)


def compute_amounts(invoice: Invoice) -> dict[str, Decimal]:
    """Valide et arrondit les totaux HT, TVA et TTC d'une facture. Lève InvalidAmount.

    Les totaux sont repris tels quels, sans contrôle de cohérence. Lorsque
    TTC = HT + TVA avant arrondi, le TTC arrondi est la somme du HT et de la
    TVA arrondis, pour que l'écriture reste équilibrée au centime.
    """
    reference = invoice.number
    raw_ht = parse_amount(invoice.totals_ht, "totals_ht", reference)
    raw_tva = parse_amount(invoice.totals_vat, "totals_vat", reference)
    raw_ttc = parse_amount(invoice.totals_ttc, "totals_ttc", reference)

    ht = round_amount(raw_ht, "totals_ht", reference)
    tva = round_amount(raw_tva, "totals_vat", reference)
    ttc = round_amount(raw_ttc, "totals_ttc", reference)
    if raw_ttc == raw_ht + raw_tva:
        ttc = ht + tva
    return {"ht": ht, "tva": tva, "ttc": ttc}


def format_amount(amount: Decimal) -> str:
    """Formate un montant avec exactement deux décimales (``0.00``)."""
    return f"{amount.quantize(CENT):.2f}"


def format_date(moment: datetime.datetime | datetime.date, tz: datetime.tzinfo) -> str:
    """Formate une date au format FEC ``yyyyMMdd`` dans le fuseau *tz*.

    Un datetime naïf est considéré comme exprimé en UTC.
    """
    return local_date(moment, tz).strftime(FEC_DATE_FORMAT)


def local_date(moment: datetime.datetime | datetime.date, tz: datetime.tzinfo) -> datetime.date:
    """Date calendaire de *moment* dans le fuseau *tz*."""
    if isinstance(moment, datetime.datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=datetime.timezone.utc)
        return moment.astimezone(tz).date()
    return moment


def verify_balance(entries: list[AccountingEntry]) -> None:
    """Vérifie l'équilibre débit/crédit d'un ensemble d'écritures. Lève BalanceError si déséquilibre."""
    total_debit = sum((Decimal(e.debit) for e in entries), ZERO)
    total_credit = sum((Decimal(e.credit) for e in entries), ZERO)
    if total_debit != total_credit:
        raise BalanceError(
            f"Déséquilibre écriture: débit={total_debit}, crédit={total_credit}"
        )
