"""Parse free-form, localized status/purpose/deal-type strings into closed enums.

Brokers and the admin panel send values such as ``"Vendido"``, ``"alugada"``
or ``"Pendente"``. Every value is folded (accents stripped, punctuation and
spaces dropped, lower-cased) and looked up in a per-field synonym table.
The ``normalize_*`` functions return ``None`` for anything unrecognized; the
``parse_*`` variants raise ``ValidationError`` and are what request handling
uses at the boundary.
"""

import unicodedata

from marketplace.core.errors import ValidationError
from marketplace.models.property import PropertyStatus, Purpose
from marketplace.models.sale import DealType

STATUS_SYNONYMS: dict[str, PropertyStatus] = {
    "pendingapproval": PropertyStatus.pending_approval,
    "pending": PropertyStatus.pending_approval,
    "pendente": PropertyStatus.pending_approval,
    "aguardandoaprovacao": PropertyStatus.pending_approval,
    "approved": PropertyStatus.approved,
    "aprovado": PropertyStatus.approved,
    "aprovada": PropertyStatus.approved,
    "rejected": PropertyStatus.rejected,
    "rejeitado": PropertyStatus.rejected,
    "rejeitada": PropertyStatus.rejected,
    "rented": PropertyStatus.rented,
    "alugado": PropertyStatus.rented,
    "alugada": PropertyStatus.rented,
    "sold": PropertyStatus.sold,
    "vendido": PropertyStatus.sold,
    "vendida": PropertyStatus.sold,
}

PURPOSE_SYNONYMS: dict[str, Purpose] = {
    "venda": Purpose.sale,
    "sale": Purpose.sale,
    "compra": Purpose.sale,
    "aluguel": Purpose.rent,
    "locacao": Purpose.rent,
    "rent": Purpose.rent,
    "vendaealuguel": Purpose.sale_and_rent,
    "vendaaluguel": Purpose.sale_and_rent,
    "saleandrent": Purpose.sale_and_rent,
    "ambos": Purpose.sale_and_rent,
    "both": Purpose.sale_and_rent,
}

DEAL_TYPE_SYNONYMS: dict[str, DealType] = {
    "sale": DealType.sale,
    "venda": DealType.sale,
    "vendido": DealType.sale,
    "sold": DealType.sale,
    "rent": DealType.rent,
    "aluguel": DealType.rent,
    "locacao": DealType.rent,
    "alugado": DealType.rent,
    "rented": DealType.rent,
}


def fold(raw: str) -> str:
    decomposed = unicodedata.normalize("NFD", raw)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return "".join(ch for ch in stripped if ch.isalnum()).lower()


def _lookup(raw, table: dict, allowed) -> object | None:
    if isinstance(raw, allowed):
        return raw
    if not isinstance(raw, str):
        return None
    value = table.get(fold(raw))
    if value is None or value not in allowed:
        return None
    return value


def normalize_status(raw) -> PropertyStatus | None:
    return _lookup(raw, STATUS_SYNONYMS, PropertyStatus)


def normalize_purpose(raw) -> Purpose | None:
    return _lookup(raw, PURPOSE_SYNONYMS, Purpose)


def normalize_deal_type(raw) -> DealType | None:
    return _lookup(raw, DEAL_TYPE_SYNONYMS, DealType)


def parse_status(raw) -> PropertyStatus:
    status = normalize_status(raw)
    if status is None:
        raise ValidationError("Invalid status")
    return status


def parse_purpose(raw) -> Purpose:
    purpose = normalize_purpose(raw)
    if purpose is None:
        raise ValidationError("Invalid purpose")
    return purpose


def parse_deal_type(raw) -> DealType:
    deal_type = normalize_deal_type(raw)
    if deal_type is None:
        raise ValidationError("Invalid deal type")
    return deal_type


def purpose_allows(purpose: Purpose, deal_type: DealType) -> bool:
    if deal_type == DealType.sale:
        return purpose in (Purpose.sale, Purpose.sale_and_rent)
    return purpose in (Purpose.rent, Purpose.sale_and_rent)
