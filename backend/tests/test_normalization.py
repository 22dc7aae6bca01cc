import pytest

from marketplace.core.errors import ValidationError
from marketplace.models import DealType, PropertyStatus, Purpose
from marketplace.services.normalization import (
    STATUS_SYNONYMS,
    fold,
    normalize_deal_type,
    normalize_purpose,
    normalize_status,
    parse_deal_type,
    parse_status,
    purpose_allows,
)


def test_fold_strips_accents_punctuation_and_case():
    assert fold("  Locação ") == "locacao"
    assert fold("Venda e Aluguel") == "vendaealuguel"
    assert fold("pending_approval") == "pendingapproval"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Pendente", PropertyStatus.pending_approval),
        ("pending", PropertyStatus.pending_approval),
        ("APROVADO", PropertyStatus.approved),
        ("Aprovada", PropertyStatus.approved),
        ("rejeitado", PropertyStatus.rejected),
        ("Alugado", PropertyStatus.rented),
        ("alugada", PropertyStatus.rented),
        ("Vendido", PropertyStatus.sold),
        ("sold", PropertyStatus.sold),
    ],
)
def test_status_synonyms(raw, expected):
    assert normalize_status(raw) == expected


def test_every_synonym_and_canonical_value_is_recognized():
    for synonym, status in STATUS_SYNONYMS.items():
        assert normalize_status(synonym) == status
    for status in PropertyStatus:
        assert normalize_status(status.value) == status
        assert normalize_status(status) == status


@pytest.mark.parametrize("raw", ["", "   ", "archived", "vendid", None, 3, ["sold"]])
def test_unknown_status_is_none(raw):
    assert normalize_status(raw) is None


def test_parse_status_raises_on_unknown():
    with pytest.raises(ValidationError):
        parse_status("arquivado")


def test_purpose_and_deal_type_tables():
    assert normalize_purpose("venda") == Purpose.sale
    assert normalize_purpose("Locação") == Purpose.rent
    assert normalize_purpose("Venda e Aluguel") == Purpose.sale_and_rent
    assert normalize_purpose("leasing") is None

    assert normalize_deal_type("Venda") == DealType.sale
    assert normalize_deal_type("alugado") == DealType.rent
    assert normalize_deal_type("swap") is None
    with pytest.raises(ValidationError):
        parse_deal_type("")


def test_purpose_allows_deal_type():
    assert purpose_allows(Purpose.sale, DealType.sale)
    assert not purpose_allows(Purpose.sale, DealType.rent)
    assert purpose_allows(Purpose.rent, DealType.rent)
    assert not purpose_allows(Purpose.rent, DealType.sale)
    assert purpose_allows(Purpose.sale_and_rent, DealType.sale)
    assert purpose_allows(Purpose.sale_and_rent, DealType.rent)
