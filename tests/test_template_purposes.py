"""
Tests for the family -> purpose map
"""

import pytest

from app.domain.templates.purposes import (
    FAMILY_PURPOSES,
    GENERAL_PURPOSE,
    get_valid_purposes_for_family,
    is_valid_purpose_for_family,
)
from app.services.default_templates import SYSTEM_DEFAULT_TEMPLATES


def test_purpose_is_valid_exactly_when_listed_for_family():
    all_purposes = set().union(*FAMILY_PURPOSES.values())
    for family, purposes in FAMILY_PURPOSES.items():
        for purpose in all_purposes:
            assert is_valid_purpose_for_family(family, purpose) == (purpose in purposes)


def test_unmapped_family_only_accepts_general():
    assert get_valid_purposes_for_family("invoice_footer") == frozenset({GENERAL_PURPOSE})
    assert is_valid_purpose_for_family("invoice_footer", GENERAL_PURPOSE)
    assert not is_valid_purpose_for_family("invoice_footer", "quote_sent")


@pytest.mark.parametrize(
    "family,purpose,valid",
    [
        ("email", "quote_sent", True),
        ("email", "sms_quote_sent", False),
        ("sms", "sms_payment_reminder", True),
        ("sms", "general", False),
        ("warranty", "general", True),
        ("terms_conditions", "invoice_sent", False),
    ],
)
def test_known_pairs(family, purpose, valid):
    assert is_valid_purpose_for_family(family, purpose) is valid


def test_map_is_read_only():
    with pytest.raises(TypeError):
        FAMILY_PURPOSES["email"] = frozenset()


def test_every_legal_pair_has_a_system_default():
    for family, purposes in FAMILY_PURPOSES.items():
        for purpose in purposes:
            assert (family, purpose) in SYSTEM_DEFAULT_TEMPLATES
