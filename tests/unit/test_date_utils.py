"""Unit tests for statement date normalization"""

import pytest
from datetime import date
from bb_gateway.utils.date_utils import normalize_date


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2025-01-05", "05012025"),
        ("05.01.2025", "05012025"),
        ("05012025", "05012025"),
        ("2024-12-31", "31122024"),
    ],
)
def test_normalize_date_known_shapes(value, expected):
    assert normalize_date(value) == expected


def test_normalize_date_is_idempotent():
    once = normalize_date("2025-01-05")
    assert normalize_date(once) == once


def test_normalize_date_accepts_date_instances():
    assert normalize_date(date(2025, 1, 5)) == "05012025"


@pytest.mark.parametrize("value", ["05/01/2025", "2025-1-5", "yesterday", "1234567"])
def test_normalize_date_unrecognized_passes_through(value):
    """Unknown shapes are forwarded untouched rather than rejected"""
    assert normalize_date(value) == value


@pytest.mark.parametrize("value", [None, "", "   "])
def test_normalize_date_missing_values(value):
    assert normalize_date(value) is None
