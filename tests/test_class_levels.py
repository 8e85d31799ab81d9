"""Unit tests for class label mapping."""

import pytest

from app.fees.class_levels import ClassLevel, class_to_number, number_to_label, parse_class_level


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Pre Nursery", 0),
        ("pre-nursery", 0),
        ("Nursery", 0.25),
        ("lkg", 0.5),
        ("L.K.G", 0.5),
        ("UKG", 0.75),
        ("1", 1),
        ("V", 5),
        ("fifth", 5),
        ("Five", 5),
        ("Class 5", 5),
        ("  class   10 ", 10),
        ("XII", 12),
        ("Grade 7", 7),
    ],
)
def test_class_to_number_aliases(label, expected) -> None:
    assert class_to_number(label) == expected


def test_numeric_string_outside_alias_table_parses() -> None:
    """Numeric strings fall back to a plain number parse."""
    assert class_to_number("0.5") == 0.5
    assert class_to_number("0.25") == 0.25
    assert class_to_number("13") == 13


def test_unknown_label_is_none() -> None:
    assert class_to_number("Kindergarten") is None
    assert class_to_number("") is None
    assert class_to_number(None) is None


def test_parse_class_level() -> None:
    assert parse_class_level("lkg") is ClassLevel.LKG
    assert parse_class_level("0.5") is ClassLevel.LKG
    assert parse_class_level("0") is ClassLevel.PRE_NURSERY
    assert parse_class_level("Class 12") is ClassLevel.CLASS_12
    assert parse_class_level("CLASS_3") is ClassLevel.CLASS_3
    assert parse_class_level(ClassLevel.UKG) is ClassLevel.UKG


def test_parse_class_level_rejects_codes_without_a_level() -> None:
    assert parse_class_level("13") is None
    assert parse_class_level("0.3") is None
    assert parse_class_level("Kindergarten") is None


def test_number_to_label() -> None:
    assert number_to_label(0) == "Pre Nursery"
    assert number_to_label(0.5) == "LKG"
    assert number_to_label(7) == "Class 7"
    # Unknown numbers still render
    assert number_to_label(13) == "Class 13"
    assert number_to_label(0.3) == "Class 0.3"


def test_number_to_label_non_numeric_falls_back() -> None:
    assert number_to_label("abc") == "Class abc"
    assert number_to_label(None) == "Class None"
    assert number_to_label("7") == "Class 7"


def test_promotion_order() -> None:
    assert ClassLevel.NURSERY < ClassLevel.LKG < ClassLevel.CLASS_1 < ClassLevel.CLASS_10
    assert sorted([ClassLevel.CLASS_10, ClassLevel.UKG, ClassLevel.CLASS_2]) == [
        ClassLevel.UKG,
        ClassLevel.CLASS_2,
        ClassLevel.CLASS_10,
    ]
    assert ClassLevel.UKG.next_level() is ClassLevel.CLASS_1
    assert ClassLevel.CLASS_12.next_level() is None


def test_lookup_and_display_names() -> None:
    assert ClassLevel.LKG.lookup_name == "LKG"
    assert ClassLevel.CLASS_5.lookup_name == "5"
    assert ClassLevel.CLASS_5.display_name == "Class 5"
    assert ClassLevel.CLASS_5.grade == 5
    assert ClassLevel.NURSERY.grade is None
