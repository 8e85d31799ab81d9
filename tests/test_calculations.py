"""Unit tests for discount, term split and payment distribution arithmetic."""

from decimal import Decimal

import pytest

from app.fees.calculations import (
    apply_discount,
    distribute_payment_across_terms,
    remaining_due_per_term,
    round_amount,
    split_evenly,
    to_decimal,
)


@pytest.mark.parametrize("total", [0, 1, 2, 3, 7, 100, 9999, 45000, 50000, 123457])
@pytest.mark.parametrize("num_terms", [1, 2, 3, 4])
def test_split_sums_to_total(total, num_terms) -> None:
    split = split_evenly(total, num_terms)
    assert sorted(split) == list(range(1, num_terms + 1))
    assert sum(split.values()) == total


@pytest.mark.parametrize("total, num_terms", [(50000, 3), (10, 4), (7, 3), (45001, 2)])
def test_split_is_deterministic_and_front_loaded(total, num_terms) -> None:
    first = split_evenly(total, num_terms)
    assert first == split_evenly(total, num_terms)
    base, remainder = divmod(total, num_terms)
    for term, amount in first.items():
        assert amount == base + (1 if term <= remainder else 0)


def test_split_annual_fee_into_three_terms() -> None:
    assert split_evenly(50000, 3) == {1: 16667, 2: 16667, 3: 16666}


def test_discounted_class_fee_split() -> None:
    school_fee = apply_discount(50000, 10)
    assert school_fee == 45000
    assert split_evenly(school_fee, 3) == {1: 15000, 2: 15000, 3: 15000}


def test_split_without_terms_is_empty() -> None:
    assert split_evenly(1000, 0) == {}


def test_discount_monotonic() -> None:
    base = 48750
    amounts = [apply_discount(base, d) for d in range(0, 101)]
    assert all(a >= b for a, b in zip(amounts, amounts[1:]))


@pytest.mark.parametrize("base", [0, 1, 999.5, Decimal("12345.49"), "50000", 80000])
def test_discount_boundaries(base) -> None:
    assert apply_discount(base, 0) == round_amount(base)
    assert apply_discount(base, 100) == 0


def test_discount_rounds_half_up() -> None:
    # 1001 * 0.5 = 500.5
    assert apply_discount(1001, 50) == 501
    assert apply_discount(Decimal("10000"), Decimal("12.5")) == 8750
    assert round_amount(Decimal("2.5")) == 3
    assert round_amount("16666.49") == 16666


def test_remaining_due_per_term() -> None:
    assert remaining_due_per_term(50000, 3, {1: 16667, 2: 1000}) == {1: 0, 2: 15667, 3: 16666}
    # Over-allocated terms never go negative
    assert remaining_due_per_term(300, 3, {1: 500}) == {1: 0, 2: 100, 3: 100}


def test_distribution_largest_due_first() -> None:
    paid = {1: 16667}
    # Term 2 (16667) is larger than term 3 (16666)
    assert distribute_payment_across_terms(10000, 50000, 3, paid) == {2: 10000}


def test_distribution_spills_into_next_term() -> None:
    assert distribute_payment_across_terms(20000, 50000, 3, {}) == {1: 16667, 2: 3333}


def test_distribution_ties_go_to_lower_term() -> None:
    assert distribute_payment_across_terms(100, 45000, 3, {}) == {1: 100}


def test_distribution_covers_exact_remaining() -> None:
    paid = {1: 16667, 2: 10000}
    split = distribute_payment_across_terms(23333, 50000, 3, paid)
    assert split == {3: 16666, 2: 6667}
    assert sum(split.values()) == 23333


def test_distribution_leftover_goes_to_smallest_allocation() -> None:
    # Only 100 is still due (term 3); the rest lands on the smallest allocation.
    split = distribute_payment_across_terms(150, 300, 3, {1: 100, 2: 100})
    assert split == {3: 150}
    # Nothing due at all: term 1 takes it
    assert distribute_payment_across_terms(50, 300, 3, {1: 100, 2: 100, 3: 100}) == {1: 50}


def test_distribution_of_nothing() -> None:
    assert distribute_payment_across_terms(0, 50000, 3, {}) == {}


def test_to_decimal() -> None:
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("12.50") == Decimal("12.50")
    value = Decimal("3")
    assert to_decimal(value) is value
