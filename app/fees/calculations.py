"""Pure fee arithmetic: discounts, term splits and payment allocation. No I/O."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Mapping, Union

Number = Union[int, float, Decimal, str]


def to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def round_amount(amount: Number) -> int:
    """Round to whole currency units, halves away from zero."""
    return int(to_decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_discount(base_amount: Number, discount_percent: Number) -> int:
    """
    Discounted amount rounded to whole currency units.

    discount_percent is expected in [0, 100]; range checking belongs to the caller.
    """
    base = to_decimal(base_amount)
    discount = to_decimal(discount_percent)
    return round_amount(base * (Decimal("1") - discount / Decimal("100")))


def split_evenly(total: int, num_terms: int) -> Dict[int, int]:
    """
    Split an integer amount over terms 1..num_terms.

    Every term gets floor(total / num_terms); the first (total mod num_terms) terms get one
    extra unit, so the parts always add up to total exactly.
    """
    if num_terms <= 0:
        return {}
    total = int(total)
    base, remainder = divmod(total, num_terms)
    return {term: base + (1 if term <= remainder else 0) for term in range(1, num_terms + 1)}


def remaining_due_per_term(
    total: int,
    num_terms: int,
    paid_by_term: Mapping[int, int],
) -> Dict[int, int]:
    """Outstanding amount of each term after the amounts already allocated to it."""
    return {
        term: max(0, due - int(paid_by_term.get(term, 0)))
        for term, due in split_evenly(total, num_terms).items()
    }


def distribute_payment_across_terms(
    payment_amount: int,
    total: int,
    num_terms: int,
    paid_by_term: Mapping[int, int],
) -> Dict[int, int]:
    """
    Allocate a payment over terms, largest remaining due first.

    Terms with equal dues are filled in ascending term order. Anything left once every term
    is settled goes to the term that received the least, or to term 1 if none received any.
    Callers reject over-payment beforehand, so the leftover branch only guards the sum.
    """
    remaining = int(payment_amount)
    distribution: Dict[int, int] = {}
    if remaining <= 0:
        return distribution

    dues = remaining_due_per_term(total, num_terms, paid_by_term)
    ordered = sorted((t for t, due in dues.items() if due > 0), key=lambda t: (-dues[t], t))
    for term in ordered:
        if remaining <= 0:
            break
        pay = min(remaining, dues[term])
        distribution[term] = pay
        remaining -= pay

    if remaining > 0:
        if distribution:
            smallest = min(distribution, key=lambda t: (distribution[t], t))
            distribution[smallest] += remaining
        else:
            distribution[1] = remaining
    return distribution
