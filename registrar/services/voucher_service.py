"""
Voucher lookup, usability rules and the discount calculation.

A voucher carries exactly one discount mode (percentage or fixed amount) and
may be scoped to one activity kind. The discount is applied to the sum of
``cost + donation`` of the lines whose activity kind matches the scope, or to
every line when the voucher is unscoped.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy import func

from registrar import db
from registrar.catalog import get_catalog
from registrar.exceptions import InvalidRequest, NotFound
from registrar.models.voucher import Voucher
from registrar.utils.datetime_utils import utcnow
from registrar.utils.money import to_decimal, quantize

VOUCHER_INACTIVE = "This voucher is no longer active"
VOUCHER_NOT_YET_VALID = "This voucher is not yet valid"
VOUCHER_EXPIRED = "This voucher has expired"
VOUCHER_EXHAUSTED = "This voucher has reached its maximum number of uses"
VOUCHER_MISCONFIGURED = "This voucher cannot be applied"
VOUCHER_NOT_FOUND = "Invalid voucher code"


class VoucherUnavailable(InvalidRequest):
    """The voucher exists but cannot be redeemed right now."""


@dataclass(frozen=True)
class LineItem:
    activity_id: str
    cost: Decimal
    donation: Decimal = Decimal("0")

    @property
    def amount(self) -> Decimal:
        return self.cost + self.donation


@dataclass(frozen=True)
class DiscountResult:
    subtotal: Decimal
    discountable_total: Decimal
    discount: Decimal
    expected_total: Decimal


def check_voucher_usable(voucher, now=None):
    """Raise VoucherUnavailable with the first failing rule, else return None."""
    now = now or utcnow()

    if not voucher.has_single_discount_mode:
        current_app.logger.error(
            f"[vouchers] Voucher {voucher.id} has no single discount mode"
        )
        raise VoucherUnavailable(VOUCHER_MISCONFIGURED)
    if not voucher.active:
        raise VoucherUnavailable(VOUCHER_INACTIVE)
    if voucher.valid_from is not None and voucher.valid_from > now:
        raise VoucherUnavailable(VOUCHER_NOT_YET_VALID)
    if voucher.valid_until is not None and voucher.valid_until < now:
        raise VoucherUnavailable(VOUCHER_EXPIRED)
    if voucher.max_uses is not None and (voucher.times_used or 0) >= voucher.max_uses:
        raise VoucherUnavailable(VOUCHER_EXHAUSTED)


def find_voucher_by_code(code) -> Optional[Voucher]:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    return Voucher.query.filter(func.upper(Voucher.code) == normalized).first()


def validate_voucher_code(code, now=None) -> Voucher:
    """Look up a code entered at checkout; raises NotFound / VoucherUnavailable."""
    voucher = find_voucher_by_code(code)
    if voucher is None:
        raise NotFound(VOUCHER_NOT_FOUND)
    check_voucher_usable(voucher, now)
    return voucher


def lock_voucher(voucher_id, row_locks=True) -> Optional[Voucher]:
    """Load a voucher for redemption, holding its row lock when supported."""
    stmt = db.select(Voucher).where(Voucher.id == voucher_id)
    if row_locks:
        stmt = stmt.with_for_update()
    return db.session.execute(stmt).scalar_one_or_none()


def _discountable(lines, voucher, catalog):
    if not voucher.applies_to:
        return list(lines)
    scope = voucher.applies_to.strip().lower()
    matching = []
    for line in lines:
        activity = catalog.get(line.activity_id)
        if activity is not None and activity.kind == scope:
            matching.append(line)
    return matching


def compute_expected_total(
    lines: Iterable[LineItem], voucher=None, catalog=None
) -> DiscountResult:
    """
    What the customer owes for ``lines`` after ``voucher``.

    Percentage discounts are ``base * percentage / 100``; fixed discounts are
    capped at the base. The expected total never goes below zero.
    """
    lines = list(lines)
    subtotal = sum((line.amount for line in lines), Decimal("0"))
    zero = Decimal("0")

    if voucher is None:
        return DiscountResult(subtotal, zero, zero, subtotal)

    if not voucher.has_single_discount_mode:
        raise VoucherUnavailable(VOUCHER_MISCONFIGURED)

    catalog = catalog if catalog is not None else get_catalog()
    base = sum(
        (line.amount for line in _discountable(lines, voucher, catalog)), zero
    )

    if voucher.percentage is not None:
        discount = base * Decimal(voucher.percentage) / Decimal(100)
    else:
        discount = min(to_decimal(voucher.amount), base)

    expected = max(zero, subtotal - discount)
    return DiscountResult(subtotal, base, discount, expected)


def describe_discount(voucher, result: DiscountResult):
    """Short label for receipts, e.g. 'SPRING10 (10% off)'."""
    if voucher is None:
        return None
    if voucher.percentage is not None:
        label = f"{voucher.percentage}% off"
    else:
        label = f"${quantize(voucher.amount)} off"
    return {
        "code": voucher.code,
        "label": label,
        "discount": quantize(result.discount),
    }
