"""
Checkout commit: reconcile the submitted total against the server-side
expected total, then record exactly one Payment for the registration set.

Everything between loading the registrations and linking them to the new
payment runs in one database transaction; any failure rolls all of it back.
The confirmation e-mail is sent after the commit and can not fail the call.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, List, Optional, Union

from flask import current_app

from registrar import db
from registrar.catalog import get_catalog
from registrar.exceptions import (
    Conflict, InfrastructureError, InvalidRequest, NotFound, ServiceError
)
from registrar.models.payment import Payment
from registrar.models.registration import Registration
from registrar.models.voucher import Voucher
from registrar.schemas.payment_schema import PaymentRequest
from registrar.services.capacity_service import supports_row_locks
from registrar.services.notification_service import (
    ConfirmationItem, PaymentConfirmation, get_notifier
)
from registrar.services.voucher_service import (
    LineItem, check_voucher_usable, compute_expected_total, describe_discount,
    lock_voucher
)
from registrar.utils.datetime_utils import epoch_millis, utcnow
from registrar.utils.money import amounts_match, as_float, quantize, to_decimal
from registrar.utils.shortcode import generate_short_code, format_short_code

SUCCESS_MESSAGES = {
    "none": "Registration completed successfully",
    "check": "Registration submitted - awaiting check payment",
    "paypal": "Payment processed successfully",
}


@dataclass(frozen=True)
class UniqueCode:
    code: str


@dataclass(frozen=True)
class ExhaustedRetries:
    attempts: int


ShortCodeResult = Union[UniqueCode, ExhaustedRetries]


class ShortCodePolicy:
    """Draws candidate codes until one is not used by any stored payment."""

    def __init__(self, max_attempts=5, generator: Callable[[], str] = None):
        self.max_attempts = max_attempts
        self.generator = generator or generate_short_code

    def acquire(self) -> ShortCodeResult:
        for attempt in range(1, self.max_attempts + 1):
            code = self.generator()
            taken = db.session.query(Payment.id).filter(
                Payment.short_code == code).first()
            if taken is None:
                return UniqueCode(code)
            current_app.logger.warning(
                f"[payments] Short code collision on attempt {attempt}: {code}")
        return ExhaustedRetries(self.max_attempts)


@dataclass
class PaymentReceipt:
    payment_id: int
    short_code: str
    transaction_id: str
    amount: Decimal
    registration_count: int
    payment_method: str
    paypal_order_id: Optional[str] = None

    def to_dict(self):
        return {
            "message": SUCCESS_MESSAGES[self.payment_method],
            "paymentId": self.payment_id,
            "shortCode": self.short_code,
            "confirmationCode": format_short_code(self.short_code),
            "transactionId": self.transaction_id,
            "amount": as_float(self.amount),
            "registrationCount": self.registration_count,
            "paymentMethod": self.payment_method,
            "paypalOrderId": self.paypal_order_id,
        }


def _transaction_reference(req: PaymentRequest, now):
    if req.payment_method == "paypal":
        return req.paypal_order_id
    prefix = "CHECK" if req.payment_method == "check" else "FREE"
    return f"{prefix}-{epoch_millis(now)}"


def _load_registrations(registration_ids, row_locks) -> List[Registration]:
    stmt = (
        db.select(Registration)
        .where(Registration.id.in_(registration_ids))
        .order_by(Registration.id)
    )
    if row_locks:
        stmt = stmt.with_for_update()
    return list(db.session.execute(stmt).scalars().all())


def process_payment(req: PaymentRequest, now=None, short_codes: ShortCodePolicy = None):
    """
    Commit a checkout. Returns a PaymentReceipt or raises a ServiceError:

    - NotFound when any registration id is unknown
    - Conflict when a registration is already paid
    - InvalidRequest for cancelled rows, unusable vouchers or a total that
      differs from the expected total by more than AMOUNT_TOLERANCE
    - InfrastructureError when no unique short code could be drawn or the
      database fails
    """
    now = now or utcnow()
    catalog = get_catalog()
    tolerance = to_decimal(current_app.config.get("AMOUNT_TOLERANCE", "0.01"))
    short_codes = short_codes or ShortCodePolicy(
        max_attempts=current_app.config.get("SHORT_CODE_MAX_ATTEMPTS", 5))
    registration_ids = list(dict.fromkeys(req.registration_ids))

    try:
        row_locks = supports_row_locks()
        registrations = _load_registrations(registration_ids, row_locks)
        if len(registrations) != len(registration_ids):
            raise NotFound("Some registrations not found")

        if any(r.payment_id is not None for r in registrations):
            raise Conflict("Some registrations are already paid",
                           {"alreadyPaid": True})
        if any(r.cancelled_at is not None for r in registrations):
            raise InvalidRequest("Some registrations have been cancelled")

        voucher = None
        if req.voucher_id is not None:
            voucher = lock_voucher(req.voucher_id, row_locks)
            if voucher is None:
                current_app.logger.warning(
                    f"[payments] Voucher {req.voucher_id} not found; no discount applied")
            else:
                # Re-checked under the row lock; it may have run out since validation
                check_voucher_usable(voucher, now)

        lines = [
            LineItem(r.activity, to_decimal(r.cost), to_decimal(r.donation))
            for r in registrations
        ]
        totals = compute_expected_total(lines, voucher, catalog)

        if not amounts_match(totals.expected_total, req.total_amount, tolerance):
            current_app.logger.warning(
                f"[payments] Amount mismatch for registrations {registration_ids}: "
                f"expected {quantize(totals.expected_total)}, got {req.total_amount}")
            raise InvalidRequest(
                f"Total amount mismatch. Expected: {quantize(totals.expected_total)}, "
                f"Received: {req.total_amount}")

        result = short_codes.acquire()
        if isinstance(result, ExhaustedRetries):
            current_app.logger.error(
                f"[payments] Failed to generate unique short code after "
                f"{result.attempts} attempts")
            raise InfrastructureError("Failed to process payment")

        transaction_id = _transaction_reference(req, now)
        payment = Payment(
            transaction_id=transaction_id,
            amount=quantize(req.total_amount),
            voucher_id=voucher.id if voucher is not None else None,
            short_code=result.code,
        )
        db.session.add(payment)
        db.session.flush()

        if voucher is not None:
            db.session.query(Voucher).filter(Voucher.id == voucher.id).update(
                {Voucher.times_used: Voucher.times_used + 1},
                synchronize_session=False)

        db.session.query(Registration).filter(
            Registration.id.in_(registration_ids),
            Registration.payment_id.is_(None),
        ).update({Registration.payment_id: payment.id}, synchronize_session=False)

        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("[payments] Failed to process payment")
        raise InfrastructureError("Failed to process payment")

    current_app.logger.info(
        f"[payments] Payment {payment.id} ({req.payment_method}) committed "
        f"for registrations {registration_ids} with code {payment.short_code}")

    receipt = PaymentReceipt(
        payment_id=payment.id,
        short_code=payment.short_code,
        transaction_id=transaction_id,
        amount=quantize(req.total_amount),
        registration_count=len(registration_ids),
        payment_method=req.payment_method,
        paypal_order_id=req.paypal_order_id,
    )
    send_payment_confirmation(payment.id, req.payment_method, voucher, totals)
    return receipt


def send_payment_confirmation(payment_id, payment_method, voucher, totals):
    """Best-effort confirmation e-mail; failures are logged, never raised."""
    try:
        payment = db.session.get(Payment, payment_id)
        registrations = sorted(payment.registrations, key=lambda r: r.id)
        contact = next((r.contact for r in registrations if r.contact is not None), None)
        if contact is None:
            current_app.logger.warning(
                f"[payments] Payment {payment_id} has no contact; confirmation not sent")
            return None

        catalog = get_catalog()
        items = []
        for registration in registrations:
            activity = catalog.get(registration.activity)
            items.append(ConfirmationItem(
                student_name=registration.student.full_name,
                activity_name=activity.name if activity else registration.activity,
                cost=to_decimal(registration.cost),
                donation=to_decimal(registration.donation),
            ))

        result = get_notifier().send_payment_confirmation(PaymentConfirmation(
            recipient_email=contact.email,
            recipient_name=contact.full_name,
            short_code=payment.short_code,
            payment_method=payment_method,
            total_amount=to_decimal(payment.amount),
            subtotal=totals.subtotal,
            items=items,
            transaction_id=payment.transaction_id,
            discount=describe_discount(voucher, totals),
        ))
        if not result.success:
            current_app.logger.warning(
                f"[payments] Confirmation for payment {payment_id} not sent: {result.error}")
        return result
    except Exception:
        current_app.logger.exception(
            f"[payments] Confirmation for payment {payment_id} failed")
        db.session.rollback()
        return None
