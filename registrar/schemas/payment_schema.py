from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from marshmallow import (
    Schema, fields, validate, validates_schema, post_load, ValidationError, EXCLUDE
)

PAYMENT_METHODS = ('paypal', 'check', 'none')


@dataclass
class PaymentRequest:
    registration_ids: List[int]
    payment_method: str
    total_amount: Optional[Decimal] = None
    paypal_order_id: Optional[str] = None
    paypal_payer_id: Optional[str] = None
    voucher_id: Optional[int] = None


class ProcessPaymentSchema(Schema):
    """Checkout submission. Shape checks only; amounts are reconciled later."""

    class Meta:
        unknown = EXCLUDE

    registration_ids = fields.List(
        fields.Int(strict=False),
        data_key='registrationIds',
        required=True,
        validate=validate.Length(min=1, error='Registration IDs are required'),
        error_messages={'required': 'Registration IDs are required'},
    )
    payment_method = fields.Str(
        data_key='paymentMethod',
        required=True,
        validate=validate.OneOf(PAYMENT_METHODS, error='Invalid payment method'),
        error_messages={'required': 'Invalid payment method'},
    )
    total_amount = fields.Decimal(
        data_key='totalAmount', load_default=None, allow_none=True,
        allow_nan=False)
    paypal_order_id = fields.Str(
        data_key='paypalOrderId', load_default=None, allow_none=True,
        validate=validate.Length(max=50))
    paypal_payer_id = fields.Str(
        data_key='paypalPayerId', load_default=None, allow_none=True)
    voucher_id = fields.Int(data_key='voucherId',
                            load_default=None, allow_none=True)

    @validates_schema
    def validate_method_fields(self, data, **kwargs):
        method = data.get('payment_method')
        total = data.get('total_amount')

        if method == 'paypal':
            if (not data.get('paypal_order_id') or not data.get('paypal_payer_id')
                    or total is None):
                raise ValidationError('Invalid PayPal payment data')
        elif method == 'none':
            # Free checkout: naturally free activities or a 100% voucher
            if total is None or total != 0:
                raise ValidationError(
                    'Free registration requires total amount to be $0')
        elif method == 'check':
            if total is None:
                raise ValidationError('Total amount is required')

        if total is not None and total < 0:
            raise ValidationError('Total amount cannot be negative')

    @post_load
    def make_request(self, data, **kwargs):
        return PaymentRequest(**data)


process_payment_schema = ProcessPaymentSchema()
