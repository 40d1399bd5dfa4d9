from registrar.schemas.registration_schema import (
    registration_ids_schema,
    registration_student_schema,
    registration_contact_schema,
    registration_info_schema,
    cancel_registration_schema,
)
from registrar.schemas.payment_schema import process_payment_schema, PaymentRequest
from registrar.schemas.voucher_schema import voucher_code_schema, voucher_public_schema
from registrar.schemas.user_schema import user_login_schema

__all__ = [
    'registration_ids_schema', 'registration_student_schema',
    'registration_contact_schema', 'registration_info_schema',
    'cancel_registration_schema',
    'process_payment_schema', 'PaymentRequest',
    'voucher_code_schema', 'voucher_public_schema',
    'user_login_schema'
]
