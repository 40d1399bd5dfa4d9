from flask import Blueprint, jsonify, current_app

from registrar.exceptions import ServiceError
from registrar.schemas import (
    process_payment_schema, voucher_code_schema, voucher_public_schema
)
from registrar.services import payment_service, voucher_service
from registrar.utils.request_utils import get_json_body, load_payload

payments_bp = Blueprint('payments', __name__, url_prefix='/api')


@payments_bp.route('/validate-voucher', methods=['POST'])
def validate_voucher():
    """Checkout preview of a voucher; the discount itself is applied at commit."""
    try:
        data = load_payload(voucher_code_schema, get_json_body())
        voucher = voucher_service.validate_voucher_code(data['code'])
    except ServiceError as e:
        payload = e.to_dict()
        if e.status_code != 500:
            payload['valid'] = False
        return jsonify(payload), e.status_code

    return jsonify({
        'valid': True,
        'voucher': voucher_public_schema.dump(voucher),
        'message': 'Voucher code is valid',
    }), 200


@payments_bp.route('/process-payment', methods=['POST'])
def process_payment():
    try:
        payment_request = load_payload(process_payment_schema, get_json_body())
        receipt = payment_service.process_payment(payment_request)
        return jsonify(receipt.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[payments] Unexpected error processing payment')
        return jsonify({'message': 'Failed to process payment'}), 500
