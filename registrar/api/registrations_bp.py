from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import jwt_required

from registrar.exceptions import ServiceError
from registrar.schemas import (
    registration_ids_schema,
    registration_student_schema,
    registration_contact_schema,
    registration_info_schema,
    cancel_registration_schema,
)
from registrar.services import capacity_service, registration_service
from registrar.utils.auth_helpers import require_admin
from registrar.utils.request_utils import get_json_body, load_payload

registrations_bp = Blueprint('registrations', __name__, url_prefix='/api')


# Step 1: student and activity
@registrations_bp.route('/registration-student', methods=['POST'])
def registration_student():
    try:
        data = load_payload(registration_student_schema, get_json_body())
        result = registration_service.register_student(
            data['first_name'], data['last_name'], data['birthdate'],
            data['activity_id'])
        return jsonify(result), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[registrations] Unexpected error saving student')
        return jsonify({'message': 'Failed to save registration'}), 500


# Step 2: contact
@registrations_bp.route('/registration-contact', methods=['POST'])
def registration_contact():
    try:
        data = load_payload(registration_contact_schema, get_json_body())
        return jsonify(registration_service.save_contact(data)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[registrations] Unexpected error saving contact')
        return jsonify({'message': 'Failed to save contact'}), 500


# Step 3: donation, answer, terms
@registrations_bp.route('/registration-info', methods=['POST'])
def registration_info():
    try:
        data = load_payload(registration_info_schema, get_json_body())
        return jsonify(registration_service.save_registration_info(data)), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[registrations] Unexpected error saving information')
        return jsonify({'message': 'Failed to save registration information'}), 500


@registrations_bp.route('/registration-details', methods=['POST'])
def registration_details():
    """Checkout summary: reserves seats and returns what remains to pay for."""
    try:
        data = load_payload(registration_ids_schema, get_json_body())
        result = capacity_service.reserve_registrations(data['registration_ids'])
        return jsonify(result.to_dict()), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[registrations] Unexpected error reserving seats')
        return jsonify({'message': 'Failed to fetch registration details'}), 500


@registrations_bp.route('/cancel-registration', methods=['POST'])
@jwt_required()
@require_admin
def cancel_registration():
    try:
        data = load_payload(cancel_registration_schema, get_json_body())
        result = registration_service.cancel_registration(data['registration_id'])
        return jsonify(result), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[registrations] Unexpected error cancelling')
        return jsonify({'message': 'Failed to cancel registration'}), 500
