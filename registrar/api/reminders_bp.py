from flask import Blueprint, jsonify, current_app

from registrar.exceptions import ServiceError
from registrar.services import reminder_service
from registrar.utils.auth_helpers import require_api_key_or_admin
from registrar.utils.request_utils import dry_run_requested

reminders_bp = Blueprint('reminders', __name__, url_prefix='/api')


@reminders_bp.route('/send-reminders', methods=['GET', 'POST'])
@require_api_key_or_admin
def send_reminders():
    """Called by the scheduler (API key) or an admin; ``?dry-run`` only lists."""
    try:
        result = reminder_service.send_reminders(dry_run=dry_run_requested())
        return jsonify(result), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[reminders] Unexpected error sending reminders')
        return jsonify({'message': 'Failed to send reminders'}), 500
