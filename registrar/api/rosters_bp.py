from flask import Blueprint, Response, jsonify, current_app
from flask_jwt_extended import jwt_required

from registrar.catalog import get_catalog
from registrar.exceptions import ServiceError
from registrar.services import roster_service
from registrar.utils.auth_helpers import require_admin, require_api_key_or_admin
from registrar.utils.request_utils import dry_run_requested, optional_param

rosters_bp = Blueprint('rosters', __name__, url_prefix='/api')


@rosters_bp.route('/rosters/<activity_id>.xlsx', methods=['GET'])
@jwt_required()
@require_admin
def roster_excel(activity_id):
    """Excel roster of the paid registrations of one activity."""
    activity = get_catalog().get(activity_id)
    if activity is None:
        return jsonify({'message': 'Activity not found'}), 404

    try:
        entries = roster_service.roster_entries(activity)
        content = roster_service.roster_workbook(activity, entries)
    except Exception:
        current_app.logger.exception(f'[rosters] Failed to build roster for {activity.id}')
        return jsonify({'message': 'Failed to generate roster'}), 500

    resp = Response(content, mimetype=roster_service.XLSX_MIMETYPE)
    resp.headers['Content-Disposition'] = \
        f'attachment; filename="{roster_service.roster_filename(activity)}"'
    return resp


@rosters_bp.route('/send-rosters', methods=['GET', 'POST'])
@require_api_key_or_admin
def send_rosters():
    """
    E-mail class rosters to instructors.

    Optional filters: ``instructor`` (id), ``class`` (activity id) and
    ``day`` (SU, MO, TU, WE, TH, FR, SA). ``?dry-run`` only lists.
    """
    try:
        result = roster_service.send_rosters(
            dry_run=dry_run_requested(),
            instructor_id=optional_param('instructor'),
            activity_id=optional_param('class'),
            day=optional_param('day'),
        )
        return jsonify(result), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[rosters] Unexpected error sending rosters')
        return jsonify({'message': 'Failed to send rosters'}), 500
