from flask import Blueprint, jsonify, request, current_app

from registrar.exceptions import ServiceError, InvalidRequest
from registrar.services import capacity_service

activities_bp = Blueprint('activities', __name__, url_prefix='/api')

MAX_ACTIVITY_IDS = 100
TRUTHY = ('', '1', 'true', 'yes')


def _request_body():
    if request.method != 'POST':
        return {}
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidRequest('Invalid JSON in request body')
    return body


def _requested_ids(body):
    """Ids from ?id=a&id=b, ?activityIds=a,b or the POST body's activityIds."""
    if request.method == 'POST':
        ids = body.get('activityIds')
        if not isinstance(ids, list):
            raise InvalidRequest('activityIds must be a list')
    else:
        ids = request.args.getlist('id')
        for raw in request.args.getlist('activityIds'):
            ids.extend(raw.split(','))

    ids = [str(i).strip() for i in ids if i is not None and str(i).strip()]
    if not ids:
        raise InvalidRequest('At least one activity id is required')
    if len(ids) > MAX_ACTIVITY_IDS:
        raise InvalidRequest(f'At most {MAX_ACTIVITY_IDS} activity ids per request')
    return list(dict.fromkeys(ids))


def _nocache_requested(body):
    if 'nocache' in request.args:
        return request.args.get('nocache', '').lower() in TRUTHY
    return bool(body.get('nocache'))


@activities_bp.route('/activity-status', methods=['GET', 'POST'])
def activity_status():
    """Public seat counts for the requested activities."""
    try:
        body = _request_body()
        statuses = capacity_service.activity_status(_requested_ids(body))
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception('[activities] Failed to compute activity status')
        return jsonify({'message': 'Failed to fetch activity status'}), 500

    resp = jsonify({'activities': statuses})
    if _nocache_requested(body):
        resp.headers['Cache-Control'] = 'no-store'
    else:
        max_age = current_app.config.get('ACTIVITY_STATUS_MAX_AGE', 600)
        resp.headers['Cache-Control'] = f'public, max-age={max_age}'
    return resp, 200
