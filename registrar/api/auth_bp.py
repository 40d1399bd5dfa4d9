from flask import Blueprint, jsonify, current_app
from flask_jwt_extended import create_access_token, jwt_required

from registrar import db
from registrar.exceptions import ServiceError
from registrar.models.user import User
from registrar.schemas import user_login_schema
from registrar.utils.auth_helpers import get_current_user
from registrar.utils.datetime_utils import utcnow
from registrar.utils.request_utils import get_json_body, load_payload

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Back-office login: returns a JWT for an active user."""
    try:
        data = load_payload(user_login_schema, get_json_body())
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code

    user = User.query.filter_by(username=data['username'], is_active=True).first()
    if user is None or not user.check_password(data['password']):
        current_app.logger.info(f"[auth] Failed login for {data['username']}")
        return jsonify({'message': 'Invalid credentials'}), 401

    user.last_login_at = utcnow()
    db.session.commit()

    access_token = create_access_token(identity=str(user.id))
    return jsonify({
        'access_token': access_token,
        'user': user.to_dict()
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = get_current_user()
    if user is None:
        return jsonify({'message': 'User not found'}), 404
    return jsonify(user.to_dict()), 200
