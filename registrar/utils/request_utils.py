from flask import request
from marshmallow import ValidationError

from registrar.exceptions import InvalidRequest


def get_json_body():
    """Parsed JSON body, or InvalidRequest when it is missing or malformed."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidRequest('Invalid JSON in request body')
    return body


def first_error_message(messages):
    """Pick the first human-readable message out of marshmallow's error dict."""
    if isinstance(messages, str):
        return messages
    if isinstance(messages, dict):
        # Schema-level errors first: they carry the most specific wording
        if '_schema' in messages:
            return first_error_message(messages['_schema'])
        for value in messages.values():
            found = first_error_message(value)
            if found:
                return found
    if isinstance(messages, (list, tuple)):
        for value in messages:
            found = first_error_message(value)
            if found:
                return found
    return None


def load_payload(schema, payload):
    try:
        return schema.load(payload)
    except ValidationError as err:
        message = first_error_message(err.messages) or 'Invalid request'
        raise InvalidRequest(message, {'errors': err.messages})


def _optional_body():
    body = request.get_json(silent=True) if request.is_json else None
    return body if isinstance(body, dict) else {}


def dry_run_requested():
    """``?dry-run``, ``?dryRun=1`` or ``{"dryRun": true}`` in the body."""
    for key in ('dry-run', 'dryRun'):
        if key in request.args:
            return request.args.get(key, '').lower() in ('', '1', 'true', 'yes')
    return bool(_optional_body().get('dryRun'))


def optional_param(name):
    """Query argument ``name``, falling back to the JSON body."""
    value = request.args.get(name)
    if value is None:
        value = _optional_body().get(name)
    return value or None
