from flask import Blueprint, current_app, jsonify, request

from checkers.identity import IdentityError, exchange_code
from checkers.services.match.results import get_record

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the checkers server!'})


@main.route('/api/token', methods=['POST'])
def token():
    """Trade the client's OAuth authorization code for an access token."""
    data = request.get_json(silent=True) or {}
    code = data.get('code')
    if not code:
        return jsonify({'error': 'Missing code'}), 400

    try:
        access_token = exchange_code(current_app.config, code)
    except IdentityError as exc:
        current_app.logger.warning(f"[token] exchange failed status={exc.status_code} reason={exc}")
        if exc.status_code is None:
            return jsonify({'error': 'Internal server error'}), 500
        if exc.payload is not None:
            return jsonify(exc.payload), exc.status_code
        return jsonify({'error': str(exc)}), exc.status_code

    return jsonify({'access_token': access_token})


@main.route('/api/records/<string:identity>', methods=['GET'])
def user_record(identity):
    return jsonify(get_record(identity))
