from functools import wraps

from flask import jsonify, session


def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            return jsonify({'status': 'error', 'message': 'You need to be logged in to access this page.'}), 401
        return f(*args, **kwargs)
    return decorated_function


def school_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if session.get('school_id') is None:
            return jsonify({'status': 'error', 'message': 'No school is linked to this admin account.'}), 400
        return f(*args, **kwargs)
    return decorated_function


def current_school_id():
    return session.get('school_id')
