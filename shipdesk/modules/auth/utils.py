from functools import wraps

from flask import current_app, g, jsonify, url_for


def get_shipdesk():
    """The ShipDesk extension bound to the current app"""
    return current_app.extensions['shipdesk']


def reauth_response(message='Authentication required'):
    """401 body telling the console to send the admin back to login"""
    return jsonify({
        'success': False,
        'outcome': 'session_expired',
        'error': message,
        'redirect': url_for('auth.login'),
        'reason': g.get('shipdesk_reauth_reason'),
    }), 401


def session_required(f):
    """Decorator to require a live console session"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not get_shipdesk().guard.is_authorized():
            return reauth_response()
        return f(*args, **kwargs)
    return decorated_function
