"""
Auth Routes
===========

JSON endpoints the console uses to log in and out and to check the
current session.
"""

from flask import request, jsonify

from ...core.exceptions import RemoteError, SessionExpired, TransportError
from ...core.logging_service import LoggingService
from . import auth_bp
from .utils import get_shipdesk, reauth_response, session_required


def _form_value(data, *keys):
    for key in keys:
        value = data.get(key)
        if value:
            return str(value).strip()
    return ''


@auth_bp.route('/login', methods=['POST'])
def login():
    """Log the admin in and start the console session"""
    data = request.get_json(silent=True) or request.form
    admin_id = _form_value(data, 'adminId', 'admin_id')
    password = data.get('password', '')

    if not admin_id or not password:
        return jsonify({'success': False, 'error': 'Admin ID and password are required'}), 400

    desk = get_shipdesk()
    try:
        profile = desk.auth.login(admin_id, password)
    except RemoteError as e:
        LoggingService.log_security_event("Failed admin login", {'admin_id': admin_id, 'error': str(e)})
        status = 401 if e.status_code in (None, 400, 401, 403) else 502
        return jsonify({'success': False, 'error': str(e)}), status
    except TransportError as e:
        return jsonify({'success': False, 'error': str(e)}), 502

    return jsonify({
        'success': True,
        'admin': profile,
        'expiresAt': desk.guard.expires_at.isoformat(),
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Log the admin out"""
    get_shipdesk().auth.logout()
    return jsonify({'success': True})


@auth_bp.route('/session')
def session_status():
    """Report whether the console session is live"""
    guard = get_shipdesk().guard
    if not guard.is_authorized():
        return jsonify({'success': True, 'authenticated': False})

    return jsonify({
        'success': True,
        'authenticated': True,
        'admin': guard.profile,
        'expiresAt': guard.expires_at.isoformat(),
    })


@auth_bp.route('/change-password', methods=['POST'])
@session_required
def change_password():
    """Change the logged-in admin's password"""
    data = request.get_json(silent=True) or request.form
    current_password = data.get('currentPassword', '')
    new_password = data.get('newPassword', '')

    if not current_password or not new_password:
        return jsonify({'success': False, 'error': 'Current and new password are required'}), 400

    try:
        result = get_shipdesk().auth.change_password(current_password, new_password)
    except SessionExpired as e:
        return reauth_response(str(e))
    except RemoteError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except TransportError as e:
        return jsonify({'success': False, 'error': str(e)}), 502

    message = result.get('message') if isinstance(result, dict) else None
    return jsonify({'success': True, 'message': message or 'Password changed'})
