# shipdesk/modules/auth/client.py
import logging

from ...core.exceptions import RemoteError
from ...core.logging_service import LoggingService

logger = logging.getLogger(__name__)


class AuthClient:
    """Admin login/logout against the backend, backed by a SessionGuard."""

    def __init__(self, transport, guard):
        self.transport = transport
        self.guard = guard

    def login(self, admin_id, password):
        """
        Log in and start the console session

        Returns:
            The admin profile (login payload without the token)

        Raises:
            RemoteError: bad credentials or a response without a token
            TransportError: backend unreachable
        """
        payload = self.transport.post(
            '/admin/login',
            json={'adminId': admin_id, 'password': password},
            auth=False,
        )

        data = payload.get('data') if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            data = payload if isinstance(payload, dict) else {}

        token = data.get('token')
        if not token:
            LoggingService.log_security_event("Login response without token", {'admin_id': admin_id})
            raise RemoteError(data.get('message') or 'Login failed: no token returned')

        profile = {key: value for key, value in data.items() if key != 'token'}
        profile.setdefault('adminId', admin_id)
        self.guard.start(token, profile)
        return profile

    def logout(self):
        self.guard.end()

    def change_password(self, current_password, new_password):
        """POST /admin/change-password with the live session's token."""
        result = self.transport.post(
            '/admin/change-password',
            json={'currentPassword': current_password, 'newPassword': new_password},
        )
        profile = self.guard.profile
        LoggingService.log_user_action('auth', 'change password',
                                       user_id=profile.get('adminId') or profile.get('id'))
        return result
