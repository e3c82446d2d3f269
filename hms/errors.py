"""
Domain errors raised by the services layer.

Routes never build error responses for these by hand: create_app() registers
a handler that rolls back the session and answers with ``status_code``.
"""


class HMSError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {'success': False, 'error': self.message}


class AuthenticationError(HMSError):
    """Authentication required"""
    status_code = 401


class ValidationError(HMSError):
    """Invalid request data"""
    status_code = 400


class AuthorizationError(HMSError):
    """Permission denied"""
    status_code = 403


class NotFoundError(HMSError):
    """Resource not found"""
    status_code = 404


class ConflictError(HMSError):
    """Resource state conflict"""
    status_code = 409
