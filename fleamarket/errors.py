"""
Domain Errors
Exceptions raised by services and mapped to JSON responses by the app
"""


class FleaMarketError(Exception):
    """Base class for errors reported back to the caller"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'success': False, 'error': self.message}


class ValidationError(FleaMarketError):
    """Missing or out-of-range input"""
    status_code = 400


class NotFoundError(FleaMarketError):
    status_code = 404


class InvalidTransition(FleaMarketError):
    """Operation not allowed in the record's current state"""
    status_code = 409


class CallableError(FleaMarketError):
    """
    Structured error for the createUser callable.

    Codes: unauthenticated, permission-denied, invalid-argument,
    already-exists, internal.
    """
    STATUS_BY_CODE = {
        'unauthenticated': 401,
        'permission-denied': 403,
        'invalid-argument': 400,
        'already-exists': 409,
        'internal': 500,
    }

    def __init__(self, code, message):
        super().__init__(message, self.STATUS_BY_CODE.get(code, 500))
        self.code = code

    def to_dict(self):
        return {'success': False, 'code': self.code, 'error': self.message}
