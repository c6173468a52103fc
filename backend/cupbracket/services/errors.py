"""
Domain errors raised by the services layer.

Each error carries the HTTP status the API layer answers with; the
exception handler in main.py renders them as {"detail": message}.
"""


class BracketError(Exception):
    """Base class for rejected tournament operations"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BracketError):
    """Missing or malformed input, or an operation not valid in the current state"""

    status_code = 400


class AuthorizationError(BracketError):
    """Bad credential"""

    status_code = 401


class NotFoundError(BracketError):
    """Unknown tournament, match, player or team"""

    status_code = 404


class ConflictError(BracketError):
    """Already registered, team taken, tournament full, match already confirmed"""

    status_code = 409
