"""
Typed application errors.

Services raise these and never catch them; the handlers registered in
taskhub.main translate each one into the JSON envelope with its status code.
"""


class AppError(Exception):
    status_code: int = 500

    def __init__(self, message: str, errors: dict[str, str] | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Field-level input problems caught past the schema layer."""
    status_code = 400

    def __init__(self, errors: dict[str, str]):
        super().__init__("Validation failed", errors=errors)


class BadRequestError(AppError):
    status_code = 400


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials (not logged in)."""
    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class AuthorizationError(AppError):
    """Logged in, but forbidden by role, membership or ownership."""
    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(AppError):
    """Invariant violation: duplicate unique field, duplicate membership, last admin."""
    status_code = 409
