"""Application error taxonomy.

Handlers and services raise these; ``newshub.main`` converts them into the
``{"success": false, "message": ...}`` envelope with the matching status.
"""


class AppError(Exception):
    status_code = 500
    default_message = "An unexpected error occurred"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentials(Unauthorized):
    default_message = "Invalid username or password"


class SessionNotFound(Unauthorized):
    default_message = "Invalid or expired session"


class SessionExpired(Unauthorized):
    default_message = "Session expired"


class SessionInactive(Unauthorized):
    default_message = "Session is no longer active"


class Forbidden(AppError):
    status_code = 403
    default_message = "Insufficient privileges"
