"""Herald error taxonomy.

Each error class fixes its wire ``code`` and HTTP ``status_code``; the
exception handlers render ``code``, ``message`` and ``details`` unchanged.
"""


class HeraldError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details=None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(HeraldError):
    """Input with no safe default: bad HH:mm, unknown timezone, inverted dates, bad cursor.

    Out-of-range sizes (limit, batch_size, days) are clamped instead.
    """

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(HeraldError):
    """Missing, or owned by someone other than the caller; the two are not distinguished."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} '{resource_id}' not found",
            details={"resource": resource, "id": resource_id},
        )


class AuthenticationError(HeraldError):
    code = "AUTHENTICATION_ERROR"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(HeraldError):
    code = "AUTHORIZATION_ERROR"
    status_code = 403

    def __init__(self, required_roles: tuple[str, ...] = ()):
        message = "Insufficient role"
        if required_roles:
            message = f"Requires one of: {', '.join(required_roles)}"
        super().__init__(message, details={"required_roles": list(required_roles)} if required_roles else None)


class TransportError(HeraldError):
    """A provider hand-off failed. Logged by the Notifier, never returned to API callers."""

    code = "TRANSPORT_ERROR"
    status_code = 502

    def __init__(self, channel: str, message: str, details=None):
        self.channel = channel
        super().__init__(message, details)
