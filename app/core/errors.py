"""Error taxonomy shared by every service.

Services raise these; ``app.main`` renders them as ``{"error", "message"}``
JSON bodies with the class' HTTP status.
"""


class DomainError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    code = "validation_error"
    status_code = 422
    default_message = "Invalid input"


class AlreadyOnboarded(ValidationError):
    code = "already_onboarded"
    default_message = "Profile already belongs to an organization"


class DuplicateSlug(DomainError):
    code = "duplicate_slug"
    status_code = 409
    default_message = "Organization slug is already taken"


class InvalidCode(DomainError):
    code = "invalid_code"
    default_message = "Invalid code"


class CodeExpired(DomainError):
    code = "code_expired"
    default_message = "This code has expired"


class CodeRevoked(DomainError):
    code = "code_revoked"
    default_message = "This code has been revoked"


class CodeAlreadyUsed(DomainError):
    code = "code_already_used"
    status_code = 409
    default_message = "This code has already been used"


class EmailMismatch(DomainError):
    code = "email_mismatch"
    default_message = "This invitation was issued for a different email address"


class Unauthorized(DomainError):
    code = "unauthorized"
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFound(DomainError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class Transient(DomainError):
    """Persistence or network failure; the caller may retry."""
    code = "transient"
    status_code = 503
    default_message = "Temporary failure, please retry"
