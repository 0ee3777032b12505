"""Exception hierarchy raised by the rollout core and mapped to HTTP responses."""


class RolloutError(Exception):
    """Base exception for the rollout tracker."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(RolloutError):
    """Caller input violates a precondition."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(RolloutError):
    """Entity id does not resolve."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            {"resource": resource, "id": resource_id},
            status_code=404,
        )


class InvalidStateError(RolloutError):
    """Operation is illegal for the current release or step status."""

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_STATE", message, details, status_code=409)


class ConstraintViolationError(RolloutError):
    """A uniqueness or foreign-key rule of the entity store was violated."""

    def __init__(self, message: str, details=None):
        super().__init__("CONSTRAINT_VIOLATION", message, details, status_code=409)


class AuthenticationError(RolloutError):
    """Passcode missing or wrong."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)
