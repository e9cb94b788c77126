"""Exception taxonomy for the approval workflow engine."""


class SignoffError(Exception):
    """Base exception for Signoff."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(SignoffError):
    """Malformed or incomplete process definition or request input."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(SignoffError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            details={"resource": resource, "resource_id": resource_id},
            status_code=404,
        )


class AuthorizationError(SignoffError):
    """Actor is not allowed to perform the action."""

    def __init__(self, message: str = "Actor is not eligible for this action", details=None):
        super().__init__("AUTHORIZATION_ERROR", message, details, status_code=403)


class InvalidTransitionError(SignoffError):
    """Action attempted from a terminal state, wrong status, or against a frozen definition."""

    def __init__(self, message: str, details=None):
        super().__init__("INVALID_TRANSITION", message, details, status_code=409)


class ConcurrentModificationError(SignoffError):
    """Request version changed between read and commit."""

    def __init__(self, request_uid: str, expected_version: int, actual_version: int | None = None):
        self.request_uid = request_uid
        self.expected_version = expected_version
        self.actual_version = actual_version
        details = {"request_uid": request_uid, "expected_version": expected_version}
        if actual_version is not None:
            details["actual_version"] = actual_version
        super().__init__(
            "CONCURRENT_MODIFICATION",
            f"Approval request '{request_uid}' was modified concurrently",
            details,
            status_code=409,
        )


class UnresolvableStepError(SignoffError):
    """No principal, primary or fallback, can act on the step."""

    def __init__(self, request_uid: str, step_uid: str):
        self.request_uid = request_uid
        self.step_uid = step_uid
        super().__init__(
            "UNRESOLVABLE_STEP",
            f"No eligible principal for step '{step_uid}'",
            details={"request_uid": request_uid, "step_uid": step_uid},
            status_code=422,
        )
