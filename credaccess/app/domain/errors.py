"""Error taxonomy for the access-request workflow."""


class AccessWorkflowError(Exception):
    """Base class for workflow failures surfaced to callers."""


class ValidationError(AccessWorkflowError):
    """A request could not be created from the supplied data."""


class PersistenceError(AccessWorkflowError):
    """The backing store is unreadable, corrupt, or could not be written."""


class InvalidTransitionError(AccessWorkflowError):
    def __init__(self, request_id: str, current: str, attempted: str) -> None:
        super().__init__(f"request {request_id} is already {current}; cannot {attempted}")
        self.request_id = request_id
        self.current = current
        self.attempted = attempted


class AuthorizationError(AccessWorkflowError):
    def __init__(self, subject_id: str, role: str, action: str) -> None:
        super().__init__(f"{role} {subject_id!r} may not {action}")
        self.subject_id = subject_id
        self.role = role
        self.action = action
