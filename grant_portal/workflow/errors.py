class WorkflowError(Exception):
    """Base exception for consent workflow errors"""
    pass


class ValidationError(WorkflowError):
    """Consent fields or signature are missing or invalid. No request was made."""

    def __init__(self, field_errors: dict[str, str]):
        self.field_errors = dict(field_errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.field_errors.items()) or "Invalid consent form")


class Unauthenticated(WorkflowError):
    """No session token is available. Raised before any request is sent."""
    pass


class TemplateLoadFailed(WorkflowError):
    pass


class FillFailed(WorkflowError):
    pass


class SubmissionFailed(WorkflowError):
    pass


class InvalidTransition(WorkflowError):
    pass


class ActionPending(WorkflowError):
    """The same action is already in flight."""
    pass
