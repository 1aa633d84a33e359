"""Exceptions raised by the catalog and the review workflow."""


class PipelineError(Exception):
    """Base class for legalflow errors."""


class CatalogError(PipelineError, ValueError):
    """Raised when the template catalog cannot be loaded."""


class OperatorError(PipelineError):
    """An operation that does not make sense for the item it targets."""


class ItemNotFoundError(OperatorError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Review item not found: {item_id}")
        self.item_id = item_id


class InvalidTransitionError(OperatorError):
    def __init__(self, status: str, action: str) -> None:
        super().__init__(f"Action '{action}' is not allowed from status '{status}'")
        self.status = status
        self.action = action


class PreconditionError(PipelineError):
    """Input rejected before any state change, e.g. an empty comment."""


class ApprovalBlockedError(PipelineError):
    """Approval refused because the record fails validation.

    Attributes:
        violations: The validation failures that block approval.
    """

    def __init__(self, item_id: str, violations: list) -> None:
        messages = "; ".join(v.message for v in violations)
        super().__init__(f"Approval of {item_id} blocked: {messages}")
        self.item_id = item_id
        self.violations = violations
