"""Review status transitions."""

from legalflow.errors import InvalidTransitionError

from .models import CommentKind, ReviewAction, ReviewStatus

TRANSITIONS: dict[tuple[ReviewStatus, ReviewAction], ReviewStatus] = {
    (ReviewStatus.PENDING, ReviewAction.START_REVIEW): ReviewStatus.UNDER_REVIEW,
    (ReviewStatus.PENDING, ReviewAction.APPROVE): ReviewStatus.APPROVED,
    (ReviewStatus.PENDING, ReviewAction.REJECT): ReviewStatus.REJECTED,
    (ReviewStatus.PENDING, ReviewAction.REQUEST_CORRECTION): ReviewStatus.PENDING,
    (ReviewStatus.UNDER_REVIEW, ReviewAction.APPROVE): ReviewStatus.APPROVED,
    (ReviewStatus.UNDER_REVIEW, ReviewAction.REJECT): ReviewStatus.REJECTED,
    (ReviewStatus.UNDER_REVIEW, ReviewAction.REQUEST_CORRECTION): ReviewStatus.PENDING,
}

# Audit comment appended by each action.
ACTION_COMMENT_KINDS: dict[ReviewAction, CommentKind] = {
    ReviewAction.START_REVIEW: CommentKind.ASSIGNMENT,
    ReviewAction.APPROVE: CommentKind.VALIDATION,
    ReviewAction.REJECT: CommentKind.REJECTION,
    ReviewAction.REQUEST_CORRECTION: CommentKind.CORRECTION,
}

COMMENT_REQUIRED = frozenset({ReviewAction.REJECT, ReviewAction.REQUEST_CORRECTION})


def parse_action(action: str | ReviewAction, status: ReviewStatus) -> ReviewAction:
    try:
        return ReviewAction(action)
    except ValueError:
        raise InvalidTransitionError(str(status), str(action)) from None


def next_status(status: ReviewStatus, action: ReviewAction) -> ReviewStatus:
    """Status reached by applying ``action`` in ``status``.

    Raises:
        InvalidTransitionError: If the action is not allowed in ``status``.
    """
    try:
        return TRANSITIONS[(status, action)]
    except KeyError:
        raise InvalidTransitionError(str(status), str(action)) from None


def allowed_actions(status: ReviewStatus) -> list[ReviewAction]:
    return [action for (source, action) in TRANSITIONS if source == status]
