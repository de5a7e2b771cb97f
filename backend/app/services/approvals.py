from ..errors import ConflictError, ValidationError

PENDING = 'pending'
APPROVED = 'approved'
REJECTED = 'rejected'
STATUSES = (PENDING, APPROVED, REJECTED)

DECISIONS = {
    'approve': APPROVED,
    'reject': REJECTED,
}


def decide(current_status: str, decision: str, subject: str = 'Request') -> str:
    """
    Resolve an approval decision against the current status.

    Only pending requests can move; approved and rejected are terminal.

    Returns:
        The new status

    Raises:
        ValidationError: Unknown decision
        ConflictError: The request was already decided
    """
    target = DECISIONS.get(decision)
    if target is None:
        raise ValidationError(f"Unknown decision '{decision}'")
    if current_status != PENDING:
        raise ConflictError(f"{subject} has already been {current_status}")
    return target
