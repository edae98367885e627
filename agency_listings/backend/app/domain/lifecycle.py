# backend/app/domain/lifecycle.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..enums import ListingStatus
from ..errors import ConflictError, ValidationError

# -----------------------------------------------------------------------------
# Listing lifecycle
# -----------------------------------------------------------------------------
#   (none)     --create-->    PENDING
#   PENDING    --approve-->   APPROVED
#   PENDING    --reject-->    REJECTED   (message required)
#   REJECTED   --resubmit-->  PENDING    (message cleared)
#   any        --edit-->      REJECTED becomes PENDING, others unchanged
#                             (APPROVED also becomes PENDING when reopen_approved)
#
# plan_transition() is pure; apply_transition() writes status and message
# together so the row never holds one without the other.
# -----------------------------------------------------------------------------


class Trigger(str, Enum):
    CREATE = "create"
    APPROVE = "approve"
    REJECT = "reject"
    RESUBMIT = "resubmit"
    EDIT = "edit"


@dataclass(frozen=True)
class Transition:
    trigger: Trigger
    from_status: Optional[ListingStatus]
    to_status: ListingStatus
    rejection_message: Optional[str]

    @property
    def changes_status(self) -> bool:
        return self.from_status != self.to_status

    def as_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.value,
            "from": self.from_status.value if self.from_status else None,
            "to": self.to_status.value,
            "rejection_message": self.rejection_message,
        }


def _status(value: Optional[str]) -> Optional[ListingStatus]:
    if value is None:
        return None
    try:
        return ListingStatus(str(value))
    except ValueError:
        raise ConflictError(f"Unknown listing status {value!r}")


def normalize_rejection_message(message: Optional[str]) -> str:
    text = (message or "").strip()
    if not text:
        raise ValidationError.for_field("rejection_message", "Rejection message is required")
    return text


def plan_transition(
    current: Optional[str],
    trigger: Trigger | str,
    *,
    rejection_message: Optional[str] = None,
    reopen_approved: bool = False,
) -> Transition:
    trig = trigger if isinstance(trigger, Trigger) else Trigger(str(trigger))
    cur = _status(current)

    if trig is Trigger.CREATE:
        if cur is not None:
            raise ConflictError("Listing already exists")
        return Transition(trig, None, ListingStatus.PENDING, None)

    if cur is None:
        raise ConflictError("Listing has no status")

    if trig is Trigger.APPROVE:
        if cur is not ListingStatus.PENDING:
            raise ConflictError(f"Listing is not pending (status={cur.value})")
        return Transition(trig, cur, ListingStatus.APPROVED, None)

    if trig is Trigger.REJECT:
        # message is validated before the state check so an empty reason is
        # always a 400 regardless of status
        msg = normalize_rejection_message(rejection_message)
        if cur is not ListingStatus.PENDING:
            raise ConflictError(f"Listing is not pending (status={cur.value})")
        return Transition(trig, cur, ListingStatus.REJECTED, msg)

    if trig is Trigger.RESUBMIT:
        if cur is not ListingStatus.REJECTED:
            raise ConflictError(f"Listing is not rejected (status={cur.value})")
        return Transition(trig, cur, ListingStatus.PENDING, None)

    # EDIT by the owner
    if cur is ListingStatus.REJECTED or (reopen_approved and cur is ListingStatus.APPROVED):
        return Transition(trig, cur, ListingStatus.PENDING, None)
    return Transition(trig, cur, cur, None)


def apply_transition(row: Any, transition: Transition) -> None:
    row.status = transition.to_status.value
    row.rejection_message = transition.rejection_message


def transition_for_decision(status: str, rejection_message: Optional[str]) -> Trigger:
    """Maps the approval-queue payload `{status, rejection_reason}` onto a trigger."""
    try:
        target = ListingStatus(str(status).strip().upper())
    except ValueError:
        raise ValidationError.for_field("status", "status must be APPROVED or REJECTED")
    if target is ListingStatus.APPROVED:
        return Trigger.APPROVE
    if target is ListingStatus.REJECTED:
        return Trigger.REJECT
    raise ValidationError.for_field("status", "status must be APPROVED or REJECTED")
