# backend/tests/test_lifecycle.py
from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.domain.lifecycle import Trigger, apply_transition, plan_transition, transition_for_decision
from app.enums import ListingStatus
from app.errors import ConflictError, ValidationError


def test_create_starts_pending():
    t = plan_transition(None, Trigger.CREATE)
    assert t.to_status is ListingStatus.PENDING
    assert t.rejection_message is None


def test_approve_pending():
    t = plan_transition("PENDING", Trigger.APPROVE)
    assert t.to_status is ListingStatus.APPROVED


@pytest.mark.parametrize("status", ["APPROVED", "REJECTED"])
@pytest.mark.parametrize("trigger", [Trigger.APPROVE, Trigger.REJECT])
def test_review_requires_pending(status, trigger):
    with pytest.raises(ConflictError):
        plan_transition(status, trigger, rejection_message="motivo")


def test_reject_trims_message():
    t = plan_transition("PENDING", Trigger.REJECT, rejection_message="  Fotos de baja calidad \n")
    assert t.to_status is ListingStatus.REJECTED
    assert t.rejection_message == "Fotos de baja calidad"


@pytest.mark.parametrize("msg", [None, "", "   ", "\t\n"])
def test_reject_without_message_is_validation_error(msg):
    with pytest.raises(ValidationError):
        plan_transition("PENDING", Trigger.REJECT, rejection_message=msg)


def test_resubmit_clears_message():
    t = plan_transition("REJECTED", Trigger.RESUBMIT)
    assert t.to_status is ListingStatus.PENDING
    assert t.rejection_message is None


@pytest.mark.parametrize("status", ["PENDING", "APPROVED"])
def test_resubmit_requires_rejected(status):
    with pytest.raises(ConflictError):
        plan_transition(status, Trigger.RESUBMIT)


def test_owner_edit_rules():
    assert plan_transition("REJECTED", Trigger.EDIT).to_status is ListingStatus.PENDING
    assert plan_transition("APPROVED", Trigger.EDIT).to_status is ListingStatus.APPROVED
    assert plan_transition("PENDING", Trigger.EDIT).to_status is ListingStatus.PENDING
    assert not plan_transition("PENDING", Trigger.EDIT).changes_status


def test_edit_can_reopen_approved():
    t = plan_transition("APPROVED", Trigger.EDIT, reopen_approved=True)
    assert t.to_status is ListingStatus.PENDING
    assert t.rejection_message is None
    assert plan_transition("PENDING", Trigger.EDIT, reopen_approved=True).to_status is ListingStatus.PENDING


def test_apply_transition_writes_status_and_message_together():
    row = SimpleNamespace(status="PENDING", rejection_message=None)
    apply_transition(row, plan_transition("PENDING", Trigger.REJECT, rejection_message="x"))
    assert (row.status, row.rejection_message) == ("REJECTED", "x")

    apply_transition(row, plan_transition(row.status, Trigger.RESUBMIT))
    assert (row.status, row.rejection_message) == ("PENDING", None)


def test_decision_payload_mapping():
    assert transition_for_decision("APPROVED", None) is Trigger.APPROVE
    assert transition_for_decision("rejected", "x") is Trigger.REJECT
    with pytest.raises(ValidationError):
        transition_for_decision("PENDING", None)
    with pytest.raises(ValidationError):
        transition_for_decision("ARCHIVED", None)
