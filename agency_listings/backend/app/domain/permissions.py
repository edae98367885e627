# backend/app/domain/permissions.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from ..enums import Role
from ..errors import AuthorizationError

# -----------------------------------------------------------------------------
# Permission evaluator
# -----------------------------------------------------------------------------
# One pure decision for every (actor, action, resource) triple. Routers and
# services never compare roles inline; they call decide()/require().
#
# Resource identity is reduced to the two facts that matter for tenancy:
#   resource_agency_id  -> which agency owns the row
#   resource_owner_id   -> which agent created it
# -----------------------------------------------------------------------------


class Action(str, Enum):
    CREATE = "create"
    VIEW = "view"
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    RESUBMIT = "resubmit"


class ResourceKind(str, Enum):
    PROPERTY = "property"
    PROJECT = "project"
    # floors and quadrants of a project
    PROJECT_STRUCTURE = "project_structure"


class Actor(Protocol):
    user_id: int
    role: str
    agency_id: Optional[int]
    active: bool


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


_AGENCY_ADMIN_ACTIONS = {Action.VIEW, Action.APPROVE, Action.REJECT, Action.DELETE}
_OWNER_ACTIONS = {Action.VIEW, Action.EDIT, Action.DELETE, Action.RESUBMIT}
_STRUCTURE_MUTATIONS = {Action.CREATE, Action.EDIT, Action.DELETE}


def _coerce_action(action: Action | str) -> Optional[Action]:
    if isinstance(action, Action):
        return action
    try:
        return Action(str(action).strip().lower())
    except ValueError:
        return None


def _coerce_kind(kind: ResourceKind | str) -> Optional[ResourceKind]:
    if isinstance(kind, ResourceKind):
        return kind
    try:
        return ResourceKind(str(kind).strip().lower())
    except ValueError:
        return None


def _same_agency(actor: Actor, resource_agency_id: Optional[int]) -> bool:
    return actor.agency_id is not None and resource_agency_id is not None and int(actor.agency_id) == int(resource_agency_id)


def _is_owner(actor: Actor, resource_owner_id: Optional[int]) -> bool:
    return resource_owner_id is not None and int(actor.user_id) == int(resource_owner_id)


def decide(
    actor: Optional[Actor],
    action: Action | str,
    *,
    resource_agency_id: Optional[int],
    resource_owner_id: Optional[int],
    kind: ResourceKind | str = ResourceKind.PROPERTY,
) -> Decision:
    """
    Total, side-effect free. Unknown actions, kinds and roles deny.

    Priority:
      1) missing / inactive actor        -> deny
      2) project structure mutations     -> owning agent only
      3) SUPER_ADMIN                     -> allow
      4) AGENCY_ADMIN                    -> view/approve/reject/delete in own agency
      5) AGENT                           -> view/edit/delete/resubmit own rows,
                                            create inside own agency
    """
    if actor is None or not bool(actor.active):
        return Decision(False, "inactive_or_anonymous")

    act = _coerce_action(action)
    if act is None:
        return Decision(False, "unknown_action")

    res_kind = _coerce_kind(kind)
    if res_kind is None:
        return Decision(False, "unknown_kind")

    if res_kind is ResourceKind.PROJECT_STRUCTURE and act in _STRUCTURE_MUTATIONS:
        if _is_owner(actor, resource_owner_id):
            return Decision(True, "structure_owner")
        return Decision(False, "structure_owner_only")

    role = str(actor.role)

    if role == Role.SUPER_ADMIN.value:
        return Decision(True, "super_admin")

    if role == Role.AGENCY_ADMIN.value:
        if not _same_agency(actor, resource_agency_id):
            return Decision(False, "cross_agency")
        if act in _AGENCY_ADMIN_ACTIONS:
            return Decision(True, "agency_admin")
        return Decision(False, "agency_admin_action_denied")

    if role == Role.AGENT.value:
        if act is Action.CREATE:
            if _same_agency(actor, resource_agency_id):
                return Decision(True, "agent_create_in_agency")
            return Decision(False, "agent_create_outside_agency")
        if act in _OWNER_ACTIONS and _is_owner(actor, resource_owner_id):
            return Decision(True, "owner")
        return Decision(False, "not_owner")

    return Decision(False, "unknown_role")


def is_allowed(
    actor: Optional[Actor],
    action: Action | str,
    *,
    resource_agency_id: Optional[int],
    resource_owner_id: Optional[int],
    kind: ResourceKind | str = ResourceKind.PROPERTY,
) -> bool:
    return decide(
        actor,
        action,
        resource_agency_id=resource_agency_id,
        resource_owner_id=resource_owner_id,
        kind=kind,
    ).allowed


def require(
    actor: Optional[Actor],
    action: Action | str,
    *,
    resource_agency_id: Optional[int],
    resource_owner_id: Optional[int],
    kind: ResourceKind | str = ResourceKind.PROPERTY,
) -> None:
    if not is_allowed(
        actor,
        action,
        resource_agency_id=resource_agency_id,
        resource_owner_id=resource_owner_id,
        kind=kind,
    ):
        raise AuthorizationError()


def require_role(actor: Optional[Actor], *roles: Role) -> None:
    """Role gate for endpoints that are not about a single listing (agencies, user admin)."""
    if actor is None or not bool(actor.active):
        raise AuthorizationError()
    if str(actor.role) not in {r.value for r in roles}:
        raise AuthorizationError()
