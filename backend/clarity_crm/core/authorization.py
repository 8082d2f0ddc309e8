"""Authorization - role and ownership checks over the authenticated caller.

Invariants:
    - Sales Leads see and manage everything; Sales Agents only their own data
    - can_* functions answer a question, require_* functions raise ForbiddenError
    - SALES_LEAD and MANAGER are exempt from ownership checks
    - Pure functions over CurrentUser, no DB access
"""

from dataclasses import dataclass
from uuid import UUID

from clarity_crm.core.domain_types import UserRole
from clarity_crm.core.errors import ForbiddenError

OWNERSHIP_EXEMPT_ROLES = (UserRole.SALES_LEAD, UserRole.MANAGER)


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated caller, detached from the ORM session."""
    id: UUID
    email: str
    name: str
    role: UserRole
    team_id: UUID | None = None
    is_active: bool = True


def is_sales_lead(user: CurrentUser | None) -> bool:
    return user is not None and user.role == UserRole.SALES_LEAD


def is_sales_agent(user: CurrentUser | None) -> bool:
    return user is not None and user.role == UserRole.SALES_AGENT


def can_view_user_details(user: CurrentUser | None, target_user_id: UUID | None) -> bool:
    """Leads can view anyone; everyone else only themselves."""
    if user is None:
        return False
    if is_sales_lead(user):
        return True
    return target_user_id is not None and user.id == target_user_id


def can_view_user_list(user: CurrentUser | None) -> bool:
    return is_sales_lead(user)


def can_view_ai_insights(user: CurrentUser | None) -> bool:
    return is_sales_lead(user)


def can_view_team_performance(user: CurrentUser | None) -> bool:
    return is_sales_lead(user)


def can_manage_users(user: CurrentUser | None) -> bool:
    return is_sales_lead(user)


def can_reassign_work(user: CurrentUser | None) -> bool:
    return is_sales_lead(user)


def is_exempt(user: CurrentUser, exempt_roles=OWNERSHIP_EXEMPT_ROLES) -> bool:
    return user.role in exempt_roles


# ─── Raising guards ──────────────────────────────────────────────

def require_role(user: CurrentUser, roles: tuple[UserRole, ...] | list[UserRole]) -> None:
    if user.role not in roles:
        allowed = " or ".join(r.value for r in roles)
        raise ForbiddenError(f"Forbidden: requires role {allowed}")


def require_sales_lead(user: CurrentUser, message: str = "Forbidden: Sales Lead only") -> None:
    if not is_sales_lead(user):
        raise ForbiddenError(message)


def require_ownership(
    user: CurrentUser,
    owner_id: UUID | None,
    exempt_roles=OWNERSHIP_EXEMPT_ROLES,
    message: str = "Forbidden: you do not own this resource",
) -> None:
    if is_exempt(user, exempt_roles):
        return
    if owner_id is None or owner_id != user.id:
        raise ForbiddenError(message)


def require_user_details_access(user: CurrentUser, target_user_id: UUID) -> None:
    if not can_view_user_details(user, target_user_id):
        raise ForbiddenError("Forbidden: you can only view your own data")


# ─── Task rules ──────────────────────────────────────────────────

def can_edit_task(
    user: CurrentUser, created_by_id: UUID | None, assignee_id: UUID | None,
) -> bool:
    if is_exempt(user):
        return True
    return user.id in (created_by_id, assignee_id)


def can_delete_task(user: CurrentUser, created_by_id: UUID | None) -> bool:
    return is_exempt(user) or user.id == created_by_id


def can_move_task(user: CurrentUser, created_by_id: UUID | None) -> bool:
    """Moving a task to another assignee needs the creator or a lead."""
    return can_reassign_work(user) or user.id == created_by_id
