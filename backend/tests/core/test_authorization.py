"""Authorization - role and ownership rules over CurrentUser, no DB."""

from uuid import uuid4

import pytest

from clarity_crm.core.authorization import (
    CurrentUser, can_delete_task, can_edit_task, can_move_task, can_view_ai_insights,
    can_view_user_details, can_view_user_list, is_sales_agent, is_sales_lead,
    require_ownership, require_role, require_sales_lead, require_user_details_access,
)
from clarity_crm.core.domain_types import UserRole
from clarity_crm.core.errors import ForbiddenError


def _user(role: UserRole) -> CurrentUser:
    return CurrentUser(id=uuid4(), email=f"{role.value.lower()}@x.com", name="U", role=role)


LEAD = _user(UserRole.SALES_LEAD)
AGENT = _user(UserRole.SALES_AGENT)
MANAGER = _user(UserRole.MANAGER)


def test_role_predicates():
    assert is_sales_lead(LEAD) and not is_sales_lead(AGENT)
    assert is_sales_agent(AGENT) and not is_sales_agent(MANAGER)
    assert not is_sales_lead(None)


def test_lead_can_view_anyone_agent_only_self():
    other = uuid4()
    assert can_view_user_details(LEAD, other)
    assert can_view_user_details(AGENT, AGENT.id)
    assert not can_view_user_details(AGENT, other)
    assert not can_view_user_details(None, other)


def test_lead_only_capabilities():
    assert can_view_user_list(LEAD) and not can_view_user_list(AGENT)
    assert can_view_ai_insights(LEAD) and not can_view_ai_insights(MANAGER)


def test_require_role_lists_allowed_roles():
    require_role(MANAGER, [UserRole.SALES_LEAD, UserRole.MANAGER])
    with pytest.raises(ForbiddenError) as exc:
        require_role(AGENT, [UserRole.SALES_LEAD, UserRole.MANAGER])
    assert "SALES_LEAD or MANAGER" in exc.value.message


def test_require_sales_lead_raises_for_agent():
    require_sales_lead(LEAD)
    with pytest.raises(ForbiddenError):
        require_sales_lead(AGENT)


def test_require_ownership_owner_and_exempt_roles():
    require_ownership(AGENT, AGENT.id)
    require_ownership(LEAD, uuid4())
    require_ownership(MANAGER, None)
    with pytest.raises(ForbiddenError):
        require_ownership(AGENT, uuid4())
    with pytest.raises(ForbiddenError):
        require_ownership(AGENT, None)


def test_require_user_details_access():
    require_user_details_access(AGENT, AGENT.id)
    with pytest.raises(ForbiddenError) as exc:
        require_user_details_access(AGENT, uuid4())
    assert exc.value.http_status == 403


def test_task_edit_rules():
    creator, assignee = uuid4(), AGENT.id
    assert can_edit_task(AGENT, creator, assignee)
    assert not can_edit_task(AGENT, creator, uuid4())
    assert can_edit_task(MANAGER, creator, uuid4())


def test_task_delete_and_move_rules():
    assert can_delete_task(AGENT, AGENT.id)
    assert not can_delete_task(AGENT, uuid4())
    assert can_delete_task(LEAD, uuid4())
    assert can_move_task(LEAD, uuid4())
    assert can_move_task(AGENT, AGENT.id)
    assert not can_move_task(MANAGER, uuid4())
