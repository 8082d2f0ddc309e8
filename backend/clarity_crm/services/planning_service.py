"""Planning Service - everything the weekly planning screen needs in one call."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.core.authorization import CurrentUser
from clarity_crm.core.capacity import get_week_start
from clarity_crm.core.domain_types import UserRole
from clarity_crm.core.planning import member_options
from clarity_crm.models.user import User
from clarity_crm.services.capacity_service import get_team_capacity_info
from clarity_crm.services.task_service import weekly_board


async def team_agents(db: AsyncSession, team_id: UUID) -> list[User]:
    result = await db.execute(
        select(User)
        .where(
            User.team_id == team_id,
            User.is_active.is_(True),
            User.role == UserRole.SALES_AGENT.value,
        )
        .order_by(User.name),
    )
    return list(result.scalars().all())


async def initial_data(
    db: AsyncSession, user: CurrentUser, team_id: UUID, week_start: datetime,
) -> dict:
    week_start = get_week_start(week_start)
    members = [
        {"id": str(m.id), "name": m.name, "email": m.email, "role": m.role}
        for m in await team_agents(db, team_id)
    ]
    capacity = await get_team_capacity_info(db, team_id, week_start)
    items = await weekly_board(db, week_start, team_id=team_id)
    return {
        "team_members": member_options(user, members),
        "capacity": capacity.to_dict(),
        "weekly_tasks": [item.to_dict() for item in items],
        "week_start": week_start.date().isoformat(),
    }
