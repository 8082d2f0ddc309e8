"""Insight Service - gathers team metrics and optionally narrates them with Claude.

Invariants:
    - Metrics cover every active user
    - Calls are call notes; weekly volume counts call notes from the last 7 days
    - Pending follow-ups are call notes with a follow-up date in the future
    - Any AnthropicAPIError leaves the rule-based summary in place (source "heuristic")

Design Decisions:
    - The Anthropic client is injected so the route can share one instance and
      tests can pass a fake
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.config import Settings
from clarity_crm.core.date_ranges import as_utc, utc_now
from clarity_crm.core.domain_types import ACTIVE_TASK_STATUSES, TaskStatus
from clarity_crm.core.errors import AnthropicAPIError
from clarity_crm.core.insights import (
    NARRATIVE_SYSTEM_PROMPT, TeamActivity, UserMetrics,
    build_insights, build_narrative_messages, extract_text,
)
from clarity_crm.infrastructure.anthropic_client import ResilientAnthropicClient
from clarity_crm.models.activity import Activity
from clarity_crm.models.call_note import CallNote
from clarity_crm.models.task import Task
from clarity_crm.models.user import User
from clarity_crm.services.references import count_by

logger = logging.getLogger(__name__)

RECENT_DAYS = 7

_ACTIVE = [s.value for s in ACTIVE_TASK_STATUSES]


async def _count(db: AsyncSession, model, *conditions) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0


async def collect_metrics(
    db: AsyncSession, now: datetime,
) -> tuple[list[UserMetrics], TeamActivity]:
    users = (await db.execute(
        select(User).where(User.is_active.is_(True)).order_by(User.name),
    )).scalars().all()
    ids = [u.id for u in users]
    week_ago = now - timedelta(days=RECENT_DAYS)

    completed = await count_by(
        db, Task.assignee_id, ids, Task.status == TaskStatus.COMPLETED.value,
    )
    active = await count_by(db, Task.assignee_id, ids, Task.status.in_(_ACTIVE))
    total = await count_by(db, Task.assignee_id, ids)
    activities = await count_by(db, Activity.user_id, ids)
    recent = await count_by(db, Activity.user_id, ids, Activity.created_at > week_ago)
    calls = await count_by(db, CallNote.user_id, ids)

    metrics = [
        UserMetrics(
            user_id=u.id,
            name=u.name,
            completed_tasks=completed[u.id],
            active_tasks=active[u.id],
            total_tasks=total[u.id],
            total_activities=activities[u.id],
            total_calls=calls[u.id],
            recent_activities=recent[u.id],
        )
        for u in users
    ]
    team = TeamActivity(
        weekly_call_volume=await _count(db, CallNote, CallNote.created_at > week_ago),
        pending_follow_ups=await _count(db, CallNote, CallNote.follow_up_date > now),
        total_active_tasks=await _count(db, Task, Task.status.in_(_ACTIVE)),
        total_completed_tasks=await _count(
            db, Task, Task.status == TaskStatus.COMPLETED.value,
        ),
    )
    return metrics, team


async def narrate_summary(
    client: ResilientAnthropicClient, settings: Settings, insights: dict,
) -> str | None:
    """Model-written summary of the computed insights, None on failure."""
    try:
        response = await client.create_message(
            model=settings.insights_model,
            max_tokens=settings.insights_max_tokens,
            system=NARRATIVE_SYSTEM_PROMPT,
            messages=build_narrative_messages(insights),
        )
    except AnthropicAPIError as e:
        logger.warning(
            f"Insight narrative unavailable: {e.message}",
            extra={"error_code": e.code},
        )
        return None
    return extract_text(response.content) or None


async def generate_insights(
    db: AsyncSession,
    settings: Settings,
    client: ResilientAnthropicClient | None = None,
    now: datetime | None = None,
) -> dict:
    now = as_utc(now) if now else utc_now()
    metrics, team = await collect_metrics(db, now)
    insights = build_insights(metrics, team)
    insights["source"] = "heuristic"

    if settings.ai_insights_enabled and client is not None and metrics:
        summary = await narrate_summary(client, settings, insights)
        if summary:
            insights["summary"] = summary
            insights["source"] = "ai"
    insights["generated_at"] = now.isoformat()
    return insights
