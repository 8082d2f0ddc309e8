"""AI Insights Routes - team workload and performance insights for Sales Leads.

Invariants:
    - Sales Lead only
    - Metrics and rule-based text are always computed; the Anthropic narrative is
      opt-in (settings.ai_insights_enabled) and falls back to the rule-based summary

Design Decisions:
    - The Anthropic client is a lazily created singleton exposed as a dependency so
      tests can override it with a fake
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.api.deps import get_current_user
from clarity_crm.config import Settings, get_settings
from clarity_crm.core.authorization import CurrentUser, can_view_ai_insights
from clarity_crm.core.errors import ForbiddenError
from clarity_crm.infrastructure.anthropic_client import ResilientAnthropicClient
from clarity_crm.infrastructure.database import get_db
from clarity_crm.infrastructure.rate_limiter import api_limiter
from clarity_crm.services.insight_service import generate_insights

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ai", tags=["ai-insights"])

_anthropic_client: ResilientAnthropicClient | None = None


def get_anthropic_client() -> ResilientAnthropicClient | None:
    """Shared client, or None when the narrative is disabled or has no API key."""
    global _anthropic_client
    settings = get_settings()
    if not settings.ai_insights_enabled or not settings.anthropic_api_key:
        return None
    if _anthropic_client is None:
        _anthropic_client = ResilientAnthropicClient.from_settings(settings)
    return _anthropic_client


@router.get("/insights", dependencies=[Depends(api_limiter)])
async def team_insights(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    client: ResilientAnthropicClient | None = Depends(get_anthropic_client),
):
    if not can_view_ai_insights(user):
        raise ForbiddenError("Forbidden: AI insights are available to Sales Leads only")
    insights = await generate_insights(db, settings, client)
    logger.info(
        f"Insights generated ({insights['source']})",
        extra={"user_id": str(user.id)},
    )
    return insights
