"""Team Insights - rule-based workload and engagement analysis for Sales Leads.

Invariants:
    - Workload bucket per user: < 5 active tasks low, < 8 medium, otherwise high
    - completion_rate is rounded half-up to an integer percentage, 0 with no tasks
    - Concerns/recommendations only contain the rules that fired (no empty strings)
    - Exactly three action items are always returned
    - An empty team yields a valid payload (no division by zero, no top performer)

Design Decisions:
    - Heuristic output is always computed; the LLM only rewrites the summary
      from these numbers, so a model outage never loses the insights
"""

import json
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from clarity_crm.core.capacity import round_half_up

LOW_LOAD_MAX = 5
MEDIUM_LOAD_MAX = 8
LOW_COMPLETION_THRESHOLD = 60
MANY_FOLLOW_UPS = 10
FEW_CALLS = 5


@dataclass(frozen=True)
class UserMetrics:
    user_id: UUID
    name: str
    completed_tasks: int
    active_tasks: int
    total_tasks: int
    total_activities: int
    total_calls: int
    recent_activities: int

    @property
    def completion_rate(self) -> int:
        if self.total_tasks <= 0:
            return 0
        return round_half_up(self.completed_tasks / self.total_tasks * 100)

    @property
    def load(self) -> str:
        if self.active_tasks < LOW_LOAD_MAX:
            return "low"
        if self.active_tasks < MEDIUM_LOAD_MAX:
            return "medium"
        return "high"


@dataclass(frozen=True)
class TeamActivity:
    """Team-wide counters that are not per user."""
    weekly_call_volume: int
    pending_follow_ups: int
    total_active_tasks: int
    total_completed_tasks: int


def _names(members: list[UserMetrics]) -> str:
    return ", ".join(m.name for m in members)


def build_insights(metrics: list[UserMetrics], team: TeamActivity) -> dict[str, Any]:
    """Compute the full insight payload from per-user metrics."""
    overloaded = [m for m in metrics if m.load == "high"]
    underutilized = [m for m in metrics if m.load == "low"]
    avg_completion = (
        sum(m.completion_rate for m in metrics) / len(metrics) if metrics else 0.0
    )
    team_rate = round_half_up(avg_completion)
    top = max(metrics, key=lambda m: m.completion_rate) if metrics else None
    calls = team.weekly_call_volume
    follow_ups = team.pending_follow_ups

    summary = (
        f"Team is performing at {team_rate}% task completion rate "
        f"with {calls} calls logged this week."
        if metrics else "No active team members to analyze yet."
    )

    strengths = []
    if top is not None:
        strengths.append(
            f"{top.name} is the top performer with {top.completion_rate}% completion rate",
        )
    strengths.append(
        f"{calls} calls logged in the past week shows strong customer engagement",
    )
    strengths.append(
        f"{follow_ups} scheduled follow-ups demonstrate proactive pipeline management",
    )

    concerns = []
    if overloaded:
        concerns.append(
            f"{len(overloaded)} team member(s) have high workload "
            f"({MEDIUM_LOAD_MAX}+ active tasks)",
        )
    if len(underutilized) > 1:
        concerns.append(f"{len(underutilized)} team members have low utilization")
    if metrics and avg_completion < LOW_COMPLETION_THRESHOLD:
        concerns.append("Team completion rate is below optimal threshold")

    recommendations = []
    if overloaded and underutilized:
        recommendations.append(
            f"Redistribute tasks from {_names(overloaded)} to {_names(underutilized)}",
        )
    if follow_ups > MANY_FOLLOW_UPS:
        recommendations.append(
            "High number of follow-ups - consider prioritizing and delegating",
        )
    if calls < FEW_CALLS:
        recommendations.append(
            "Increase calling activity to boost pipeline development",
        )
    if top is not None:
        recommendations.append(
            f"Recognize {top.name}'s excellent performance to boost team morale",
        )

    return {
        "summary": summary,
        "strengths": strengths,
        "concerns": concerns,
        "recommendations": recommendations,
        "metrics": {
            "team_completion_rate": team_rate,
            "total_active_tasks": team.total_active_tasks,
            "total_completed_tasks": team.total_completed_tasks,
            "weekly_call_volume": calls,
            "pending_follow_ups": follow_ups,
            "team_utilization": [
                {
                    "user_id": str(m.user_id),
                    "name": m.name,
                    "active_tasks": m.active_tasks,
                    "capacity": m.load,
                    "completion_rate": m.completion_rate,
                }
                for m in metrics
            ],
        },
        "action_items": [
            {
                "priority": "high",
                "action": (
                    f"Review workload for {_names(overloaded)}"
                    if overloaded
                    else "Monitor team capacity and redistribute tasks as needed"
                ),
                "assigned_to": "Sales Lead",
            },
            {
                "priority": "medium",
                "action": "Schedule 1:1s with team to discuss goals and blockers",
                "assigned_to": "Sales Lead",
            },
            {
                "priority": "medium",
                "action": (
                    f"Ensure {follow_ups} upcoming follow-ups are prepared"
                    if follow_ups > 0
                    else "Increase follow-up activity for better conversion"
                ),
                "assigned_to": "All",
            },
        ],
    }


# ─── LLM narrative ───────────────────────────────────────────────

NARRATIVE_SYSTEM_PROMPT = (
    "You are a sales operations analyst. You receive team metrics for a small "
    "B2B sales team as JSON. Write a concise summary (at most three sentences) "
    "for the Sales Lead: overall performance, the most important risk, and one "
    "concrete next step. Use only the numbers provided. Plain text, no markdown."
)


def build_narrative_messages(insights: dict[str, Any]) -> list[dict[str, Any]]:
    """User message for the summary rewrite; only aggregate metrics are sent."""
    payload = {
        "metrics": insights["metrics"],
        "concerns": insights["concerns"],
        "recommendations": insights["recommendations"],
    }
    return [{
        "role": "user",
        "content": json.dumps(payload, ensure_ascii=False),
    }]


def extract_text(content_blocks: list[Any]) -> str:
    """Join the text blocks of a Messages API response."""
    parts = [
        getattr(block, "text", "")
        for block in content_blocks
        if getattr(block, "type", None) == "text"
    ]
    return "".join(parts).strip()
