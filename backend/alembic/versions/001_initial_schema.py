"""Initial schema - teams, users, capacity, companies, customers, deals, work items, targets.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _user_fk(name: str, ondelete: str = "SET NULL", nullable: bool = True) -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True),
        sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "teams",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="SALES_AGENT"),
        sa.Column("team_id", UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_team_id", "users", ["team_id"])

    op.create_table(
        "user_capacities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _user_fk("user_id", ondelete="CASCADE", nullable=False),
        sa.Column("max_items_per_week", sa.Integer, nullable=False, server_default="10"),
        sa.Column(
            "working_days", sa.String(100), nullable=False,
            server_default="MONDAY,TUESDAY,WEDNESDAY,THURSDAY,FRIDAY",
        ),
        sa.Column("working_hours_start", sa.Integer, nullable=False, server_default="9"),
        sa.Column("working_hours_end", sa.Integer, nullable=False, server_default="17"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_user_capacities_user_id"),
        sa.CheckConstraint("max_items_per_week >= 1", name="ck_capacity_max_items_positive"),
    )

    op.create_table(
        "companies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("industry", sa.String(30), nullable=True),
        sa.Column("size", sa.String(20), nullable=True),
        sa.Column("revenue", sa.Float, nullable=True),
        sa.Column("employees", sa.Integer, nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("address", sa.String(300), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PROSPECT"),
        sa.Column("founded_year", sa.Integer, nullable=True),
        _user_fk("created_by"),
        _user_fk("assigned_to"),
        *_timestamps(),
    )
    op.create_index("ix_companies_name", "companies", ["name"])
    op.create_index("ix_companies_assigned_to", "companies", ["assigned_to"])

    op.create_table(
        "customers",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("position", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="LEAD"),
        sa.Column("source", sa.String(20), nullable=True),
        sa.Column("value", sa.Float, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        _user_fk("created_by"),
        _user_fk("assigned_to"),
        sa.Column("company_id", UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customers_name", "customers", ["name"])
    op.create_index("ix_customers_assigned_to", "customers", ["assigned_to"])
    op.create_index("ix_customers_company_id", "customers", ["company_id"])

    op.create_table(
        "deals",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("value", sa.Float, nullable=False, server_default="0"),
        sa.Column("probability", sa.Integer, nullable=False, server_default="20"),
        sa.Column("stage", sa.String(20), nullable=False, server_default="PROSPECTING"),
        sa.Column("source", sa.String(20), nullable=True),
        sa.Column("customer_id", UUID(as_uuid=True), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("company_id", UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        _user_fk("owner_id"),
        _user_fk("created_by"),
        sa.Column("expected_close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_close_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lost_reason", sa.Text, nullable=True),
        sa.Column("stage_changed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("days_in_stage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_duration", sa.Integer, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("probability >= 0 AND probability <= 100", name="ck_deal_probability_range"),
        sa.CheckConstraint("value >= 0", name="ck_deal_value_non_negative"),
    )
    op.create_index("ix_deals_stage", "deals", ["stage"])
    op.create_index("ix_deals_customer_id", "deals", ["customer_id"])
    op.create_index("ix_deals_company_id", "deals", ["company_id"])
    op.create_index("ix_deals_owner_id", "deals", ["owner_id"])

    op.create_table(
        "deal_notes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("deal_id", UUID(as_uuid=True), sa.ForeignKey("deals.id", ondelete="CASCADE"), nullable=False),
        _user_fk("user_id"),
        sa.Column("content", sa.Text, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_deal_notes_deal_id", "deal_notes", ["deal_id"])

    op.create_table(
        "tasks",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="TODO"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="MEDIUM"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_duration", sa.Integer, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("assignee_id"),
        _user_fk("created_by_id"),
        sa.Column("team_id", UUID(as_uuid=True), sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_id", UUID(as_uuid=True), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("company_id", UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        sa.Column("deal_id", UUID(as_uuid=True), sa.ForeignKey("deals.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])

    op.create_table(
        "activities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("duration", sa.Integer, nullable=True),
        sa.Column("estimated_duration", sa.Integer, nullable=True),
        _user_fk("user_id", ondelete="CASCADE", nullable=False),
        sa.Column("customer_id", UUID(as_uuid=True), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("company_id", UUID(as_uuid=True), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        sa.Column("deal_id", UUID(as_uuid=True), sa.ForeignKey("deals.id", ondelete="CASCADE"), nullable=True),
        sa.Column("task_id", UUID(as_uuid=True), sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activities_type", "activities", ["type"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])

    op.create_table(
        "call_notes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("client_name", sa.String(200), nullable=False),
        sa.Column("client_company", sa.String(200), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text, nullable=False),
        sa.Column("summary", sa.Text, nullable=True),
        sa.Column("ai_summary", sa.Text, nullable=True),
        sa.Column("outcome", sa.String(200), nullable=True),
        sa.Column("follow_up_date", sa.DateTime(timezone=True), nullable=True),
        _user_fk("user_id", ondelete="CASCADE", nullable=False),
        sa.Column("customer_id", UUID(as_uuid=True), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_call_notes_user_id", "call_notes", ["user_id"])

    op.create_table(
        "targets",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _user_fk("user_id", ondelete="CASCADE"),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=True),
        sa.Column("quarter", sa.Integer, nullable=True),
        sa.Column("target_value", sa.Float, nullable=False),
        sa.Column("actual_value", sa.Float, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_targets_user_id", "targets", ["user_id"])
    op.create_index("ix_targets_year", "targets", ["year"])

    for table in (
        "teams", "users", "user_capacities", "companies", "customers", "deals",
        "deal_notes", "tasks", "activities", "call_notes", "targets",
    ):
        op.create_index(f"ix_{table}_created_at", table, ["created_at"])


def downgrade() -> None:
    for table in (
        "targets", "call_notes", "activities", "tasks", "deal_notes", "deals",
        "customers", "companies", "user_capacities", "users", "teams",
    ):
        op.drop_table(table)
