"""Seed Script - demo data for a fresh database.

Usage:
    python -m clarity_crm.scripts.seed [--create-tables]

Invariants:
    - Idempotent: does nothing when the Sales Lead account already exists
    - Every user gets capacity settings; every password is a bcrypt hash
    - All rows are written in one transaction
"""

import argparse
import asyncio
import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clarity_crm.config import get_settings
from clarity_crm.core.date_ranges import add_days, quarter_of, utc_now
from clarity_crm.core.domain_types import (
    STAGE_PROBABILITY, ActivityType, CompanySize, CompanyStatus, CustomerStatus,
    DealStage, Industry, LeadSource, TargetPeriod, TaskPriority, TaskStatus, UserRole,
)
from clarity_crm.db.base import Base
from clarity_crm.infrastructure.database import DatabaseSessionManager, run_in_transaction
from clarity_crm.infrastructure.observability import setup_logging
from clarity_crm.infrastructure.security import hash_password
from clarity_crm.models import (
    Activity, CallNote, Company, Customer, Deal, DealNote, Target, Task, Team, User,
    UserCapacity,
)

logger = logging.getLogger(__name__)

LEAD_EMAIL = "lead@clarity.com"
DEMO_PASSWORD = "clarity123"

_AGENTS = [
    ("john@clarity.com", "John Davis", 10),
    ("emma@clarity.com", "Emma Wilson", 12),
    ("mike@clarity.com", "Mike Chen", 8),
]


def _user(email: str, name: str, role: UserRole, team: Team, max_items: int) -> User:
    return User(
        email=email,
        name=name,
        password_hash=hash_password(DEMO_PASSWORD),
        role=role.value,
        team=team,
        is_active=True,
        capacity=UserCapacity(max_items_per_week=max_items),
    )


def _deal(
    name: str, value: float, stage: DealStage, owner: User, lead: User,
    customer: Customer, company: Company, age_days: int,
) -> Deal:
    now = utc_now()
    created = add_days(now, -age_days)
    closed = stage in (DealStage.CLOSED_WON, DealStage.CLOSED_LOST)
    return Deal(
        name=name,
        value=value,
        probability=STAGE_PROBABILITY[stage],
        stage=stage.value,
        source=LeadSource.REFERRAL.value,
        customer=customer,
        company=company,
        owner=owner,
        creator=lead,
        created_at=created,
        stage_changed_at=add_days(now, -min(age_days, 5)),
        expected_close_date=add_days(now, 14),
        actual_close_date=now - timedelta(days=2) if closed else None,
        total_duration=max(0, age_days - 2) if closed else None,
    )


async def seed(db: AsyncSession) -> bool:
    """Insert demo rows; False when the database was already seeded."""
    if await db.scalar(select(User.id).where(User.email == LEAD_EMAIL)):
        logger.info("Database already seeded")
        return False

    async def _operation() -> None:
        now = utc_now()
        team = Team(name="Sales Team", description="Main sales team")
        lead = _user(LEAD_EMAIL, "Sarah Thompson", UserRole.SALES_LEAD, team, 15)
        agents = [
            _user(email, name, UserRole.SALES_AGENT, team, max_items)
            for email, name, max_items in _AGENTS
        ]
        john, emma, mike = agents

        acme = Company(
            name="Acme Corp", industry=Industry.MANUFACTURING.value,
            size=CompanySize.LARGE.value, status=CompanyStatus.ACTIVE.value,
            city="Chicago", country="USA", founded_year=1998,
            creator=lead, assignee=john,
        )
        techstart = Company(
            name="TechStart", industry=Industry.TECHNOLOGY.value,
            size=CompanySize.STARTUP.value, status=CompanyStatus.PROSPECT.value,
            website="https://techstart.example.com", founded_year=2021,
            creator=lead, assignee=emma,
        )
        globaltech = Company(
            name="GlobalTech", industry=Industry.TELECOMMUNICATIONS.value,
            size=CompanySize.ENTERPRISE.value, status=CompanyStatus.PARTNER.value,
            creator=lead, assignee=mike,
        )

        alice = Customer(
            name="Alice Morgan", email="alice@acme.example.com", company="Acme Corp",
            position="CEO", status=CustomerStatus.CUSTOMER.value,
            source=LeadSource.REFERRAL.value, value=120_000,
            linked_company=acme, creator=lead, assignee=john,
        )
        ben = Customer(
            name="Ben Ortiz", email="ben@techstart.example.com", company="TechStart",
            position="CTO", status=CustomerStatus.PROSPECT.value,
            source=LeadSource.WEBSITE.value, linked_company=techstart,
            creator=emma, assignee=emma,
        )
        carla = Customer(
            name="Carla Nguyen", company="GlobalTech", position="Head of Procurement",
            status=CustomerStatus.LEAD.value, source=LeadSource.TRADE_SHOW.value,
            linked_company=globaltech, creator=mike, assignee=mike,
        )

        deals = [
            _deal("Acme Q4 renewal", 85_000, DealStage.NEGOTIATION, john, lead, alice, acme, 40),
            _deal("Acme expansion", 40_000, DealStage.CLOSED_WON, john, lead, alice, acme, 60),
            _deal("TechStart pilot", 15_000, DealStage.PROPOSAL, emma, lead, ben, techstart, 12),
            _deal("GlobalTech platform", 220_000, DealStage.QUALIFICATION, mike, lead, carla, globaltech, 8),
            _deal("GlobalTech support", 30_000, DealStage.CLOSED_LOST, mike, lead, carla, globaltech, 30),
        ]
        db.add_all([team, lead, *agents, acme, techstart, globaltech, alice, ben, carla, *deals])
        await db.flush()

        notes = [
            DealNote(deal_id=deals[0].id, user=john, content="Legal review of the renewal terms started."),
            DealNote(deal_id=deals[2].id, user=emma, content="Pilot scope agreed with the CTO."),
        ]

        tasks = [
            Task(
                title="Follow up with Acme Corp", description="Discuss Q4 contract renewal",
                status=TaskStatus.IN_PROGRESS.value, priority=TaskPriority.HIGH.value,
                due_date=add_days(now, 2), estimated_duration=60,
                assignee=john, created_by=lead, team=team,
                customer_id=alice.id, company_id=acme.id, deal_id=deals[0].id,
            ),
            Task(
                title="Prepare demo for TechStart",
                description="Product demonstration scheduled for next week",
                status=TaskStatus.TODO.value, priority=TaskPriority.MEDIUM.value,
                due_date=add_days(now, 5), estimated_duration=90,
                assignee=emma, created_by=lead, team=team,
            ),
            Task(
                title="Send proposal to GlobalTech", description="Enterprise pricing proposal",
                status=TaskStatus.COMPLETED.value, priority=TaskPriority.HIGH.value,
                completed_at=add_days(now, -1), assignee=john, created_by=lead, team=team,
            ),
            Task(
                title="Research new leads in fintech", description="Identify 10 potential clients",
                status=TaskStatus.TODO.value, priority=TaskPriority.LOW.value,
                due_date=add_days(now, 3), assignee=mike, created_by=lead, team=team,
            ),
        ]

        activities = [
            Activity(
                type=ActivityType.CALL.value, title="Call with Acme Corp - CEO",
                description="Discussed product features and pricing", duration=45, user=john,
            ),
            Activity(
                type=ActivityType.MEETING.value, title="TechStart discovery meeting",
                duration=60, user=emma,
            ),
            Activity(
                type=ActivityType.EMAIL.value, title="Sent GlobalTech follow-up",
                user=mike,
            ),
            Activity(
                type=ActivityType.CALL.value, title="Intro call with Carla Nguyen",
                duration=20, user=mike,
            ),
        ]

        call_notes = [
            CallNote(
                client_name="Alice Morgan", client_company="Acme Corp",
                phone_number="+1 312 555 0100",
                notes="Renewal likely; wants a multi-year discount.",
                outcome="Positive", follow_up_date=add_days(now, 3), user=john,
            ),
            CallNote(
                client_name="Carla Nguyen", client_company="GlobalTech",
                notes="Needs security documentation before the next step.",
                outcome="Needs info", follow_up_date=add_days(now, 7), user=mike,
            ),
        ]

        year = now.year
        targets = [
            Target(period=TargetPeriod.MONTHLY.value, year=year, month=now.month, target_value=150_000),
            Target(
                period=TargetPeriod.QUARTERLY.value, year=year,
                quarter=quarter_of(now.month), target_value=450_000,
            ),
            Target(period=TargetPeriod.YEARLY.value, year=year, target_value=1_800_000),
        ]
        targets += [
            Target(
                user_id=agent.id, period=TargetPeriod.MONTHLY.value, year=year,
                month=now.month, target_value=50_000,
            )
            for agent in agents
        ]
        db.add_all([*notes, *tasks, *activities, *call_notes, *targets])

    await run_in_transaction(db, _operation, "Failed to seed database")
    logger.info("Database seeded")
    return True


async def main(create_tables: bool = False) -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = DatabaseSessionManager(settings.database_url)
    try:
        if create_tables:
            async with manager.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        async with manager.session() as db:
            await seed(db)
    finally:
        await manager.engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed Clarity CRM with demo data")
    parser.add_argument(
        "--create-tables", action="store_true",
        help="Create tables from the ORM metadata first (development databases only)",
    )
    asyncio.run(main(parser.parse_args().create_tables))
