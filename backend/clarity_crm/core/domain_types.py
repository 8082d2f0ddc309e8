"""Domain Types - enums and constants shared by every layer.

Invariants:
    - All valid states encoded as str Enums, no raw string matching in logic
    - Enum values are exactly what the database stores and the API returns
    - ACTIVE_TASK_STATUSES and CLOSED_STAGES are the single definition of
      "open work" and "closed deal"
"""

from enum import Enum


# ─── People ──────────────────────────────────────────────────────

class UserRole(str, Enum):
    SALES_LEAD = "SALES_LEAD"
    SALES_AGENT = "SALES_AGENT"
    MANAGER = "MANAGER"


# ─── Work items ──────────────────────────────────────────────────

class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ActivityType(str, Enum):
    CALL = "CALL"
    MEETING = "MEETING"
    EMAIL = "EMAIL"
    NOTE = "NOTE"
    OTHER = "OTHER"


ACTIVE_TASK_STATUSES = (TaskStatus.TODO, TaskStatus.IN_PROGRESS)

# Higher rank sorts first on the planning board
PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}


# ─── Accounts ────────────────────────────────────────────────────

class CustomerStatus(str, Enum):
    LEAD = "LEAD"
    PROSPECT = "PROSPECT"
    CUSTOMER = "CUSTOMER"
    INACTIVE = "INACTIVE"


class LeadSource(str, Enum):
    """Where a customer or deal came from."""
    WEBSITE = "WEBSITE"
    REFERRAL = "REFERRAL"
    COLD_CALL = "COLD_CALL"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    TRADE_SHOW = "TRADE_SHOW"
    PARTNER = "PARTNER"
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    OTHER = "OTHER"


class Industry(str, Enum):
    TECHNOLOGY = "TECHNOLOGY"
    FINANCE = "FINANCE"
    HEALTHCARE = "HEALTHCARE"
    MANUFACTURING = "MANUFACTURING"
    RETAIL = "RETAIL"
    EDUCATION = "EDUCATION"
    ENERGY = "ENERGY"
    AUTOMOTIVE = "AUTOMOTIVE"
    AEROSPACE = "AEROSPACE"
    CONSTRUCTION = "CONSTRUCTION"
    FOOD_BEVERAGE = "FOOD_BEVERAGE"
    PHARMACEUTICALS = "PHARMACEUTICALS"
    TELECOMMUNICATIONS = "TELECOMMUNICATIONS"
    MEDIA = "MEDIA"
    TRANSPORTATION = "TRANSPORTATION"


class CompanySize(str, Enum):
    STARTUP = "STARTUP"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    ENTERPRISE = "ENTERPRISE"


class CompanyStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PROSPECT = "PROSPECT"
    PARTNER = "PARTNER"
    INACTIVE = "INACTIVE"


# ─── Pipeline ────────────────────────────────────────────────────

class DealStage(str, Enum):
    PROSPECTING = "PROSPECTING"
    QUALIFICATION = "QUALIFICATION"
    PROPOSAL = "PROPOSAL"
    NEGOTIATION = "NEGOTIATION"
    CLOSED_WON = "CLOSED_WON"
    CLOSED_LOST = "CLOSED_LOST"


OPEN_STAGES = (
    DealStage.PROSPECTING,
    DealStage.QUALIFICATION,
    DealStage.PROPOSAL,
    DealStage.NEGOTIATION,
)
CLOSED_STAGES = (DealStage.CLOSED_WON, DealStage.CLOSED_LOST)
ALL_STAGES = OPEN_STAGES + CLOSED_STAGES

# Suggested win probability (%) when a deal enters a stage
STAGE_PROBABILITY = {
    DealStage.PROSPECTING: 20,
    DealStage.QUALIFICATION: 40,
    DealStage.PROPOSAL: 60,
    DealStage.NEGOTIATION: 80,
    DealStage.CLOSED_WON: 100,
    DealStage.CLOSED_LOST: 0,
}

HOT_DEAL_PROBABILITY = 70


class TargetPeriod(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


# ─── Capacity & time ─────────────────────────────────────────────

class CapacityStatus(str, Enum):
    AVAILABLE = "available"
    MODERATE = "moderate"
    FULL = "full"
    OVERLOADED = "overloaded"


class TimeFilter(str, Enum):
    TODAY = "today"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    UPCOMING_7_DAYS = "upcoming7d"
    UPCOMING_30_DAYS = "upcoming30d"
    ALL = "all"


DEFAULT_WORKING_DAYS = "MONDAY,TUESDAY,WEDNESDAY,THURSDAY,FRIDAY"
DEFAULT_MAX_ITEMS_PER_WEEK = 10
