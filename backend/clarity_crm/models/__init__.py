"""ORM Models - SQLAlchemy declarative models for all CRM entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - UUID primary keys, UTC timestamps
    - Enum-valued columns store the str value of the core/domain_types.py enum

Design Decisions:
    - One file per entity
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
    - Many-to-one relationships load eagerly (selectin); collections are queried
      explicitly by services, never lazy-loaded in async code
"""

from clarity_crm.models.team import Team  # noqa: F401
from clarity_crm.models.user import User  # noqa: F401
from clarity_crm.models.user_capacity import UserCapacity  # noqa: F401
from clarity_crm.models.company import Company  # noqa: F401
from clarity_crm.models.customer import Customer  # noqa: F401
from clarity_crm.models.deal import Deal  # noqa: F401
from clarity_crm.models.deal_note import DealNote  # noqa: F401
from clarity_crm.models.task import Task  # noqa: F401
from clarity_crm.models.activity import Activity  # noqa: F401
from clarity_crm.models.call_note import CallNote  # noqa: F401
from clarity_crm.models.target import Target  # noqa: F401
