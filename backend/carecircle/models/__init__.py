"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from carecircle.models.alert import Alert, AlertEvent  # noqa: F401
from carecircle.models.family_code import FamilyCode, FamilyCodeUsage  # noqa: F401
from carecircle.models.family_member import FamilyMember, MembershipAuditLog  # noqa: F401
from carecircle.models.senior import Senior  # noqa: F401
from carecircle.models.user import User  # noqa: F401

__all__ = [
    "Alert",
    "AlertEvent",
    "FamilyCode",
    "FamilyCodeUsage",
    "FamilyMember",
    "MembershipAuditLog",
    "Senior",
    "User",
]
