# app/core/roles.py

import enum


class Role(str, enum.Enum):
    SUPERADMIN = "superadmin"                    # platform operator, tenant-less
    BARANGAY_CAPTAIN = "barangay_captain"        # owns one barangay
    SECRETARY = "secretary"
    TREASURER = "treasurer"
    STAFF = "staff"
    PEACE_ORDER_OFFICER = "peace_order_officer"  # member roles: same grant scope as STAFF
    HEALTH_OFFICER = "health_officer"
    SOCIAL_WORKER = "social_worker"


class PageId(str, enum.Enum):
    DASHBOARD = "dashboard"
    RESIDENTS = "residents"
    DOCUMENTS = "documents"
    CLEARANCES = "clearances"
    BLOTTER = "blotter"
    FINANCIAL = "financial"
    REPORTS = "reports"
    SETTINGS = "settings"
    # Landing page for principals whose role is not in the access table.
    NO_ACCESS = "no-access"


def parse_role(value) -> Role | None:
    """
    Accepts a Role, or a raw string in any case. Returns None for unknown values.
    """
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None
