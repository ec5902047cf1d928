from __future__ import annotations

from typing import FrozenSet, Mapping, Optional, Tuple

from app.core.roles import PageId, Role, parse_role

FALLBACK_PAGE = PageId.NO_ACCESS

_MEMBER_ROLES: FrozenSet[Role] = frozenset(
    {
        Role.SECRETARY,
        Role.TREASURER,
        Role.STAFF,
        Role.PEACE_ORDER_OFFICER,
        Role.HEALTH_OFFICER,
        Role.SOCIAL_WORKER,
    }
)

# Who may invite whom. Roles absent from this table grant nothing.
# SUPERADMIN must never appear as a value.
ROLE_GRANTS: Mapping[Role, FrozenSet[Role]] = {
    Role.SUPERADMIN: frozenset({Role.BARANGAY_CAPTAIN}),
    Role.BARANGAY_CAPTAIN: _MEMBER_ROLES,
    Role.SECRETARY: frozenset({Role.STAFF}),
}

# Ordered: the first page is the landing page.
ROLE_PAGES: Mapping[Role, Tuple[PageId, ...]] = {
    Role.SUPERADMIN: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.CLEARANCES,
        PageId.BLOTTER,
        PageId.FINANCIAL,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.BARANGAY_CAPTAIN: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.CLEARANCES,
        PageId.BLOTTER,
        PageId.FINANCIAL,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.SECRETARY: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.CLEARANCES,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.TREASURER: (
        PageId.DASHBOARD,
        PageId.FINANCIAL,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.STAFF: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.CLEARANCES,
        PageId.SETTINGS,
    ),
    Role.PEACE_ORDER_OFFICER: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.BLOTTER,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.HEALTH_OFFICER: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
    Role.SOCIAL_WORKER: (
        PageId.DASHBOARD,
        PageId.RESIDENTS,
        PageId.DOCUMENTS,
        PageId.REPORTS,
        PageId.SETTINGS,
    ),
}

PAGE_LABELS: Mapping[PageId, str] = {
    PageId.DASHBOARD: "Dashboard",
    PageId.RESIDENTS: "Residents",
    PageId.DOCUMENTS: "Documents",
    PageId.CLEARANCES: "Clearances",
    PageId.BLOTTER: "Blotter",
    PageId.FINANCIAL: "Financial",
    PageId.REPORTS: "Reports",
    PageId.SETTINGS: "Settings",
    PageId.NO_ACCESS: "No access",
}

ROLE_DESCRIPTIONS: Mapping[Role, str] = {
    Role.SUPERADMIN: "Full system administrator with all permissions",
    Role.BARANGAY_CAPTAIN: "Barangay leader with full operational access",
    Role.SECRETARY: "Handles documentation and administrative tasks",
    Role.TREASURER: "Manages financial records and transactions",
    Role.STAFF: "General administrative support staff",
    Role.PEACE_ORDER_OFFICER: "Manages peace and order, blotter records",
    Role.HEALTH_OFFICER: "Oversees health-related programs and records",
    Role.SOCIAL_WORKER: "Manages social welfare and assistance programs",
}

# Sort rank for member lists (lower first).
ROLE_HIERARCHY: Mapping[Role, int] = {
    Role.SUPERADMIN: 0,
    Role.BARANGAY_CAPTAIN: 1,
    Role.SECRETARY: 2,
    Role.TREASURER: 3,
    Role.PEACE_ORDER_OFFICER: 4,
    Role.HEALTH_OFFICER: 5,
    Role.SOCIAL_WORKER: 6,
    Role.STAFF: 7,
}

# Roles whose barangay must exist before they can invite anyone.
TENANT_BOUND_GRANTORS: FrozenSet[Role] = frozenset({Role.BARANGAY_CAPTAIN, Role.SECRETARY})


def grantable_roles(role: Role | str | None) -> FrozenSet[Role]:
    """
    Roles `role` may invite others into. Empty set means "no invitation
    permission", never an error.
    """
    r = parse_role(role)
    if r is None:
        return frozenset()
    return ROLE_GRANTS.get(r, frozenset())


def can_grant(role: Role | str | None, requested: Role | str | None) -> bool:
    target = parse_role(requested)
    return target is not None and target in grantable_roles(role)


def accessible_pages(role: Role | str | None) -> Tuple[PageId, ...]:
    r = parse_role(role)
    if r is None:
        return (FALLBACK_PAGE,)
    return ROLE_PAGES.get(r, (FALLBACK_PAGE,))


def has_page_access(role: Role | str | None, page: PageId | str) -> bool:
    try:
        p = PageId(page)
    except ValueError:
        return False
    return p in accessible_pages(role)


def default_page(role: Role | str | None) -> PageId:
    return accessible_pages(role)[0]


def role_rank(role: Role | str | None) -> int:
    r = parse_role(role)
    if r is None:
        return 999
    return ROLE_HIERARCHY.get(r, 999)


def format_role_name(role: Role | str) -> str:
    """
    "peace_order_officer" -> "Peace Order Officer"
    """
    value = role.value if isinstance(role, Role) else str(role)
    return " ".join(word.capitalize() for word in value.split("_") if word)


def can_manage_user(
    *,
    actor_role: Role | str | None,
    actor_barangay_id,
    target_role: Role | str | None,
    target_barangay_id,
) -> bool:
    """
    An actor manages (activates/deactivates) exactly the users it could have
    invited. Outside superadmin, both must sit in the same barangay.
    """
    if not can_grant(actor_role, target_role):
        return False
    if parse_role(actor_role) == Role.SUPERADMIN:
        return True
    return actor_barangay_id is not None and actor_barangay_id == target_barangay_id


def forbidden_grant_message(role: Role | str | None) -> str:
    r: Optional[Role] = parse_role(role)
    if r == Role.SUPERADMIN:
        return "Superadmin can only create Barangay Captains"
    if r == Role.BARANGAY_CAPTAIN:
        return "Barangay Captain cannot create superadmins or other captains"
    if r == Role.SECRETARY:
        return "Secretary can only create staff members"
    return "You do not have permission to create invitations"
