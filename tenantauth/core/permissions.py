"""Well-known permission codes checked by route gates."""

import enum


class PermissionCode(str, enum.Enum):
    VIEW_DASHBOARD = "viewdashboard"
    MANAGE_USERS = "manageusers"
    VIEW_REPORTS = "viewreports"
    ADMIN_SETTINGS = "adminsettings"


# Seeded when no permissions.json is supplied.
DEFAULT_PERMISSIONS: list[dict[str, str]] = [
    {"code": PermissionCode.VIEW_DASHBOARD.value, "description": "View dashboard"},
    {"code": PermissionCode.MANAGE_USERS.value, "description": "Create, edit, and delete users"},
    {"code": PermissionCode.VIEW_REPORTS.value, "description": "View reports"},
    {"code": PermissionCode.ADMIN_SETTINGS.value, "description": "Access admin settings"},
]
