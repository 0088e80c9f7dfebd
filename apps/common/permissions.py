from rest_framework.permissions import BasePermission

from apps.accounts.models import UserRole


ALL_PERMISSIONS = (
    "manage_users",
    "manage_products",
    "manage_customers",
    "manage_suppliers",
    "manage_sales",
    "manage_purchases",
    "manage_buy_phones",
    "manage_repairs",
    "manage_exchanges",
    "view_reports",
    "view_dashboard",
    "manage_settings",
)

ROLE_CAPABILITIES = {
    UserRole.SUPER_ADMIN: set(ALL_PERMISSIONS),
    UserRole.ADMIN: set(ALL_PERMISSIONS) - {"manage_settings"},
    UserRole.SELLER: {
        "view_products",
        "manage_customers",
        "manage_sales",
        "view_buy_phones",
        "view_reports",
        "view_dashboard",
    },
    UserRole.TECHNICIAN: {
        "view_products",
        "view_customers",
        "manage_repairs",
        "view_buy_phones",
    },
    UserRole.INVENTORY: {
        "manage_products",
        "manage_purchases",
        "manage_buy_phones",
        "manage_suppliers",
        "view_inventory",
    },
}


def permissions_for(user):
    """Permission names granted to the user's role, in a stable order."""
    caps = ROLE_CAPABILITIES.get(getattr(user, "role", None), set())
    ordered = [perm for perm in ALL_PERMISSIONS if perm in caps]
    return ordered + sorted(caps - set(ordered))


def has_capability(user, capability):
    caps = ROLE_CAPABILITIES.get(getattr(user, "role", None), set())
    if capability in caps:
        return True
    # manage_x implies view_x
    if capability.startswith("view_"):
        return f"manage_{capability[len('view_'):]}" in caps
    return False


class RolePermission(BasePermission):
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability_map = getattr(view, "capability_map", {})
        action = getattr(view, "action", None) or request.method.lower()
        required = capability_map.get(action) or capability_map.get(request.method.lower()) or set()
        if not required:
            return True

        return all(has_capability(request.user, cap) for cap in required)


class IsSuperAdmin(BasePermission):
    message = "Unauthorized. Super admin only."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and getattr(request.user, "role", None) == UserRole.SUPER_ADMIN
        )
