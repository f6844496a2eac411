"""Role permission helper sets."""

from app.db.enums.auth import Role

# Roles that triage and resolve complaints
STAFF_ROLES = frozenset({Role.LECTURER, Role.ADMIN})

# Roles that may see the real owner of an anonymous complaint
ROLES_CAN_SEE_ANONYMOUS_OWNER = frozenset({Role.ADMIN})

# Roles that manage auto-escalation rules
ROLES_CAN_MANAGE_ESCALATION = frozenset({Role.ADMIN})
