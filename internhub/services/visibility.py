# internhub/services/visibility.py
"""
Role-scoped notification visibility.

Pure functions, no I/O. Each role maps to the notification types it may see;
``internship_approval`` is further narrowed by ``metadata.status``:
admins see only pending reviews, software houses only resolved ones.
Unknown roles see nothing.
"""
from typing import Any, FrozenSet, Mapping, Optional, Union

from internhub.models.notification import Notification, NotificationType, Role

# type -> allowed metadata.status values (None: no refinement)
VisibilityRules = Mapping[str, Optional[FrozenSet[str]]]

_RULES = {
    Role.ADMIN.value: {
        NotificationType.USER_APPROVAL.value: None,
        NotificationType.INTERNSHIP_APPROVAL.value: frozenset({"pending"}),
    },
    Role.SOFTWARE_HOUSE.value: {
        NotificationType.INTERNSHIP_APPROVAL.value: frozenset({"approved", "rejected"}),
        NotificationType.NEW_APPLICATION.value: None,
    },
    Role.STUDENT.value: {
        NotificationType.APPLICATION_STATUS.value: None,
    },
    Role.GUEST.value: {
        NotificationType.APPLICATION_STATUS.value: None,
    },
}


def _role_key(role: Union[Role, str, None]) -> Optional[str]:
    if isinstance(role, Role):
        return role.value
    return role


def visibility_rules(role: Union[Role, str, None]) -> VisibilityRules:
    return _RULES.get(_role_key(role), {})


def allowed_types(role: Union[Role, str, None]) -> FrozenSet[str]:
    return frozenset(visibility_rules(role))


def is_visible(notification: Union[Notification, Mapping[str, Any]], role: Union[Role, str, None]) -> bool:
    """Accepts a Notification or a raw row dict."""
    if isinstance(notification, Notification):
        n_type, metadata = notification.type, notification.metadata
    else:
        n_type, metadata = notification.get("type"), notification.get("metadata") or {}

    rules = visibility_rules(role)
    if n_type not in rules:
        return False

    statuses = rules[n_type]
    if statuses is None:
        return True
    return metadata.get("status") in statuses
