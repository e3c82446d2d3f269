from .decorators import require_role, get_current_user, current_doctor, current_patient
from .access import ACCESS_POLICY, authorize, scope_for, owns
from .audit import log_audit

__all__ = [
    # Decorators
    "require_role",
    "get_current_user",
    "current_doctor",
    "current_patient",
    # Access policy
    "ACCESS_POLICY",
    "authorize",
    "scope_for",
    "owns",
    # Audit
    "log_audit",
]
