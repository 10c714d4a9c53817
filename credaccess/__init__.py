"""
credaccess: consent-gated disclosure of academic credentials.

Employers ask to see named fields of a student's credential, students grant
or withhold each field, and every party reads a feed derived from the same
request collection. Credentials and identities are assumed to exist already.
"""

__all__ = [
    "AccessRequest",
    "RequestLifecycle",
    "RequestStatus",
    "RoleContext",
    "project_notifications",
]

from .app.domain.models import AccessRequest, RequestStatus
from .app.services.lifecycle import RequestLifecycle
from .app.services.notifications import project_notifications
from .app.services.roles import RoleContext

__version__ = "0.1.0"
