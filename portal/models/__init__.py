"""Models package — import all models so metadata.create_all can discover them."""

from portal.models.user import User
from portal.models.session import UserSession
from portal.models.project import Project, ProjectDetails, ProjectStatus

__all__ = [
    "User", "UserSession",
    "Project", "ProjectDetails", "ProjectStatus",
]
