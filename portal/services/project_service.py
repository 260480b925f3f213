"""Project service — owner-scoped CRUD for projects and their details."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portal.core.exceptions import ProjectNotFoundError
from portal.models.project import Project, ProjectDetails

logger = logging.getLogger(__name__)


class ProjectService:
    """Every single-project operation is filtered by owner; a foreign id is a 404."""

    def __init__(self, db: Session):
        self.db = db

    def create_project(
        self, user_id: int, name: str, description: Optional[str] = None
    ) -> Project:
        """Create a project together with an empty details record."""
        project = Project(
            name=name,
            description=description,
            user_id=user_id,
            details=ProjectDetails(),
        )
        self.db.add(project)
        self._commit()
        self.db.refresh(project)
        logger.info("Project %s created for user %s", project.id, user_id)
        return project

    def list_projects(self, user_id: int) -> List[Project]:
        """All projects of a user, most recently updated first."""
        return (
            self.db.query(Project)
            .filter(Project.user_id == user_id)
            .order_by(Project.updated_at.desc(), Project.id.desc())
            .all()
        )

    def get_project(self, user_id: int, project_id: int) -> Project:
        project = (
            self.db.query(Project)
            .filter(Project.id == project_id, Project.user_id == user_id)
            .first()
        )
        if not project:
            raise ProjectNotFoundError()
        return project

    def update_project(self, user_id: int, project_id: int, changes: Dict[str, Any]) -> Project:
        """Apply the given field changes; keys absent from ``changes`` are untouched."""
        project = self.get_project(user_id, project_id)
        for field, value in changes.items():
            setattr(project, field, value)
        self._commit()
        self.db.refresh(project)
        return project

    def update_project_details(
        self, user_id: int, project_id: int, changes: Dict[str, Any]
    ) -> ProjectDetails:
        """Create or update the details record of a project."""
        project = self.get_project(user_id, project_id)
        details = project.details
        if details is None:
            details = ProjectDetails(project_id=project.id)
            self.db.add(details)
        for field, value in changes.items():
            setattr(details, field, value)
        self._commit()
        self.db.refresh(details)
        return details

    def delete_project(self, user_id: int, project_id: int) -> None:
        project = self.get_project(user_id, project_id)
        self.db.delete(project)
        self._commit()
        logger.info("Project %s deleted by user %s", project_id, user_id)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
