"""Projects API router — owner-scoped CRUD and details upsert."""

from fastapi import APIRouter, Depends, status

from portal.api.dependencies import get_current_user, get_project_service
from portal.models.user import User
from portal.schemas.schemas import (
    ProjectCreate,
    ProjectDetailsOut,
    ProjectDetailsResponse,
    ProjectDetailsUpdate,
    ProjectListResponse,
    ProjectMutationResponse,
    ProjectOut,
    ProjectResponse,
    ProjectUpdate,
    SuccessResponse,
)
from portal.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    """List the caller's projects."""
    items = projects.list_projects(current_user.id)
    return ProjectListResponse(projects=[ProjectOut.model_validate(p) for p in items])


@router.post("", response_model=ProjectMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    """Create a project owned by the caller."""
    project = projects.create_project(current_user.id, body.name, body.description)
    return ProjectMutationResponse(
        message="Project created successfully",
        project=ProjectOut.model_validate(project),
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    project = projects.get_project(current_user.id, project_id)
    return ProjectResponse(project=ProjectOut.model_validate(project))


@router.put("/{project_id}", response_model=ProjectMutationResponse)
async def update_project(
    project_id: int,
    body: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    """Update name, description or status."""
    project = projects.update_project(
        current_user.id, project_id, body.model_dump(exclude_unset=True)
    )
    return ProjectMutationResponse(
        message="Project updated successfully",
        project=ProjectOut.model_validate(project),
    )


@router.put("/{project_id}/details", response_model=ProjectDetailsResponse)
async def update_project_details(
    project_id: int,
    body: ProjectDetailsUpdate,
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    """Create or update the project's details record."""
    details = projects.update_project_details(
        current_user.id, project_id, body.model_dump(exclude_unset=True)
    )
    return ProjectDetailsResponse(
        message="Project details updated successfully",
        details=ProjectDetailsOut.model_validate(details),
    )


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(
    project_id: int,
    current_user: User = Depends(get_current_user),
    projects: ProjectService = Depends(get_project_service),
):
    projects.delete_project(current_user.id, project_id)
    return SuccessResponse(success=True)
