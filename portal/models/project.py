"""Project and project details models."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import relationship
from portal.db.base import Base


class ProjectStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class Project(Base):
    """A customer project owned by exactly one user."""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    status = Column(Enum(ProjectStatus), default=ProjectStatus.ACTIVE, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    owner = relationship("User", back_populates="projects")
    details = relationship(
        "ProjectDetails",
        back_populates="project",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="joined",
    )


class ProjectDetails(Base):
    """Contact and address data attached 1:1 to a project."""
    __tablename__ = "project_details"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    birthday = Column(DateTime(timezone=True), nullable=True)
    street = Column(String(100), nullable=True)
    house_number = Column(String(20), nullable=True)
    zip_code = Column(String(20), nullable=True)
    city = Column(String(50), nullable=True)
    country = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    project = relationship("Project", back_populates="details")
