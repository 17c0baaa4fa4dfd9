"""Student group and project models."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from app.database import Base


class StudentGroup(Base):
    """Student team supervised by one lecturer."""

    __tablename__ = "student_groups"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    group_code = Column(String(50), unique=True, nullable=False, index=True)
    group_name = Column(String(255), nullable=False)
    lecturer_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    leader_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class GroupMember(Base):
    """Membership of a student in a group."""

    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    group_id = Column(
        Uuid,
        ForeignKey("student_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    joined_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Project(Base):
    """Project owned by exactly one group."""

    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    group_id = Column(
        Uuid,
        ForeignKey("student_groups.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    project_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)


class Requirement(Base):
    """Locally authored requirement, optionally backed by a Jira issue."""

    __tablename__ = "requirements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(
        Uuid,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    jira_issue_id = Column(
        Uuid,
        ForeignKey("jira_issues.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    code = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
