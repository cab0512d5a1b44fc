from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, Table, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from encryption import EncryptedString

MEMBER_ROLES = ("viewer", "editor")

project_task_labels = Table(
    "project_task_labels",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("project_tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", Integer, ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class Project(Base):
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")
    columns = relationship(
        "BoardColumn",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="BoardColumn.order",
    )

    def member_for(self, user_id: int):
        return next((m for m in self.members if m.user_id == user_id), None)


class ProjectMember(Base):
    __tablename__ = "project_members"
    __table_args__ = (UniqueConstraint("project_id", "user_id"),)
    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default="editor")
    joined_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    project = relationship("Project", back_populates="members")
    user = relationship("User")


class BoardColumn(Base):
    """Kanban lane. Named BoardColumn to keep sqlalchemy.Column unambiguous."""
    __tablename__ = "columns"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="columns")
    tasks = relationship(
        "ProjectTask",
        back_populates="column",
        cascade="all, delete-orphan",
        order_by="ProjectTask.order",
    )


class ProjectTask(Base):
    __tablename__ = "project_tasks"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    column_id = Column(Integer, ForeignKey("columns.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    short_description = Column(String)
    detailed_description = Column(EncryptedString)
    attachments = Column(JSON, nullable=False, default=list)
    email_reminder = Column(DateTime)
    reminder_sent_at = Column(DateTime)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project")
    column = relationship("BoardColumn", back_populates="tasks")
    labels = relationship("Label", secondary=project_task_labels, back_populates="project_tasks")
    subtasks = relationship(
        "ProjectSubtask",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="ProjectSubtask.order",
    )
    comments = relationship(
        "ProjectTaskComment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="ProjectTaskComment.created_at",
    )


class ProjectSubtask(Base):
    __tablename__ = "project_task_subtasks"
    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("project_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)

    task = relationship("ProjectTask", back_populates="subtasks")


class ProjectTaskComment(Base):
    __tablename__ = "project_task_comments"
    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("project_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(EncryptedString, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    task = relationship("ProjectTask", back_populates="comments")
    user = relationship("User")
