from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON, Table
from sqlalchemy.orm import relationship

from database import Base
from encryption import EncryptedString

task_labels = Table(
    "task_labels",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True),
    Column("label_id", Integer, ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True),
)


class TaskDB(Base):
    """Personal, time-boxed task owned by one user."""
    __tablename__ = "tasks"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    short_description = Column(String)
    # Long-form notes are encrypted at rest
    detailed_description = Column(EncryptedString)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    time_slot = Column(String, nullable=False, index=True)
    attachments = Column(JSON, nullable=False, default=list)
    email_reminder = Column(DateTime)
    reminder_sent_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="tasks")
    labels = relationship("Label", secondary=task_labels, back_populates="tasks")
    subtasks = relationship(
        "SubtaskDB",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="SubtaskDB.order",
    )


class SubtaskDB(Base):
    __tablename__ = "task_subtasks"
    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)

    task = relationship("TaskDB", back_populates="subtasks")
