from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from database import Base
from encryption import EncryptedString

USER_ROLES = ("user", "admin")
LABEL_TYPES = ("task_type", "status", "difficulty", "priority")
THEMES = ("light", "dark")


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    picture = Column(String)
    google_id = Column(String, unique=True)
    role = Column(String, nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    tasks = relationship("TaskDB", back_populates="user", cascade="all, delete-orphan")
    login_history = relationship("LoginHistory", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class LoginHistory(Base):
    """Append-only sign-in audit log."""
    __tablename__ = "login_history"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ip_address = Column(EncryptedString, nullable=False)
    user_agent = Column(EncryptedString, nullable=False)
    login_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="login_history")


class Label(Base):
    __tablename__ = "labels"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    color = Column(String, nullable=False, default="#3B82F6")
    type = Column(String, nullable=False)
    icon = Column(String, nullable=False, default="mdi:label")
    description = Column(String)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Deleting a label drops its association rows
    tasks = relationship("TaskDB", secondary="task_labels", back_populates="labels")
    project_tasks = relationship("ProjectTask", secondary="project_task_labels", back_populates="labels")


class SystemConfig(Base):
    """Singleton row; use get_config() to read it."""
    __tablename__ = "system_config"
    id = Column(Integer, primary_key=True)
    app_name = Column(String, nullable=False, default="Schedule")
    theme = Column(String, nullable=False, default="light")
    primary_color = Column(String, nullable=False, default="#3B82F6")
    updated_by = Column(Integer, ForeignKey("users.id"))
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


def get_config(db) -> SystemConfig:
    config = db.query(SystemConfig).order_by(SystemConfig.id).first()
    if config is None:
        config = SystemConfig()
        db.add(config)
        db.commit()
        db.refresh(config)
    return config
