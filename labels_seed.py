import logging

from sqlalchemy.orm import Session

from models import Label

logger = logging.getLogger(__name__)

# (name, color, type, icon)
DEFAULT_LABELS = [
    ("To do", "#6B7280", "status", "mdi:checkbox-blank-circle-outline"),
    ("In progress", "#3B82F6", "status", "mdi:progress-clock"),
    ("Done", "#10B981", "status", "mdi:check-circle"),
    ("Low", "#10B981", "priority", "mdi:arrow-down"),
    ("Medium", "#F59E0B", "priority", "mdi:minus"),
    ("High", "#EF4444", "priority", "mdi:arrow-up"),
    ("Easy", "#10B981", "difficulty", "mdi:speedometer-slow"),
    ("Normal", "#F59E0B", "difficulty", "mdi:speedometer-medium"),
    ("Hard", "#EF4444", "difficulty", "mdi:speedometer"),
    ("Work", "#3B82F6", "task_type", "mdi:briefcase"),
    ("Study", "#8B5CF6", "task_type", "mdi:school"),
    ("Personal", "#EC4899", "task_type", "mdi:account"),
]


def seed_default_labels(db: Session) -> int:
    """Insert the default catalog when no labels exist yet. Returns the number inserted."""
    if db.query(Label).first() is not None:
        return 0
    for name, color, label_type, icon in DEFAULT_LABELS:
        db.add(Label(name=name, color=color, type=label_type, icon=icon, is_default=True))
    db.commit()
    logger.info("Seeded %d default labels", len(DEFAULT_LABELS))
    return len(DEFAULT_LABELS)
