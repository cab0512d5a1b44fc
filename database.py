from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db():
    """Create all tables and seed the default label catalog."""
    # Model modules register their tables on Base when imported
    import models  # noqa: F401
    import task_models  # noqa: F401
    import project_models  # noqa: F401
    from labels_seed import seed_default_labels

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_labels(db)
    finally:
        db.close()
