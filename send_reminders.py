"""
Send every due task reminder once.

Meant to run from cron, e.g. every five minutes:

    */5 * * * * cd /srv/schedule && python send_reminders.py
"""
import logging
import sys

from config import LOG_LEVEL
from database import SessionLocal, init_db
from notifications import dispatch_due_reminders

logger = logging.getLogger("send_reminders")


def main() -> int:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    init_db()
    db = SessionLocal()
    try:
        sent = dispatch_due_reminders(db)
    except Exception:
        logger.exception("Reminder sweep aborted")
        return 1
    finally:
        db.close()
    logger.info("Sent %d reminder(s)", sent)
    return 0


if __name__ == "__main__":
    sys.exit(main())
