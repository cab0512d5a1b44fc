from datetime import datetime, timedelta

import pytest

import notifications
from project_models import Project, BoardColumn, ProjectTask


class FakeSMTP:
    """Stands in for smtplib.SMTP and records what would have been sent."""
    sent = []

    def __init__(self, host=None, port=None, timeout=None):
        self.host, self.port = host, port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def outbox(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP.sent


def test_invitation_escapes_values(outbox):
    notifications.send_project_invitation("bob@example.com", "<Board>", "Eve & Co", "viewer", 7, "https://app.test")
    assert len(outbox) == 1
    msg = outbox[0]
    assert msg["To"] == "bob@example.com"
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "&lt;Board&gt;" in html
    assert "Eve &amp; Co" in html
    assert "https://app.test/projects/7" in html
    assert "Viewer" in html


def test_project_reminder_goes_to_project_owner(outbox, make_user, db):
    owner = make_user()
    project = Project(name="Reminders", owner_id=owner.id)
    column = BoardColumn(name="To do", order=0)
    project.columns.append(column)
    past = datetime.utcnow() - timedelta(minutes=1)
    task = ProjectTask(project=project, title="Ship it", email_reminder=past, order=0)
    column.tasks.append(task)
    db.add(project)
    db.commit()

    notifications.dispatch_due_reminders(db)

    assert any(m["To"] == owner.email and "Ship it" in m["Subject"] for m in outbox)
    db.refresh(task)
    assert task.reminder_sent_at is not None


def test_smtp_failure_propagates(monkeypatch):
    class Down(FakeSMTP):
        def send_message(self, msg):
            raise ConnectionRefusedError("smtp down")
    monkeypatch.setattr(notifications.smtplib, "SMTP", Down)
    with pytest.raises(ConnectionRefusedError):
        notifications.send_task_reminder("a@example.com", "T", None, datetime(2030, 1, 1, 8, 0))
