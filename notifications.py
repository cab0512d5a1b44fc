"""
Outbound transactional email: task reminders and project invitations.

Mail goes through the SMTP relay configured in config.py. Callers decide
whether a failure is fatal; only project invitations swallow it.
"""
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from html import escape
from typing import Optional

from sqlalchemy.orm import Session

from config import (
    APP_NAME,
    EMAIL_HOST,
    EMAIL_PORT,
    EMAIL_USER,
    EMAIL_PASS,
    EMAIL_FROM,
    EMAIL_STARTTLS,
    FRONTEND_URL,
)

logger = logging.getLogger(__name__)

ROLE_NAMES = {"editor": "Editor", "viewer": "Viewer"}


def send_email(to: str, subject: str, html: str, text: Optional[str] = None) -> None:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = EMAIL_FROM
    msg["To"] = to
    msg.set_content(text or "This message requires an HTML capable mail client.")
    msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(host=EMAIL_HOST, port=EMAIL_PORT, timeout=15) as smtp:
        smtp.ehlo()
        if EMAIL_STARTTLS:
            smtp.starttls()
            smtp.ehlo()
        if EMAIL_USER and EMAIL_PASS:
            smtp.login(EMAIL_USER, EMAIL_PASS)
        smtp.send_message(msg)


def send_task_reminder(to: str, task_title: str, task_description: Optional[str], reminder_time: datetime) -> None:
    html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #3B82F6;">Task reminder</h2>
          <p><strong>Title:</strong> {escape(task_title)}</p>
          <p><strong>Description:</strong> {escape(task_description or 'No description')}</p>
          <p><strong>Reminder time:</strong> {reminder_time.strftime('%Y-%m-%d %H:%M')}</p>
          <p style="margin-top: 20px; color: #666;">This is an automatic email from {escape(APP_NAME)}.</p>
        </div>
    """
    text = f"Task reminder: {task_title}\n{task_description or ''}\nAt {reminder_time:%Y-%m-%d %H:%M}"
    send_email(to, f"Reminder: {task_title}", html, text)
    logger.info("Task reminder sent to %s", to)


def send_project_invitation(
    to: str,
    project_name: str,
    inviter_name: str,
    role: str,
    project_id: int,
    frontend_url: Optional[str] = None,
) -> None:
    base_url = frontend_url or FRONTEND_URL
    project_url = f"{base_url}/projects/{project_id}"
    role_text = ROLE_NAMES.get(role, role)
    html = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
          <h2 style="color: #3B82F6; margin-bottom: 20px;">Project invitation</h2>
          <p>Hello,</p>
          <p><strong>{escape(inviter_name)}</strong> invited you to join <strong>{escape(project_name)}</strong>
             as <strong>{escape(role_text)}</strong>.</p>
          <div style="text-align: center; margin: 30px 0;">
            <a href="{escape(project_url)}" style="display: inline-block; background-color: #3B82F6; color: white;
               padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: bold;">Open project</a>
          </div>
          <p style="color: #666; font-size: 14px;">
            No account yet? Sign in at <a href="{escape(base_url)}/login">{escape(base_url)}/login</a> first.
          </p>
          <p style="color: #666; font-size: 14px;">This is an automatic email from {escape(APP_NAME)}.</p>
        </div>
    """
    text = f"{inviter_name} invited you to {project_name} as {role_text}: {project_url}"
    send_email(to, f"Invitation to project: {project_name}", html, text)
    logger.info("Project invitation sent to %s for project %s", to, project_id)


def dispatch_due_reminders(db: Session, now: Optional[datetime] = None) -> int:
    """
    Mail every reminder that is due and not sent yet, marking each as sent.

    Personal tasks go to their owner, project tasks to the project owner.
    A delivery failure stops the sweep; reminders already sent stay marked.
    """
    from task_models import TaskDB
    from project_models import ProjectTask

    now = now or datetime.utcnow()
    sent = 0

    due_tasks = (
        db.query(TaskDB)
        .filter(TaskDB.email_reminder.isnot(None), TaskDB.email_reminder <= now, TaskDB.reminder_sent_at.is_(None))
        .all()
    )
    for task in due_tasks:
        send_task_reminder(task.user.email, task.title, task.short_description, task.email_reminder)
        task.reminder_sent_at = now
        db.commit()
        sent += 1

    due_project_tasks = (
        db.query(ProjectTask)
        .filter(
            ProjectTask.email_reminder.isnot(None),
            ProjectTask.email_reminder <= now,
            ProjectTask.reminder_sent_at.is_(None),
        )
        .all()
    )
    for task in due_project_tasks:
        send_task_reminder(task.project.owner.email, task.title, task.short_description, task.email_reminder)
        task.reminder_sent_at = now
        db.commit()
        sent += 1

    return sent
