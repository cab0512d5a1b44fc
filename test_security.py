import io
import os

from cryptography.fernet import Fernet
from sqlalchemy import text

import auth_utils
from models import LoginHistory
from schemas import TaskCreate, CommentCreate
from task_models import TaskDB


# --- Test 1: Content Security Policy (HTTP Headers) ---
def test_security_headers(client):
    """
    Verify that the SecurityHeadersMiddleware adds the expected headers.
    """
    response = client.get("/api/health")
    assert response.status_code == 200
    headers = response.headers

    assert "default-src 'self'" in headers["content-security-policy"]
    assert headers.get("x-content-type-options") == "nosniff"
    assert headers.get("x-frame-options") == "DENY"


def test_untrusted_host_rejected(client):
    response = client.get("/api/health", headers={"host": "evil.example.com"})
    assert response.status_code == 400


# --- Test 2: Input Sanitization (Bleach / XSS) ---
def test_input_sanitization():
    """
    Verify that HTML tags are stripped from task and comment inputs.
    """
    unsafe_input = "<script>alert('XSS')</script>Meeting<b onmouseover=alert(1)>bold</b>"

    task = TaskCreate(title=unsafe_input)
    assert "<script>" not in task.title
    assert "<b" not in task.title
    # strip=True keeps the inner text
    assert "Meeting" in task.title
    assert "bold" in task.title

    comment = CommentCreate(content="  <i>ok</i>  ")
    assert comment.content == "ok"


# --- Test 3: Encryption at rest ---
def test_encryption_logic():
    key = os.getenv("DB_ENCRYPTION_KEY")
    assert key is not None, "DB_ENCRYPTION_KEY is missing in environment!"

    fernet = Fernet(key)
    plain_text = "Private user data 123"
    encrypted = fernet.encrypt(plain_text.encode('utf-8')).decode('utf-8')
    assert "Private" not in encrypted
    assert fernet.decrypt(encrypted.encode('utf-8')).decode('utf-8') == plain_text


def test_detailed_description_stored_encrypted(client, make_user, db):
    user = make_user()
    res = client.post(
        "/api/tasks",
        json={
            "title": "Private",
            "detailedDescription": "Private user data 123",
            "startTime": "2030-01-01T08:00:00",
            "endTime": "2030-01-01T09:00:00",
        },
        headers=user.headers,
    )
    assert res.status_code == 201
    task_id = res.json()["task"]["id"]
    assert res.json()["task"]["detailedDescription"] == "Private user data 123"

    raw = db.execute(text("SELECT detailed_description FROM tasks WHERE id = :id"), {"id": task_id}).scalar()
    assert raw != "Private user data 123"
    assert db.get(TaskDB, task_id).detailed_description == "Private user data 123"


# --- Test 4: Session handling ---
def test_invalid_and_expired_tokens(client, make_user):
    from datetime import timedelta

    res = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid token"

    user = make_user()
    expired = auth_utils.create_session_token(user.id, expires_in=timedelta(seconds=-10))
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert res.status_code == 401


def test_locked_user_session_rejected(client, make_user):
    user = make_user(is_active=False)
    res = client.get("/api/auth/me", headers=user.headers)
    assert res.status_code == 401
    assert res.json()["message"] == "User not found or inactive"


# --- Test 5: Rate Limiting ---
def test_rate_limiting_google_sign_in(client, monkeypatch):
    """
    The sign-in endpoint blocks requests after the limit (10/min).
    """
    def reject(token):
        raise auth_utils.IdentityError("bad token")
    monkeypatch.setattr(auth_utils, "verify_google_token", reject)

    statuses = [client.post("/api/auth/google", json={"token": "x"}).status_code for _ in range(12)]
    assert statuses[:10] == [400] * 10
    assert 429 in statuses[10:]


def test_login_history_is_encrypted(client, monkeypatch, db):
    monkeypatch.setattr(auth_utils, "verify_google_token", lambda token: {
        "email": "history@example.com", "name": "History", "picture": None, "sub": "g-history",
    })
    res = client.post("/api/auth/google", json={"token": "t"}, headers={"user-agent": "pytest-agent"})
    assert res.status_code == 200
    user_id = res.json()["user"]["id"]

    raw = db.execute(
        text("SELECT user_agent FROM login_history WHERE user_id = :id ORDER BY id DESC"), {"id": user_id}
    ).scalar()
    assert raw != "pytest-agent"
    entry = db.query(LoginHistory).filter(LoginHistory.user_id == user_id).order_by(LoginHistory.id.desc()).first()
    assert entry.user_agent == "pytest-agent"


# --- Test 6: Uploaded files are never rendered inline ---
def test_uploaded_html_is_served_as_download(client, make_user):
    user = make_user()
    task = client.post(
        "/api/tasks",
        json={"title": "Files", "startTime": "2030-01-01T08:00:00", "endTime": "2030-01-01T09:00:00"},
        headers=user.headers,
    ).json()["task"]
    payload = b"<script>alert(document.cookie)</script>"
    url = client.post(
        f"/api/tasks/{task['id']}/upload",
        files={"file": ("page.html", io.BytesIO(payload), "text/html")},
        headers=user.headers,
    ).json()["file"]

    res = client.get(url)
    assert res.status_code == 200
    assert res.content == payload
    assert res.headers["content-disposition"] == "attachment"
    assert res.headers["x-content-type-options"] == "nosniff"
