from datetime import datetime, timedelta

import notifications
from auth_utils import create_session_token
from models import User
from routers.admin import root_admin


def test_admin_routes_need_admin(client, make_user):
    user = make_user()
    assert client.get("/api/admin/users", headers=user.headers).status_code == 403
    assert client.get("/api/admin/statistics").status_code == 401


def test_root_admin_cannot_be_locked(client, make_user, db):
    admin = make_user(role="admin")
    root = root_admin(db)

    res = client.patch(f"/api/admin/users/{root.id}/status", json={"isActive": False}, headers=admin.headers)
    assert res.status_code == 400
    assert res.json()["message"] == "Cannot lock root admin"


def test_root_admin_cannot_lock_itself(client, make_user, db):
    make_user(role="admin")
    root = root_admin(db)
    headers = {"Authorization": f"Bearer {create_session_token(root.id)}"}

    for body in ({"isActive": False}, {}):
        res = client.patch(f"/api/admin/users/{root.id}/status", json=body, headers=headers)
        assert res.status_code == 400
        assert res.json()["message"] == "Cannot lock root admin"

    db.expire_all()
    assert db.get(User, root.id).is_active is True


def test_toggle_user_status(client, make_user, db):
    make_user(role="admin")
    admin = make_user(role="admin")
    user = make_user()

    res = client.patch(f"/api/admin/users/{user.id}/status", json={}, headers=admin.headers)
    assert res.status_code == 200
    assert res.json()["user"]["isActive"] is False
    # Locked accounts lose their session right away
    assert client.get("/api/auth/me", headers=user.headers).status_code == 401

    res = client.patch(f"/api/admin/users/{user.id}/status", json={"isActive": True}, headers=admin.headers)
    assert res.json()["user"]["isActive"] is True


def test_user_list_filters(client, make_user):
    admin = make_user(role="admin")
    locked = make_user(is_active=False)

    res = client.get("/api/admin/users", params={"search": locked.email, "isActive": "false"}, headers=admin.headers)
    assert res.status_code == 200
    assert [u["id"] for u in res.json()["users"]] == [locked.id]

    res = client.get("/api/admin/users", params={"role": "admin", "limit": 500}, headers=admin.headers)
    assert admin.id in [u["id"] for u in res.json()["users"]]
    assert {u["role"] for u in res.json()["users"]} == {"admin"}


def test_statistics(client, make_user, db):
    admin = make_user(role="admin", name="Stats Admin")
    for name in ("P1", "P2"):
        client.post("/api/projects", json={"name": name}, headers=admin.headers)

    res = client.get("/api/admin/statistics", headers=admin.headers)
    assert res.status_code == 200
    stats = res.json()
    assert stats["users"]["total"] == db.query(User).count()
    assert stats["users"]["active"] + stats["users"]["inactive"] == stats["users"]["total"]
    assert stats["projects"]["total"] >= 2
    assert isinstance(stats["tasksByStatus"], list)
    owners = {o["ownerId"]: o["count"] for o in stats["topProjectOwners"]}
    assert owners.get(admin.id) == 2
    assert len(stats["topProjectOwners"]) <= 10


def test_system_config(client, make_user):
    admin = make_user(role="admin")
    res = client.get("/api/admin/config", headers=admin.headers)
    assert res.status_code == 200
    assert res.json()["config"]["theme"] in ("light", "dark")

    res = client.put("/api/admin/config", json={"theme": "dark", "appName": "Planner"}, headers=admin.headers)
    assert res.status_code == 200
    config = res.json()["config"]
    assert (config["theme"], config["appName"], config["updatedBy"]) == ("dark", "Planner", admin.id)

    res = client.put("/api/admin/config", json={"theme": "neon"}, headers=admin.headers)
    assert res.status_code == 400


def test_user_login_history_for_admin(client, make_user):
    admin = make_user(role="admin")
    user = make_user()
    res = client.get(f"/api/admin/users/{user.id}/login-history", headers=admin.headers)
    assert res.status_code == 200
    assert res.json()["history"] == []
    assert res.json()["pagination"]["total"] == 0


def test_dispatch_reminders(client, make_user, monkeypatch):
    admin = make_user(role="admin")
    due = (datetime.utcnow() - timedelta(minutes=5)).isoformat()
    client.post(
        "/api/tasks",
        json={"title": "Remind me", "startTime": "2030-01-01T08:00:00", "endTime": "2030-01-01T09:00:00", "emailReminder": due},
        headers=admin.headers,
    )
    sent = []
    monkeypatch.setattr(notifications, "send_task_reminder", lambda to, title, desc, when: sent.append((to, title)))

    res = client.post("/api/admin/reminders/dispatch", headers=admin.headers)
    assert res.status_code == 200
    assert (admin.email, "Remind me") in sent

    # Already sent reminders are not mailed again
    sent.clear()
    client.post("/api/admin/reminders/dispatch", headers=admin.headers)
    assert (admin.email, "Remind me") not in sent
