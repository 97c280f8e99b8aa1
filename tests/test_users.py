from tests.conftest import PASSWORD


def test_me_and_update_self(client, user):
    r = client.get("/api/users/me", headers=user.headers)
    assert r.status_code == 200
    assert r.json()["data"]["id"] == user.id

    r = client.patch("/api/users/me", json={"name": "Renamed"}, headers=user.headers)
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Renamed"


def test_self_update_cannot_change_role(client, user):
    r = client.patch("/api/users/me", json={"role": "admin"}, headers=user.headers)
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "user"


def test_user_listing_is_admin_only(client, user, firstline):
    for who in (user, firstline):
        r = client.get("/api/users", headers=who.headers)
        assert r.status_code == 403


def test_admin_lists_and_filters_users(client, admin, user, firstline, secondline):
    r = client.get("/api/users", headers=admin.headers)
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 4
    assert body["count"] == 4

    r = client.get("/api/users", params={"role": "firstline"}, headers=admin.headers)
    assert [u["id"] for u in r.json()["data"]] == [firstline.id]

    r = client.get("/api/users", params={"q": "sven"}, headers=admin.headers)
    assert [u["id"] for u in r.json()["data"]] == [secondline.id]


def test_admin_promotes_user(client, admin, user):
    r = client.patch(f"/api/users/{user.id}", json={"role": "firstline"}, headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "firstline"


def test_admin_email_conflict(client, admin, user, other_user):
    r = client.patch(f"/api/users/{user.id}", json={"email": other_user.email}, headers=admin.headers)
    assert r.status_code == 409


def test_admin_get_missing_user(client, admin):
    r = client.get("/api/users/9999", headers=admin.headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "detail": "User not found"}


def test_soft_delete_blocks_login_and_token(client, admin, user):
    r = client.delete(f"/api/users/{user.id}", headers=admin.headers)
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is False

    assert client.get("/api/auth/me", headers=user.headers).status_code == 401
    r = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert r.status_code == 403


def test_admin_cannot_delete_self(client, admin):
    r = client.delete(f"/api/users/{admin.id}", headers=admin.headers)
    assert r.status_code == 409


def _take(client, who, ticket_id):
    r = client.post(f"/api/tickets/{ticket_id}/assign", json={"assigned_to": who.id}, headers=who.headers)
    assert r.status_code == 200, r.text


def test_role_change_moves_open_tickets_to_new_tier(client, admin, ticket, firstline):
    _take(client, firstline, ticket["id"])

    r = client.patch(f"/api/users/{firstline.id}", json={"role": "secondline"}, headers=admin.headers)
    assert r.status_code == 200

    t = client.get(f"/api/tickets/{ticket['id']}", headers=firstline.headers)
    assert t.status_code == 200
    data = t.json()["data"]
    assert data["assignee_id"] == firstline.id
    assert data["assignee"]["role"] == "secondline"
    assert data["support_level"] == "secondline"

    rows = client.get(f"/api/tickets/{ticket['id']}/history", headers=admin.headers).json()["data"]
    last = rows[-1]
    assert (last["field"], last["old_value"], last["new_value"]) == ("support_level", "firstline", "secondline")
    assert last["changed_by_id"] == admin.id


def test_demoted_assignee_is_released(client, admin, ticket, user, firstline):
    _take(client, firstline, ticket["id"])

    r = client.patch(f"/api/users/{firstline.id}", json={"role": "user"}, headers=admin.headers)
    assert r.status_code == 200

    data = client.get(f"/api/tickets/{ticket['id']}", headers=user.headers).json()["data"]
    assert data["assignee_id"] is None
    assert data["status"] == "new"
    assert data["support_level"] == "firstline"


def test_role_change_leaves_resolved_tickets_alone(client, admin, ticket, firstline):
    _take(client, firstline, ticket["id"])
    client.patch(f"/api/tickets/{ticket['id']}", json={"status": "resolved"}, headers=firstline.headers)

    client.patch(f"/api/users/{firstline.id}", json={"role": "secondline"}, headers=admin.headers)
    data = client.get(f"/api/tickets/{ticket['id']}", headers=admin.headers).json()["data"]
    assert data["status"] == "resolved"
    assert data["support_level"] == "firstline"
