from tests.conftest import create_ticket


def _take(client, who, ticket_id):
    r = client.post(f"/api/tickets/{ticket_id}/assign", json={"assigned_to": who.id}, headers=who.headers)
    assert r.status_code == 200, r.text


def test_stats_admin_only(client, user, firstline, secondline):
    for who in (user, firstline, secondline):
        assert client.get("/api/tickets/stats", headers=who.headers).status_code == 403


def test_stats_empty(client, admin):
    r = client.get("/api/tickets/stats", headers=admin.headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total"] == 0
    assert data["by_status"] == {"new": 0, "in_progress": 0, "escalated": 0, "resolved": 0}
    assert data["categories"] == []


def test_stats_breakdown(client, admin, user, firstline, secondline):
    a = create_ticket(client, user, category="Account", priority="high")
    b = create_ticket(client, user, title="Printer", category="Hardware", priority="medium")
    create_ticket(client, user, title="Mouse", category="Hardware", priority="low")

    _take(client, firstline, a["id"])
    assert client.post(f"/api/tickets/{a['id']}/escalate", headers=firstline.headers).status_code == 200
    _take(client, secondline, a["id"])
    r = client.patch(f"/api/tickets/{a['id']}", json={"status": "resolved"}, headers=secondline.headers)
    assert r.status_code == 200
    _take(client, firstline, b["id"])

    data = client.get("/api/tickets/stats", headers=admin.headers).json()["data"]
    assert data["total"] == 3
    assert (data["open"], data["in_progress"], data["escalated"], data["resolved"]) == (1, 1, 0, 1)
    assert sum(data["by_status"].values()) == data["total"]

    support = data["support"]
    assert support["total_staff"] == 2
    assert support["firstline"] == 1
    assert support["secondline"] == 1
    assert support["tiers"]["firstline"] == {"staff": 1, "in_progress": 1, "resolved": 0, "escalations": 1}
    assert support["tiers"]["secondline"] == {"staff": 1, "in_progress": 0, "resolved": 1, "escalations": 0}

    assert data["categories"] == [{"name": "Hardware", "count": 2}, {"name": "Account", "count": 1}]
    assert data["priorities"] == [
        {"name": "high", "count": 1},
        {"name": "low", "count": 1},
        {"name": "medium", "count": 1},
    ]
