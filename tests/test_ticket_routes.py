import pytest

from khe_api.data_client.tables import ROLE_STAFF
from khe_api.notify_client import push_client

TICKET = {"subject": "Wifi", "body": "Can't connect in room 204", "name": "Jane", "email": "jane@kent.edu"}


@pytest.fixture
def pushed(monkeypatch):
    sent = []

    async def capture(self, action, document):
        sent.append((self.topic, action, document["_id"]))

    monkeypatch.setattr(push_client.PushClient, "send", capture)
    return sent


def test_anyone_can_open_a_ticket(client, pushed):
    resp = client.post("/tickets", json=TICKET)
    assert resp.status_code == 200
    ticket = resp.json()
    assert ticket["open"] is True
    assert ticket["inProgress"] is False
    assert ticket["worker"] is None
    assert pushed == [("/tickets", "create", ticket["_id"])]


def test_ticket_body_is_validated(client):
    assert client.post("/tickets", json={**TICKET, "email": "nope"}).status_code == 422
    assert client.post("/tickets", json={"subject": "x"}).status_code == 422


def test_staff_manage_tickets(client, make_user, pushed):
    _, attendee = make_user("a@kent.edu")
    _, staff = make_user("staff@kent.edu", role=ROLE_STAFF)
    ticket_id = client.post("/tickets", json=TICKET).json()["_id"]

    assert client.get("/tickets", auth=attendee).status_code == 403
    assert [t["_id"] for t in client.get("/tickets", auth=staff).json()["tickets"]] == [ticket_id]
    assert client.get(f"/tickets/{ticket_id}", auth=staff).json()["subject"] == "Wifi"

    patched = client.patch(f"/tickets/{ticket_id}", json={"inProgress": True}, auth=staff).json()
    assert patched["inProgress"] is True
    assert patched["worker"] == "staff@kent.edu"

    closed = client.patch(f"/tickets/{ticket_id}", json={"open": False, "inProgress": False}, auth=staff).json()
    assert closed["open"] is False

    assert client.delete(f"/tickets/{ticket_id}", auth=staff).json() == {"_id": ticket_id}
    assert client.get(f"/tickets/{ticket_id}", auth=staff).status_code == 404
    assert client.delete(f"/tickets/{ticket_id}", auth=staff).status_code == 404
