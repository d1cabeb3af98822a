import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from khe_api.data_client.tables import ROLE_STAFF
from khe_api.realtime import EventHub


def test_hub_role_rules():
    hub = EventHub()
    hub.register("/tickets", ("admin", "staff"))
    hub.register("/gamify")

    assert hub.allowed("/tickets", "staff")
    assert not hub.allowed("/tickets", "attendee")
    assert hub.allowed("/gamify", "attendee")
    assert not hub.allowed("/unknown", "admin")


def test_hub_delivers_to_namespace_subscribers_only():
    hub = EventHub()
    hub.register("/tickets", ("staff",))
    hub.register("/users", ("staff",))

    async def scenario():
        tickets = hub.subscribe("/tickets")
        users = hub.subscribe("/users")
        assert hub.emit("/tickets", "create", {"_id": "t1"}) == 1
        message = await asyncio.wait_for(tickets.queue.get(), timeout=1)
        assert users.queue.empty()
        hub.unsubscribe("/tickets", tickets)
        assert hub.emit("/tickets", "delete", {"_id": "t1"}) == 0
        return message

    assert asyncio.run(scenario()) == {"action": "create", "data": {"_id": "t1"}}


def test_websocket_receives_ticket_events(client, make_user):
    _, (key, token) = make_user("staff@kent.edu", role=ROLE_STAFF)

    with client.websocket_connect(f"/ws/tickets?key={key}&token={token}") as ws:
        created = client.post(
            "/tickets",
            json={"subject": "Power", "body": "No outlets", "name": "Jo", "email": "jo@kent.edu"},
        ).json()
        event = ws.receive_json()

    assert event["action"] == "create"
    assert event["data"]["_id"] == created["_id"]


def test_websocket_refuses_wrong_role(client, make_user):
    _, (key, token) = make_user("a@kent.edu")

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(f"/ws/tickets?key={key}&token={token}") as ws:
            ws.receive_json()

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/gamify") as ws:
            ws.receive_json()


def test_websocket_receives_new_grants_but_not_duplicates(client, make_user):
    _, (key, token) = make_user()
    auth = (key, token)

    def award(pid):
        return client.post("/gamify/points", json={"points": 5, "src": "acme", "reason": "scan", "pid": pid}, auth=auth)

    with client.websocket_connect(f"/ws/gamify?key={key}&token={token}") as ws:
        assert award("p1").json()["status"] == "ok"
        first = ws.receive_json()
        assert award("p1").json()["status"] == "duplicate"
        assert award("p2").json()["status"] == "ok"
        # The duplicate emitted nothing, so the next event is p2's
        second = ws.receive_json()

    assert first["action"] == "create" and first["data"]["pointID"] == "p1"
    assert second["action"] == "create" and second["data"]["pointID"] == "p2"
