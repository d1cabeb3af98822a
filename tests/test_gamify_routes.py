from khe_api.db import Base, engine
from khe_api.data_client.tables import PointGrant


def _award(client, auth, points=10, pid="p1", src="acme", reason="booth scan"):
    return client.post("/gamify/points", json={"points": points, "src": src, "reason": reason, "pid": pid}, auth=auth)


def test_grant_requires_auth(client):
    resp = client.post("/gamify/points", json={"points": 1, "src": "a", "reason": "r", "pid": "p"})
    assert resp.status_code == 401


def test_two_grants_add_up_on_the_leaderboard(client, make_user):
    user, auth = make_user("jane.doe@kent.edu")

    first = _award(client, auth, points=10, pid="p1")
    assert first.status_code == 200
    assert first.json()["status"] == "ok"
    assert first.json()["grant"]["email"] == "jane.doe"
    assert _award(client, auth, points=5, pid="p2").json()["status"] == "ok"

    board = client.get("/gamify/leaderboard").json()
    assert board == [{"_id": user.id, "email": "jane.doe", "points": 15}]


def test_resubmitting_a_point_does_not_double_count(client, make_user):
    user, auth = make_user()

    assert _award(client, auth, points=10, pid="p1").json()["status"] == "ok"
    second = _award(client, auth, points=10, pid="p1")
    assert second.status_code == 200
    assert second.json()["status"] == "duplicate"

    board = client.get("/gamify/leaderboard").json()
    assert board[0]["points"] == 10


def test_invalid_grant_is_a_400_with_fields(client, make_user):
    _, auth = make_user()
    resp = client.post("/gamify/points", json={"points": "many", "src": "acme", "pid": "p1"}, auth=auth)

    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_input", "fields": ["points", "reason"]}
    assert client.get("/gamify/leaderboard").json() == []


def test_leaderboard_orders_users_by_points(client, make_user):
    _, low = make_user("low@kent.edu")
    _, high = make_user("high@kent.edu")
    make_user("idle@kent.edu")

    _award(client, low, points=3, pid="p1")
    _award(client, high, points=30, pid="p1")

    board = client.get("/gamify/leaderboard").json()
    assert [e["email"] for e in board] == ["high", "low"]
    assert board[0]["points"] >= board[1]["points"]


def test_my_points(client, make_user):
    user, auth = make_user()
    _award(client, auth, points=4, pid="p1")
    _award(client, auth, points=6, pid="p2")

    body = client.get("/gamify/points/me", auth=auth).json()
    assert body["_id"] == user.id
    assert body["points"] == 10
    assert [g["pointID"] for g in body["grants"]] == ["p1", "p2"]


def test_storage_failure_surfaces_as_503(client, make_user):
    _, auth = make_user()
    Base.metadata.drop_all(bind=engine, tables=[PointGrant.__table__])

    grant = _award(client, auth)
    assert grant.status_code == 503
    assert grant.json()["error"] == "storage_unavailable"

    board = client.get("/gamify/leaderboard")
    assert board.status_code == 503
    assert board.json()["error"] == "storage_unavailable"


def test_oversized_points_are_a_400(client, make_user):
    _, auth = make_user()
    resp = _award(client, auth, points=10**30)

    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_input", "fields": ["points"]}
