A = {"X-User-Id": "userA"}


def test_activity_records_note_and_share_events(client):
    r = client.post("/notes", headers=A, json={"title": "t", "content": "c"})
    note_id = r.json()["id"]
    client.put(f"/notes/{note_id}", headers=A, json={"title": "t2"})
    token = client.post(f"/notes/{note_id}/share-links", headers=A).json()["token"]
    client.post(f"/share/{token}")
    client.post(f"/notes/{note_id}/trash", headers=A)
    client.post(f"/notes/{note_id}/restore", headers=A)

    r = client.get("/activity", headers=A)
    assert r.status_code == 200
    types = [e["event_type"] for e in r.json()]
    assert types == [
        "NOTE_RESTORED",
        "NOTE_TRASHED",
        "SHARE_LINK_REDEEMED",
        "SHARE_LINK_CREATED",
        "NOTE_UPDATED",
        "NOTE_CREATED",
    ]
    assert all(e["note_id"] == note_id for e in r.json())

    r = client.get("/activity", headers=A, params={"limit": 2})
    assert [e["event_type"] for e in r.json()] == ["NOTE_RESTORED", "NOTE_TRASHED"]


def test_activity_is_per_user(client):
    client.post("/notes", headers=A, json={"title": "t", "content": "c"})
    r = client.get("/activity", headers={"X-User-Id": "userB"})
    assert r.json() == []


def test_activity_log_is_json_lines_on_disk(client, settings):
    client.post("/notes", headers=A, json={"title": "t", "content": "c"})
    logs = list((settings.app_data_dir / "activity").glob("*.log"))
    assert len(logs) == 1
    assert "NOTE_CREATED" in logs[0].read_text(encoding="utf-8")


def test_activity_event_shape(client):
    r = client.post("/notes", headers=A, json={"title": "t", "content": "c", "tags": ["x"]})
    note_id = r.json()["id"]

    event = client.get("/activity", headers=A).json()[0]
    assert set(event) == {"event_id", "event_type", "ts", "user_id", "note_id", "meta"}
    assert event["user_id"] == "userA"
    assert event["note_id"] == note_id
    assert event["meta"] == {"version": 1}
    assert client.get("/tags", headers=A).json() == [{"name": "x"}]
