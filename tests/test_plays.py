from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from pymongo.errors import PyMongoError

import plays


def test_record_play(client, db, user_headers, make_song):
    s1 = make_song("S1")
    resp = client.post("/api/play/add", json={"song": s1}, headers=user_headers)
    assert resp.status_code == 201
    assert resp.json() == {"success": True, "message": "Play recorded successfully"}
    play = db["play"].find_one()
    assert play["user"] == "user-1"
    assert play["song"] == s1
    assert play["played_at"] is not None


def test_repeated_plays_are_not_deduplicated(client, db, user_headers, make_song):
    s1 = make_song("S1")
    for _ in range(2):
        client.post("/api/play/add", json={"song": s1}, headers=user_headers)
    assert db["play"].count_documents({"user": "user-1", "song": s1}) == 2


def test_record_play_requires_token(client):
    resp = client.post("/api/play/add", json={"song": "s"})
    assert resp.status_code == 401


def test_failed_write_is_reported():
    db = MagicMock()
    db.__getitem__.return_value.insert_one.side_effect = PyMongoError("disk full")
    with pytest.raises(HTTPException) as exc:
        plays.record_play(db, "u1", "s1")
    assert exc.value.status_code == 500
    assert exc.value.detail == "Failed to record play"


def test_recent_plays_newest_first(client, user_headers, headers_for, make_song):
    s1, s2 = make_song("S1"), make_song("S2")
    client.post("/api/play/add", json={"song": s1}, headers=user_headers)
    client.post("/api/play/add", json={"song": s2}, headers=user_headers)
    client.post("/api/play/add", json={"song": s1}, headers=headers_for("user-2"))
    data = client.get("/api/play/my", headers=user_headers).json()
    assert [p["song"] for p in data["plays"]] == [s2, s1]
