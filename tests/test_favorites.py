def test_like_is_unique_per_user_and_song(client, db, user_headers, make_song):
    s1 = make_song("S1")
    first = client.post("/api/favorite/like", json={"songId": s1}, headers=user_headers)
    second = client.post("/api/favorite/like", json={"songId": s1}, headers=user_headers)
    assert first.status_code == second.status_code == 200
    assert first.json()["favorite"]["id"] == second.json()["favorite"]["id"]
    assert db["favorite"].count_documents({"user": "user-1", "song": s1}) == 1


def test_like_requires_target(client, user_headers):
    resp = client.post("/api/favorite/like", json={}, headers=user_headers)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Song or album ID required."}


def test_unlike(client, db, user_headers, make_song):
    s1 = make_song("S1")
    client.post("/api/favorite/like", json={"songId": s1}, headers=user_headers)
    resp = client.post("/api/favorite/unlike", json={"songId": s1}, headers=user_headers)
    assert resp.json() == {"success": True, "message": "Unliked."}
    assert db["favorite"].count_documents({}) == 0
    # unliking again is harmless
    assert client.post("/api/favorite/unlike", json={"songId": s1}, headers=user_headers).status_code == 200


def test_list_favorites_populates_and_tolerates_dangling(client, db, user_headers, make_song):
    s1 = make_song("S1")
    album_id = str(db["album"].insert_one({"name": "A1", "desc": "", "image": "x"}).inserted_id)
    client.post("/api/favorite/like", json={"songId": s1}, headers=user_headers)
    client.post("/api/favorite/like", json={"albumId": album_id}, headers=user_headers)
    db["album"].delete_many({})

    favorites = client.get("/api/favorite/my", headers=user_headers).json()["favorites"]
    liked_songs = [f for f in favorites if f["song"]]
    assert len(favorites) == 2
    assert [f["song"]["name"] for f in liked_songs] == ["S1"]
    assert all(f["album"] is None for f in favorites)
