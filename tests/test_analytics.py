def test_analytics_counts_and_most_played(client, db, admin_headers, user_headers, make_song):
    s1, s2, s3 = make_song("S1"), make_song("S2"), make_song("S3")
    for song, times in ((s1, 3), (s2, 1), (s3, 2)):
        for _ in range(times):
            client.post("/api/play/add", json={"song": song}, headers=user_headers)
    db["song"].delete_one({"name": "S3"})

    data = client.get("/api/analytics", headers=admin_headers).json()["analytics"]
    assert data["total_plays"] == 6
    assert data["total_songs"] == 2
    assert [(row["song"]["name"], row["count"]) for row in data["most_played"]] == [("S1", 3), ("S2", 1)]
