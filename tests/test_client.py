from unittest.mock import MagicMock

import pytest
import requests

from client import HomeFeedCache, SoundLinkAPIError, SoundLinkClient, pick_trending


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def response(payload, status=200):
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.json.return_value = payload
    return resp


SONGS = [{"id": f"s{i}", "name": f"Song {i}"} for i in range(15)]
MOVIES = [{"id": "m1", "title": "Film"}]
ARTISTS = [{"id": "a1", "name": "Mira"}]


def routed_session(failing=()):
    session = MagicMock()

    def request(method, url, **kwargs):
        for path, payload in (
            ("/api/song/list", {"success": True, "songs": SONGS}),
            ("/api/moviealbum/list", {"success": True, "movie_albums": MOVIES}),
            ("/api/artist/list", {"success": True, "artists": ARTISTS}),
        ):
            if url.endswith(path):
                if path in failing:
                    raise requests.ConnectionError("boom")
                return response(payload)
        return response({"success": False, "message": "nope"}, 404)

    session.request.side_effect = request
    return session


@pytest.fixture
def clock():
    return FakeClock()


def make_client(session, clock):
    return SoundLinkClient("http://api.test", session=session, cache=HomeFeedCache(ttl=300, clock=clock))


def test_cold_cache_fetches_all_three_sources(clock):
    session = routed_session()
    feed = make_client(session, clock).fetch_home_data()
    urls = sorted(call.args[1] for call in session.request.call_args_list)
    assert urls == [
        "http://api.test/api/artist/list",
        "http://api.test/api/moviealbum/list",
        "http://api.test/api/song/list",
    ]
    song_call = next(c for c in session.request.call_args_list if c.args[1].endswith("/api/song/list"))
    assert song_call.kwargs["params"] == {"all": "true"}
    assert feed.songs == SONGS
    assert feed.movie_albums == MOVIES
    assert feed.artists == ARTISTS
    assert feed.last_fetch == clock.now


def test_fresh_cache_issues_no_requests(clock):
    session = routed_session()
    client = make_client(session, clock)
    first = client.fetch_home_data()
    session.request.reset_mock()

    clock.now += 299
    second = client.fetch_home_data()
    session.request.assert_not_called()
    assert second == first


def test_stale_cache_refetches(clock):
    session = routed_session()
    client = make_client(session, clock)
    client.fetch_home_data()
    session.request.reset_mock()

    clock.now += 301
    client.fetch_home_data()
    assert session.request.call_count == 3


def test_invalidate_forces_refetch(clock):
    session = routed_session()
    client = make_client(session, clock)
    client.fetch_home_data()
    client.cache.invalidate()
    session.request.reset_mock()
    client.fetch_home_data()
    assert session.request.call_count == 3


def test_one_failing_source_keeps_the_others(clock):
    client = make_client(routed_session(), clock)
    client.fetch_home_data()

    clock.now += 301
    client.session = routed_session(failing=("/api/artist/list",))
    feed = client.fetch_home_data()
    assert feed.songs == SONGS
    assert feed.artists == ARTISTS  # previous value survives
    assert feed.last_fetch == clock.now


def test_source_with_non_object_body_is_treated_as_failed(clock):
    client = make_client(routed_session(), clock)
    client.fetch_home_data()

    clock.now += 301
    session = routed_session()
    routed = session.request.side_effect

    def request(method, url, **kwargs):
        if url.endswith("/api/artist/list"):
            return response(None, 502)
        return routed(method, url, **kwargs)

    session.request.side_effect = request
    client.session = session
    feed = client.fetch_home_data()
    assert feed.artists == ARTISTS
    assert feed.songs == SONGS
    assert feed.last_fetch == clock.now


def test_list_body_raises_api_error():
    session = MagicMock()
    session.request.return_value = response(["not", "an", "object"], 200)
    with pytest.raises(SoundLinkAPIError):
        SoundLinkClient("http://api.test", session=session).my_playlists()


def test_all_sources_failing_leaves_cache_stale(clock):
    client = make_client(routed_session(failing=("/api/song/list", "/api/moviealbum/list", "/api/artist/list")), clock)
    feed = client.fetch_home_data()
    assert feed.songs == []
    assert feed.last_fetch is None
    assert client.cache.get() is None


def test_trending_is_a_ten_song_sample(clock):
    feed = make_client(routed_session(), clock).fetch_home_data()
    assert len(feed.trending) == 10
    assert len({s["id"] for s in feed.trending}) == 10
    assert all(s in SONGS for s in feed.trending)


def test_pick_trending_with_few_songs():
    assert sorted(s["id"] for s in pick_trending(SONGS[:3])) == ["s0", "s1", "s2"]


def test_returned_feed_does_not_alias_the_cache(clock):
    cache = HomeFeedCache(clock=clock)
    songs = [{"id": "a"}]
    cache.set(songs=songs)
    songs.append({"id": "b"})

    cache.get().songs.clear()
    cache.snapshot().artists.append({"id": "x"})
    assert cache.get().songs == [{"id": "a"}]
    assert cache.get().artists == []


def test_cache_rejects_unknown_slot(clock):
    with pytest.raises(ValueError):
        HomeFeedCache(clock=clock).set(playlists=[])


def test_api_error_carries_server_message():
    session = MagicMock()
    session.request.return_value = response({"success": False, "message": "Playlist not found."}, 404)
    client = SoundLinkClient("http://api.test", token="tok", session=session)
    with pytest.raises(SoundLinkAPIError) as exc:
        client.get_playlist("missing")
    assert exc.value.status_code == 404
    assert exc.value.message == "Playlist not found."
    assert session.request.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}


def test_client_against_the_api(client, user_headers, make_song):
    s1 = make_song("The Beginning")
    token = user_headers["Authorization"].split()[1]
    api = SoundLinkClient("http://testserver", token=token, session=client)

    playlist = api.create_playlist("Favorites")
    api.add_song_to_playlist(playlist["id"], s1)
    api.add_song_to_playlist(playlist["id"], s1)
    mine = api.my_playlists()
    assert [[s["id"] for s in p["songs"]] for p in mine] == [[s1]]

    assert [s["name"] for s in api.search("the")["songs"]] == ["The Beginning"]
    assert api.record_play(s1) == "Play recorded successfully"
    assert api.delete_playlist(playlist["id"]) == "Playlist deleted."
