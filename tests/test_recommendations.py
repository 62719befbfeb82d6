"""
Tests for the recommendation engine and the /recommendations endpoints
"""

import random

import pytest

from moodify.errors import (
    NoResultsFound,
    RecommendationError,
    TokenExpired,
    UnsupportedMood,
    UpstreamTimeout,
)
from moodify.models import MoodLog
from moodify.services.recommendation_engine import (
    FEATURES,
    SEARCH,
    RecommendationEngine,
    clamp_limit,
    dedupe_tracks,
)
from moodify.services.spotify_client import SpotifyAPIError

from conftest import make_playlist, make_track


def _engine(fake_spotify, strategy=SEARCH):
    return RecommendationEngine(fake_spotify, strategy=strategy, rng=random.Random(0))


def _stock_playlists(fake_spotify):
    """Two playlists of 10 tracks each sharing three track ids"""
    fake_spotify.playlists = [make_playlist("p1", "Sad Songs"), make_playlist("p2", "Rainy Day")]
    fake_spotify.playlist_tracks = {
        "p1": [make_track(f"a{i}") for i in range(10)],
        "p2": [make_track(f"a{i}") for i in range(3)] + [make_track(f"b{i}") for i in range(7)],
    }


class TestClampLimit:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (None, 20),
            ("", 20),
            ("abc", 20),
            (0, 20),
            (-4, 20),
            ("1", 1),
            (5, 5),
            ("50", 50),
            (1000, 50),
        ],
    )
    def test_clamp(self, raw, expected):
        assert clamp_limit(raw) == expected


class TestDedupe:
    def test_drops_null_incomplete_and_repeated(self):
        tracks = [
            make_track("t1"),
            None,
            make_track("t1", name="Same id"),
            make_track("t2", artists=()),
            make_track("t3"),
        ]
        assert [t.id for t in dedupe_tracks(tracks)] == ["t1", "t3"]


class TestSearchStrategy:
    def test_pools_and_dedupes(self, fake_spotify):
        _stock_playlists(fake_spotify)

        result = _engine(fake_spotify).build_and_execute("sad", 50, "token")

        ids = [t.id for t in result.tracks]
        assert len(ids) == 17
        assert len(set(ids)) == len(ids)
        assert result.mood == "sad"
        assert result.strategy == SEARCH
        assert result.playlist_used == "Sad Songs, Rainy Day"

        search = fake_spotify.calls[0]
        assert search[0] == "search_playlists"
        assert search[1][1] == "sad songs"

    def test_truncates_to_limit(self, fake_spotify):
        _stock_playlists(fake_spotify)

        result = _engine(fake_spotify).build_and_execute("sad", "5", "token")

        assert result.total == 5
        assert len({t.id for t in result.tracks}) == 5

    def test_uses_at_most_three_valid_playlists(self, fake_spotify):
        fake_spotify.playlists = [
            None,
            make_playlist("bad", name=None),
            make_playlist("orphan", owner=False),
            make_playlist("p1"),
            make_playlist("p2"),
            make_playlist("p3"),
            make_playlist("p4"),
        ]
        fake_spotify.playlist_tracks = {pid: [make_track(pid)] for pid in ("p1", "p2", "p3", "p4")}

        _engine(fake_spotify).build_and_execute("happy", 20, "token")

        fetched = [args[1] for name, args, _ in fake_spotify.calls if name == "get_playlist_tracks"]
        assert fetched == ["p1", "p2", "p3"]

    def test_no_playlists(self, fake_spotify):
        fake_spotify.playlists = [None, make_playlist("x", name=None)]

        with pytest.raises(NoResultsFound):
            _engine(fake_spotify).build_and_execute("happy", 20, "token")

    def test_playlists_without_tracks(self, fake_spotify):
        fake_spotify.playlists = [make_playlist("p1")]
        fake_spotify.playlist_tracks = {"p1": [None, make_track("t", artists=())]}

        with pytest.raises(NoResultsFound):
            _engine(fake_spotify).build_and_execute("happy", 20, "token")


class TestFeatureStrategy:
    def test_sends_targets_and_seeds(self, fake_spotify):
        fake_spotify.recommendations = [make_track("t1"), make_track("t2"), make_track("t1")]

        result = _engine(fake_spotify, FEATURES).build_and_execute("Happy", 10, "token")

        assert [t.id for t in result.tracks] == ["t1", "t2"]
        assert result.playlist_used is None

        name, args, kwargs = fake_spotify.calls[0]
        assert name == "get_recommendations"
        assert kwargs["seed_genres"] == ["pop", "dance", "funk"]
        assert kwargs["limit"] == 10
        assert kwargs["target_features"]["target_valence"] == 0.8
        assert kwargs["target_features"]["min_energy"] == 0.6

    def test_empty_result(self, fake_spotify):
        with pytest.raises(NoResultsFound):
            _engine(fake_spotify, FEATURES).build_and_execute("sad", 10, "token")

    def test_expired_token(self, fake_spotify):
        fake_spotify.errors["get_recommendations"] = SpotifyAPIError("expired", status=401)

        with pytest.raises(TokenExpired) as exc_info:
            _engine(fake_spotify, FEATURES).build_and_execute("sad", 10, "token")
        assert exc_info.value.status_code == 401

    def test_upstream_error(self, fake_spotify):
        body = {"error": {"status": 500, "message": "Server error"}}
        fake_spotify.errors["get_recommendations"] = SpotifyAPIError(
            "Server error", status=500, body=body
        )

        with pytest.raises(RecommendationError) as exc_info:
            _engine(fake_spotify, FEATURES).build_and_execute("sad", 10, "token")

        assert exc_info.value.upstream_status == 500
        assert exc_info.value.upstream_body == body

    def test_upstream_timeout(self, fake_spotify):
        fake_spotify.errors["get_recommendations"] = SpotifyAPIError("slow", timeout=True)

        with pytest.raises(UpstreamTimeout) as exc_info:
            _engine(fake_spotify, FEATURES).build_and_execute("sad", 10, "token")
        assert exc_info.value.status_code == 504


class TestEngine:
    def test_unsupported_mood_makes_no_calls(self, fake_spotify):
        with pytest.raises(UnsupportedMood):
            _engine(fake_spotify).build_and_execute("euphoric", 10, "token")
        assert fake_spotify.calls == []

    def test_unknown_strategy(self, fake_spotify):
        with pytest.raises(ValueError):
            RecommendationEngine(fake_spotify, strategy="magic")


class TestRecommendationsEndpoint:
    def test_requires_login(self, client, fake_spotify):
        response = client.get("/recommendations", params={"mood": "sad"})

        assert response.status_code == 401
        assert response.json()["loginUrl"] == "/login"
        assert fake_spotify.calls == []

    def test_sad_recommendations(self, client, login, fake_spotify):
        login()
        _stock_playlists(fake_spotify)

        response = client.get("/recommendations", params={"mood": "sad", "limit": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["mood"] == "sad"
        assert data["total"] == len(data["tracks"]) <= 5
        assert len({t["id"] for t in data["tracks"]}) == len(data["tracks"])
        assert data["moodFeatures"]["target_valence"] == 0.2
        assert data["strategy"] == "search"
        assert data["playlistUsed"] == "Sad Songs, Rainy Day"

    def test_api_prefix(self, client, login, fake_spotify):
        login()
        _stock_playlists(fake_spotify)

        response = client.get("/api/music/recommendations", params={"mood": "sad"})
        assert response.status_code == 200

    def test_missing_mood(self, client, login):
        login()
        response = client.get("/recommendations")

        assert response.status_code == 400
        assert len(response.json()["supportedMoods"]) == 6

    def test_unsupported_mood(self, client, login, fake_spotify):
        login()
        calls_before = len(fake_spotify.calls)

        response = client.get("/recommendations", params={"mood": "euphoric"})

        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported mood"
        assert "happy" in response.json()["supportedMoods"]
        assert len(fake_spotify.calls) == calls_before

    def test_no_results(self, client, login):
        login()
        response = client.get("/recommendations", params={"mood": "happy"})
        assert response.status_code == 404

    def test_upstream_401_asks_for_login(self, client, login, fake_spotify):
        login()
        fake_spotify.errors["search_playlists"] = SpotifyAPIError("expired", status=401)

        response = client.get("/recommendations", params={"mood": "happy"})

        assert response.status_code == 401
        assert response.json()["loginUrl"] == "/login"

    def test_log_flag_writes_entry(self, client, login, fake_spotify, db_session):
        login()
        _stock_playlists(fake_spotify)

        response = client.get(
            "/recommendations", params={"mood": "Sad", "limit": 3, "log": "true"}
        )

        assert response.status_code == 200
        entry = db_session.query(MoodLog).one()
        assert entry.user_id == "user_a"
        assert entry.mood == "sad"
        assert entry.session_data["trackCount"] == 3
        assert entry.playlist_used == "Sad Songs, Rainy Day"

    def test_without_log_flag_nothing_written(self, client, login, fake_spotify, db_session):
        login()
        _stock_playlists(fake_spotify)

        client.get("/recommendations", params={"mood": "sad"})

        assert db_session.query(MoodLog).count() == 0


@pytest.mark.parametrize("strategy", [FEATURES])
def test_feature_strategy_endpoint(client, login, fake_spotify, strategy):
    login()
    fake_spotify.recommendations = [make_track("t1"), make_track("t2")]

    response = client.get("/recommendations", params={"mood": "focused"})

    assert response.status_code == 200
    assert response.json()["strategy"] == "features"
    assert response.json()["playlistUsed"] is None


class TestMoodsAndGenres:
    def test_moods_is_public(self, client):
        response = client.get("/moods")

        assert response.status_code == 200
        data = response.json()
        assert data["moods"][0] == "happy"
        assert set(data["descriptions"]) == set(data["moods"])

    def test_genres_requires_login(self, client):
        assert client.get("/genres").status_code == 401

    def test_genres(self, client, login):
        login()
        response = client.get("/genres")

        assert response.status_code == 200
        assert response.json() == {"genres": ["pop", "dance", "funk"], "total": 3}
