"""Test YouTube Music search"""

from unittest.mock import Mock, patch

import pytest

from spot_sync.core.exceptions import SearchError
from spot_sync.youtube.models import Candidate
from spot_sync.youtube.searcher import (
    MAX_SEARCH_RETRIES,
    RETRY_DELAY_MAX,
    YouTubeSearcher,
    calculate_delay,
    is_transient_error,
    prompt_candidate,
)


def song(video_id, title="One More Time", artist="Daft Punk", duration="5:20"):
    return {
        "resultType": "song",
        "videoId": video_id,
        "title": title,
        "artists": [{"name": artist, "id": "UC123"}],
        "duration": duration,
    }


def video(video_id, title="Daft Punk - One More Time (Official Video)"):
    return {
        "resultType": "video",
        "videoId": video_id,
        "title": title,
        "artists": [{"name": "Daft Punk"}],
        "duration": "5:34",
    }


class TestCandidate:
    """Test building candidates from ytmusicapi results"""

    def test_song_result(self):
        candidate = Candidate.from_ytmusic_result(song("FGBhQbmPwH8"))

        assert candidate.locator == "https://music.youtube.com/watch?v=FGBhQbmPwH8"
        assert candidate.artists == ("Daft Punk",)
        assert candidate.duration_seconds == 320
        assert candidate.display_text == "Daft Punk - One More Time"

    def test_video_result(self):
        candidate = Candidate.from_ytmusic_result(video("A2VpR8HahKc"))

        assert candidate.locator == "https://www.youtube.com/watch?v=A2VpR8HahKc"
        assert candidate.result_type == "video"

    def test_missing_fields(self):
        candidate = Candidate.from_ytmusic_result({
            "videoId": "abc",
            "title": "Upload",
            "artists": None,
            "duration": "1:02:15",
        })

        assert candidate.artists == ()
        assert candidate.display_text == "Upload"
        assert candidate.duration_seconds == 3735

    def test_duration_seconds_fallback(self):
        candidate = Candidate.from_ytmusic_result({
            "videoId": "abc",
            "title": "x",
            "duration": None,
            "duration_seconds": 213,
        })
        assert candidate.duration_seconds == 213


class TestYouTubeSearcher:
    """Test search ordering and retries with a mocked YTMusic"""

    def test_songs_then_videos_without_duplicates(self):
        ytmusic = Mock()
        ytmusic.search.side_effect = [
            [song("s1"), song("s2"), {"resultType": "song", "title": "no id"}],
            [video("s2"), video("v1")],
        ]
        searcher = YouTubeSearcher(ytmusic=ytmusic, sleep=Mock())

        candidates = searcher.search("daft punk one more time")

        assert [c.video_id for c in candidates] == ["s1", "s2", "v1"]
        filters = [call.kwargs["filter"] for call in ytmusic.search.call_args_list]
        assert filters == ["songs", "videos"]

    def test_empty_results(self):
        ytmusic = Mock()
        ytmusic.search.return_value = None
        searcher = YouTubeSearcher(ytmusic=ytmusic, sleep=Mock())

        assert searcher.search("nothing") == []

    def test_transient_errors_are_retried(self):
        ytmusic = Mock()
        ytmusic.search.side_effect = [
            Exception("HTTP 503: Service Unavailable"),
            [song("s1")],
            [],
        ]
        sleep = Mock()
        searcher = YouTubeSearcher(ytmusic=ytmusic, sleep=sleep)

        candidates = searcher.search("daft punk one more time")

        assert [c.video_id for c in candidates] == ["s1"]
        sleep.assert_called_once()

    def test_persistent_transient_error(self):
        ytmusic = Mock()
        ytmusic.search.side_effect = Exception("Connection reset")
        sleep = Mock()
        searcher = YouTubeSearcher(ytmusic=ytmusic, sleep=sleep)

        with pytest.raises(SearchError):
            searcher.search("daft punk one more time")

        assert ytmusic.search.call_count == MAX_SEARCH_RETRIES
        assert sleep.call_count == MAX_SEARCH_RETRIES - 1

    def test_other_errors_are_not_retried(self):
        ytmusic = Mock()
        ytmusic.search.side_effect = KeyError("contents")
        sleep = Mock()
        searcher = YouTubeSearcher(ytmusic=ytmusic, sleep=sleep)

        with pytest.raises(SearchError):
            searcher.search("daft punk one more time")

        assert ytmusic.search.call_count == 1
        sleep.assert_not_called()


class TestRetryHelpers:
    """Test backoff helpers"""

    @pytest.mark.parametrize("message", [
        "expecting value: line 1 column 1",
        "http error 429",
        "connection refused",
        "502 bad gateway",
    ])
    def test_transient_messages(self, message):
        assert is_transient_error(message)

    def test_permanent_message(self):
        assert not is_transient_error("'contents'")

    @pytest.mark.parametrize("attempt", [0, 1, 2, 3, 10])
    def test_delay_bounds(self, attempt):
        for _ in range(20):
            delay = calculate_delay(attempt)
            assert 0.5 <= delay <= RETRY_DELAY_MAX * 1.3

    def test_rate_limit_waits_longer(self):
        with patch("spot_sync.youtube.searcher.random.random", return_value=0.5):
            assert calculate_delay(0, rate_limited=True) == 2 * calculate_delay(0)


def test_prompt_candidate(sample_record):
    candidate = Candidate.from_ytmusic_result(song("FGBhQbmPwH8"))

    with patch("spot_sync.youtube.searcher.click.confirm", return_value=False) as confirm:
        assert prompt_candidate(sample_record, candidate) is False

    question = confirm.call_args[0][0]
    assert "Daft Punk - One More Time" in question
    assert candidate.locator in question
