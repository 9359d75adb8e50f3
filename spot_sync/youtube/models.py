"""
Data models for YouTube search candidates.

A Candidate is one search result from YouTube Music: the text the
matcher judges, plus the locator (watch URL) the downloader fetches.
"""

from dataclasses import dataclass
from typing import Any


def _parse_duration(duration_str: str | None) -> int:
    """
    Parse duration string to seconds.

    Examples:
        "3:33" -> 213
        "1:02:15" -> 3735
        None -> 0
    """
    if not duration_str:
        return 0

    try:
        parts = [int(part) for part in duration_str.split(":")]
    except (ValueError, TypeError):
        return 0

    if len(parts) == 2:
        return parts[0] * 60 + parts[1]
    if len(parts) == 3:
        return parts[0] * 3600 + parts[1] * 60 + parts[2]
    return 0


@dataclass(frozen=True)
class Candidate:
    """
    Immutable representation of a YouTube Music search result.

    Attributes:
        video_id: YouTube video ID (11-character string).
        locator: Full watch URL.
                 For songs: "https://music.youtube.com/watch?v=..."
                 For videos: "https://www.youtube.com/watch?v=..."
        title: Video/song title as it appears on YouTube.
        artists: Artist names credited on the result (may be empty for
                 user uploads).
        duration_seconds: Duration in seconds, 0 when unknown.
        result_type: "song" for official songs, "video" otherwise.
    """

    video_id: str
    locator: str
    title: str
    artists: tuple[str, ...] = ()
    duration_seconds: int = 0
    result_type: str = "video"

    @property
    def display_text(self) -> str:
        """
        Text handed to the matcher: "Artist1, Artist2 - Title".

        YouTube Music splits artists out of the title, while the matcher
        expects both in one string, the way a video title usually reads.
        """
        if not self.artists:
            return self.title
        return f"{', '.join(self.artists)} - {self.title}"

    @classmethod
    def from_ytmusic_result(cls, result: dict[str, Any]) -> "Candidate":
        """
        Create a Candidate from a ytmusicapi search result.

        Behavior:
            1. Extract videoId
            2. Build URL based on result type (song vs video)
            3. Extract title and artist names
            4. Parse the "M:SS" duration string (or duration_seconds)
        """
        video_id = result.get("videoId") or ""

        result_type = result.get("resultType", "video")
        if result_type == "song":
            locator = f"https://music.youtube.com/watch?v={video_id}"
        else:
            locator = f"https://www.youtube.com/watch?v={video_id}"

        artists_data = result.get("artists") or []
        artists = tuple(
            a["name"] for a in artists_data
            if isinstance(a, dict) and a.get("name")
        )

        duration_seconds = _parse_duration(result.get("duration"))
        if duration_seconds == 0 and "duration_seconds" in result:
            try:
                duration_seconds = int(result["duration_seconds"])
            except (ValueError, TypeError):
                pass

        return cls(
            video_id=video_id,
            locator=locator,
            title=result.get("title") or "",
            artists=artists,
            duration_seconds=duration_seconds,
            result_type=result_type,
        )
