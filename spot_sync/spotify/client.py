"""
Spotify API access for spot-sync.

SpotifyClient is a process-wide singleton over spotipy.Spotify. The CLI
initializes it once during pre-flight; everything else just calls
SpotifyClient() to reach the same instance.

    SpotifyClient.init(client_id, client_secret, user_auth=True)
    items = SpotifyClient().current_user_all_saved_tracks()

Authentication modes:
    user_auth=True   OAuth (browser on first run, cached token after).
                     Needed for the saved library and private playlists.
    user_auth=False  Client credentials. Public playlists only.

Every spotipy failure surfaces as SpotifyError, flagged as an auth or
rate-limit problem where the HTTP status says so.
"""

from typing import Any, Callable

import spotipy
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOAuth

from spot_sync.core.exceptions import SpotifyError
from spot_sync.core.logger import get_logger

logger = get_logger(__name__)


REDIRECT_URI = "http://127.0.0.1:8888/callback"
USER_SCOPE = "user-library-read playlist-read-private playlist-read-collaborative"

# Largest page sizes the Web API accepts
SAVED_TRACKS_PAGE_SIZE = 50
PLAYLIST_PAGE_SIZE = 100


class SpotifyClientMeta(type):
    """
    Singleton machinery for SpotifyClient.

    SpotifyClient() returns the instance created by init() and refuses to
    build one on its own. init() works once per process, or once after
    each reset().
    """

    _instance: "SpotifyClient | None" = None
    _initialized: bool = False

    def __call__(cls) -> "SpotifyClient":
        if cls._instance is None:
            raise SpotifyError(
                "Spotify client used before SpotifyClient.init() was called",
                is_auth_error=True
            )
        return cls._instance

    def init(
        cls,
        client_id: str,
        client_secret: str,
        user_auth: bool = True
    ) -> "SpotifyClient":
        """
        Authenticate and create the singleton.

        A cheap request is made right away, so bad credentials fail here
        rather than halfway through fetching a playlist.

        Args:
            client_id: Application client ID (Spotify Developer Dashboard).
            client_secret: Application client secret.
            user_auth: Use the OAuth flow instead of client credentials.

        Returns:
            The new SpotifyClient.

        Raises:
            SpotifyError: Already initialized, or authentication failed.
                          Always flagged is_auth_error.
        """
        if cls._initialized:
            raise SpotifyError(
                "SpotifyClient is already initialized; call SpotifyClient() instead",
                is_auth_error=True
            )

        try:
            if user_auth:
                auth_manager = SpotifyOAuth(
                    client_id=client_id,
                    client_secret=client_secret,
                    redirect_uri=REDIRECT_URI,
                    scope=USER_SCOPE,
                    open_browser=True
                )
            else:
                auth_manager = SpotifyClientCredentials(
                    client_id=client_id,
                    client_secret=client_secret
                )
            spotify = spotipy.Spotify(auth_manager=auth_manager)

            if user_auth:
                user = spotify.current_user()
                logger.debug(f"Authenticated to Spotify as {user.get('id', '?')}")
            else:
                # current_user() is not allowed with client credentials
                spotify.search(q="test", type="track", limit=1)

        except spotipy.SpotifyException as e:
            raise SpotifyError(
                f"Unable to authenticate to Spotify: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e
        except Exception as e:
            raise SpotifyError(
                f"Failed to initialize Spotify client: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

        cls._instance = super().__call__(spotify, user_auth)
        cls._initialized = True
        return cls._instance

    def is_initialized(cls) -> bool:
        return cls._initialized

    def reset(cls) -> None:
        """Forget the singleton (test isolation)."""
        cls._instance = None
        cls._initialized = False


def _wrap_spotify_exception(e: spotipy.SpotifyException, what: str, details: dict) -> SpotifyError:
    """Translate a spotipy error into SpotifyError with the right flags."""
    status = e.http_status
    if status == 429:
        return SpotifyError(
            f"Rate limited while fetching {what}",
            details={**details, "http_status": status},
            is_rate_limit=True
        )
    if status == 401:
        return SpotifyError(
            f"Authentication expired or invalid while fetching {what}",
            details={**details, "http_status": status},
            is_auth_error=True
        )
    if status == 404:
        return SpotifyError(
            f"Not found while fetching {what}",
            details={**details, "http_status": status}
        )
    return SpotifyError(
        f"Failed to fetch {what}: {e}",
        details={**details, "original_error": str(e)}
    )


def _collect_pages(
    fetch_page: Callable[[int], dict[str, Any]],
    page_size: int
) -> list[dict[str, Any]]:
    """Call fetch_page(offset) until a page has no "next" link."""
    items: list[dict[str, Any]] = []
    offset = 0
    while True:
        page = fetch_page(offset)
        items.extend(page.get("items") or [])
        if page.get("next") is None:
            return items
        offset += page_size


class SpotifyClient(metaclass=SpotifyClientMeta):
    """
    Read-only view of the Spotify catalog.

    Only the two sources a sync can start from are exposed: the saved
    library and a playlist. Single-page calls return the raw paging
    object; the *_all_* variants walk every page.
    """

    def __init__(self, spotify: spotipy.Spotify, user_auth: bool) -> None:
        self._spotify = spotify
        self._user_auth = user_auth

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    def playlist_items(
        self,
        playlist_id: str,
        limit: int = PLAYLIST_PAGE_SIZE,
        offset: int = 0
    ) -> dict[str, Any]:
        """
        One page of a playlist.

        Raises:
            SpotifyError: Missing or private playlist, or an API failure.
        """
        try:
            page = self._spotify.playlist_items(
                playlist_id,
                limit=min(limit, PLAYLIST_PAGE_SIZE),
                offset=offset,
                additional_types=["track"]
            )
        except spotipy.SpotifyException as e:
            raise _wrap_spotify_exception(
                e, f"playlist {playlist_id}", {"playlist": playlist_id}
            ) from e

        if page is None:
            raise SpotifyError(
                f"Empty response for playlist {playlist_id}",
                details={"playlist": playlist_id}
            )
        return page

    def playlist_all_items(self, playlist_id: str) -> list[dict[str, Any]]:
        return _collect_pages(
            lambda offset: self.playlist_items(playlist_id, offset=offset),
            PLAYLIST_PAGE_SIZE
        )

    # -------------------------------------------------------------------------
    # Saved library (user auth only)
    # -------------------------------------------------------------------------

    def current_user_saved_tracks(
        self,
        limit: int = SAVED_TRACKS_PAGE_SIZE,
        offset: int = 0
    ) -> dict[str, Any]:
        """
        One page of the user's saved tracks.

        Raises:
            SpotifyError: Client credentials in use, or an API failure.
        """
        if not self._user_auth:
            raise SpotifyError(
                "The saved library needs user authentication (user_auth=True)",
                is_auth_error=True
            )

        try:
            page = self._spotify.current_user_saved_tracks(
                limit=min(limit, SAVED_TRACKS_PAGE_SIZE),
                offset=offset
            )
        except spotipy.SpotifyException as e:
            raise _wrap_spotify_exception(e, "saved tracks", {"offset": offset}) from e

        if page is None:
            raise SpotifyError(
                "Empty response for saved tracks",
                details={"offset": offset, "limit": limit}
            )
        return page

    def current_user_all_saved_tracks(self) -> list[dict[str, Any]]:
        return _collect_pages(
            lambda offset: self.current_user_saved_tracks(offset=offset),
            SAVED_TRACKS_PAGE_SIZE
        )
