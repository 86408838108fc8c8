"""Artist data providers.

    LastFmProvider       Last.fm ``artist.getinfo`` (requires LASTFM_API_KEY).
                         Profile URL, genre tags, bio summary and images.
    MusicBrainzProvider  MusicBrainz search/lookup, then Wikidata P18, then a
                         Wikimedia Commons thumbnail.  Also the official
                         homepage relation and event name search.

Both route every request through their :class:`LookupClient`, so pacing,
caching and the circuit breaker apply regardless of the caller.
"""

from src.providers.music_db.lastfm_provider import LastFmProvider
from src.providers.music_db.musicbrainz_provider import MusicBrainzProvider

__all__ = [
    "LastFmProvider",
    "MusicBrainzProvider",
]
