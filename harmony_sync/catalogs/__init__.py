"""
Remote catalog interfaces and adapters.

    - base: CatalogClient / PlaylistWriter / PersistenceSink protocols,
      Page and PlaylistMetadata, with_retry()
    - spotify: SpotifyCatalog (spotipy)
    - ytmusic: YouTubeMusicCatalog (ytmusicapi)

The adapters pull in their API clients, so they are imported from their
own modules:

    from harmony_sync.catalogs.spotify import SpotifyCatalog
    from harmony_sync.catalogs.ytmusic import YouTubeMusicCatalog
"""

from harmony_sync.catalogs.base import (
    CatalogClient,
    Page,
    PersistenceSink,
    PlaylistMetadata,
    PlaylistWriter,
    with_retry,
)

__all__ = [
    "CatalogClient",
    "PlaylistWriter",
    "PersistenceSink",
    "Page",
    "PlaylistMetadata",
    "with_retry",
]
