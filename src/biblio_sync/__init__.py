"""
Client-side synchronisation layer for a remote bibliography collection.

Typical wiring::

    tokens = AccessTokenStore()
    async with ApiClient(settings, tokens) as api:
        collection = RemoteCollection(BibliographyApi(api))
        projector = ListProjector(collection)
        await projector.start()
        projector.set_query("machine learning")
        await projector.wait_idle()
        print(projector.visible_records)
"""

from .client import AccessTokenStore, ApiClient, BibliographyApi, BiblioError, PreconditionError
from .config.settings import Settings, settings
from .core.models import BibliographyDraft, BibliographyRecord, FilterCriteria, PageCursor
from .sync import ListProjector, ListState, RemoteCollection

__version__ = "0.1.0"

__all__ = [
    "AccessTokenStore",
    "ApiClient",
    "BibliographyApi",
    "BiblioError",
    "PreconditionError",
    "Settings",
    "settings",
    "BibliographyDraft",
    "BibliographyRecord",
    "FilterCriteria",
    "PageCursor",
    "ListProjector",
    "ListState",
    "RemoteCollection",
]
