"""Link-based deduplication for ingestion."""

import structlog

from feedwise.store.store import ContentStore


logger = structlog.get_logger()


class DedupFilter:
    """Decides whether a candidate link is already stored.

    The check is advisory: two jobs can both pass it for the same link.
    The store's unique link constraint rejects the second insert.
    """

    def __init__(self, store: ContentStore) -> None:
        """Initialize the filter.

        Args:
            store: Content store to check against.
        """
        self._store = store
        self._seen: set[str] = set()

    def is_duplicate(self, link: str) -> bool:
        """Check a link against this job's inserts and the store.

        Args:
            link: Candidate link.

        Returns:
            True if the link is already stored.
        """
        if link in self._seen:
            return True
        return self._store.content_link_exists(link)

    def mark_stored(self, link: str) -> None:
        """Remember a link inserted during this job."""
        self._seen.add(link)
