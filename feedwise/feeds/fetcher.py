"""RSS/Atom feed retrieval and entry normalization."""

import calendar
from datetime import UTC, datetime

import feedparser  # type: ignore[import-untyped]
import structlog

from feedwise.feeds.errors import FeedErrorClass, FetchFailure
from feedwise.feeds.models import CandidateItem
from feedwise.feeds.state_machine import FeedStateMachine
from feedwise.fetch.client import HttpFetcher
from feedwise.store.models import Source


logger = structlog.get_logger()


class FeedFetcher:
    """Retrieves a source's feed and normalizes its entries.

    Parses RSS 2.0 and Atom 1.0 feeds using feedparser. Bounded by the
    HTTP client's timeout; a failure affects only the source being fetched.
    """

    def __init__(self, http_client: HttpFetcher) -> None:
        """Initialize the feed fetcher.

        Args:
            http_client: HTTP client for fetching.
        """
        self._http = http_client

    def fetch(self, source: Source) -> list[CandidateItem]:
        """Fetch and parse a source's feed.

        Args:
            source: Source to fetch.

        Returns:
            Candidate items in feed order.

        Raises:
            FetchFailure: If the feed cannot be retrieved or is malformed.
        """
        log = logger.bind(component="feeds", source_id=source.id)
        state_machine = FeedStateMachine(source.id)

        state_machine.to_fetching()
        result = self._http.fetch(source.url, source_id=source.id)

        if result.error is not None:
            state_machine.to_failed()
            log.warning(
                "feed_fetch_failed",
                error_class=result.error.error_class.value,
                status_code=result.status_code,
            )
            raise FetchFailure(
                source_id=source.id,
                url=source.url,
                error_class=FeedErrorClass.FETCH,
                message=result.error.message,
            )

        state_machine.to_parsing()
        feed = feedparser.parse(result.body_bytes)

        if feed.bozo and not feed.entries:
            state_machine.to_failed()
            log.warning("feed_malformed", bozo_exception=str(feed.bozo_exception))
            raise FetchFailure(
                source_id=source.id,
                url=source.url,
                error_class=FeedErrorClass.PARSE,
                message=f"Malformed feed: {feed.bozo_exception}",
            )

        if feed.bozo:
            # Recoverable: feedparser still extracted entries
            log.warning("feed_parse_warning", bozo_exception=str(feed.bozo_exception))

        items = parse_entries(feed.entries, source_id=source.id)
        state_machine.to_done()

        log.info("feed_parsed", entries=len(feed.entries), items=len(items))
        return items


def parse_entries(
    entries: list[feedparser.FeedParserDict],
    source_id: str | None = None,
) -> list[CandidateItem]:
    """Normalize feedparser entries, dropping those without a link or GUID.

    Args:
        entries: Parsed feed entries.
        source_id: Source identifier for logging.

    Returns:
        Candidate items in feed order.
    """
    items: list[CandidateItem] = []

    for entry in entries:
        try:
            item = parse_entry(entry)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(
                "entry_parse_failed",
                component="feeds",
                source_id=source_id,
                error=str(e),
            )
            continue
        if item is None:
            logger.debug("entry_without_link", component="feeds", source_id=source_id)
            continue
        items.append(item)

    return items


def parse_entry(entry: feedparser.FeedParserDict) -> CandidateItem | None:
    """Normalize a single feed entry.

    Args:
        entry: Feedparser entry dict.

    Returns:
        CandidateItem, or None if the entry has neither link nor GUID.
    """
    link = _extract_link(entry)
    if not link:
        return None

    contents = entry.get("content") or []
    body = contents[0].get("value") if contents else None

    categories = frozenset(
        name for name in map(_tag_name, entry.get("tags") or []) if name
    )

    return CandidateItem(
        title=(entry.get("title") or "").strip(),
        link=link,
        summary=entry.get("summary", "") or "",
        body=body or None,
        published_at=_extract_date(entry),
        author=entry.get("author") or None,
        categories=categories,
    )


def _tag_name(tag: feedparser.FeedParserDict) -> str:
    # Atom categories may carry only scheme and label; term is then None
    return (tag.get("term") or tag.get("label") or "").strip()


def _extract_link(entry: feedparser.FeedParserDict) -> str:
    link = entry.get("link") or ""
    if not link:
        for link_entry in entry.get("links", []):
            if link_entry.get("rel") == "alternate" and link_entry.get("href"):
                link = link_entry["href"]
                break
    if not link:
        link = entry.get("id") or ""
    return link.strip()


def _extract_date(entry: feedparser.FeedParserDict) -> datetime | None:
    """Publication time, else update time, else None.

    feedparser exposes both as UTC struct_time values.
    """
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=UTC)
            except (ValueError, OverflowError):
                continue
    return None
