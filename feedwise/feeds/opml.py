"""Feed-list import from OPML documents."""

from pathlib import Path

import structlog
from lxml import etree

from feedwise.data_model.base import StrictBaseModel
from feedwise.feeds.errors import OpmlParseError
from feedwise.store.models import Source
from feedwise.store.store import ContentStore


logger = structlog.get_logger()


class FeedDescriptor(StrictBaseModel):
    """A feed listed in an OPML document."""

    title: str
    url: str


class ImportResult(StrictBaseModel):
    """Outcome of importing a feed list.

    Attributes:
        created: Sources registered by this import.
        skipped: Feed URLs that were already registered.
    """

    created: list[Source]
    skipped: list[str]


def parse_opml(document: Path | str | bytes) -> list[FeedDescriptor]:
    """Extract feeds from an OPML document.

    Outlines nest arbitrarily deep. Every outline carrying an ``xmlUrl``
    becomes a feed, in document order; the title falls back to the
    outline's ``text`` attribute.

    Args:
        document: Path to an OPML file, or the raw document bytes.

    Returns:
        Feed descriptors.

    Raises:
        OpmlParseError: If the document is not well-formed XML.
    """
    data = document if isinstance(document, bytes) else Path(document).read_bytes()
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise OpmlParseError(f"Invalid OPML document: {e}") from e

    body = root.find("body")
    if body is None:
        return []

    feeds: list[FeedDescriptor] = []
    stack = list(reversed(body.findall("outline")))
    while stack:
        outline = stack.pop()
        url = (outline.get("xmlUrl") or "").strip()
        if url:
            title = outline.get("title") or outline.get("text") or ""
            feeds.append(FeedDescriptor(title=title.strip(), url=url))
        stack.extend(reversed(outline.findall("outline")))

    return feeds


def import_feeds(store: ContentStore, feeds: list[FeedDescriptor]) -> ImportResult:
    """Register feeds as sources, skipping URLs already present.

    Args:
        store: Connected content store.
        feeds: Feeds to register.

    Returns:
        Created sources and skipped URLs.
    """
    log = logger.bind(component="feeds")
    created: list[Source] = []
    skipped: list[str] = []
    seen: set[str] = set()

    for feed in feeds:
        if feed.url in seen or store.find_source_by_url(feed.url) is not None:
            skipped.append(feed.url)
            continue
        seen.add(feed.url)
        created.append(store.create_source(name=feed.title or feed.url, url=feed.url))

    log.info("feeds_imported", created=len(created), skipped=len(skipped))
    return ImportResult(created=created, skipped=skipped)
