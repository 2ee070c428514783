"""SQLite content store implementation."""

import sqlite3
import threading
import time
import uuid
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import structlog

from feedwise.data_model.base import ensure_utc, utc_now
from feedwise.store.errors import (
    ConnectionError as StoreConnectionError,
    DuplicateLinkError,
    NotFoundError,
    PersistenceFailure,
)
from feedwise.store.metrics import StoreMetrics, TransactionContext
from feedwise.store.migrations import CURRENT_VERSION, MigrationManager
from feedwise.store.models import (
    TERMINAL_JOB_STATUSES,
    ContentItem,
    Feedback,
    FetchJob,
    JobStatus,
    Source,
    StoreStats,
)


logger = structlog.get_logger()


def _iso(value: datetime) -> str:
    """Format a timestamp so stored values sort chronologically as text."""
    return ensure_utc(value).isoformat(timespec="microseconds")


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ContentStore:
    """SQLite store for sources, content, fetch jobs, and feedback.

    A single connection is shared between threads. Every statement runs
    under one re-entrant lock, so background jobs and request handlers
    can use the same store instance.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the content store.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        with self._lock:
            if self._conn is not None:
                return

            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._log.info("connecting_to_database")

            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row

            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA foreign_keys=ON")

            migration_mgr = MigrationManager(self._conn)
            old_version = migration_mgr.get_current_version()
            applied = migration_mgr.apply_migrations()

            self._log.info(
                "database_connected",
                old_version=old_version,
                new_version=CURRENT_VERSION,
                migrations_applied=applied,
            )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._log.info("database_closed")

    def __enter__(self) -> "ContentStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Driver errors are rolled back and re-raised as PersistenceFailure.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            ctx = TransactionContext(
                tx_id=tx_id, start_time_ns=start_ns, operation=operation
            )

            self._log.debug("transaction_started", tx_id=tx_id, op=operation)

            try:
                yield ctx
                conn.commit()
            except Exception as e:
                conn.rollback()
                self._metrics.record_tx_failed()
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    error_type=type(e).__name__,
                    duration_ms=round(duration_ms, 2),
                )
                if isinstance(e, sqlite3.Error):
                    raise PersistenceFailure(operation, str(e)) from e
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

    @contextmanager
    def _read(self, operation: str) -> Generator[sqlite3.Connection]:
        """Context manager for read-only statements.

        Args:
            operation: Name of the operation for error reporting.

        Yields:
            The database connection, held under the store lock.
        """
        with self._lock:
            conn = self._ensure_connected()
            try:
                yield conn
            except sqlite3.Error as e:
                raise PersistenceFailure(operation, str(e)) from e

    # ===== Sources =====

    def create_source(
        self,
        name: str,
        url: str,
        description: str = "",
        source_id: str | None = None,
    ) -> Source:
        """Register a feed source.

        Args:
            name: Display name.
            url: Feed URL.
            description: Free-form description.
            source_id: Optional identifier (generated if not provided).

        Returns:
            The created Source.
        """
        now = utc_now()
        source = Source(
            id=source_id or str(uuid.uuid4()),
            name=name,
            url=url,
            description=description,
            created_at=now,
            updated_at=now,
        )

        with self._transaction("create_source") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO sources (
                    id, name, url, description, created_at, updated_at, last_fetched_at
                ) VALUES (?, ?, ?, ?, ?, ?, NULL)
                """,
                (
                    source.id,
                    source.name,
                    source.url,
                    source.description,
                    _iso(now),
                    _iso(now),
                ),
            )
            ctx.add_affected_rows(1)

        return source

    def get_source(self, source_id: str) -> Source | None:
        """Get a source by ID.

        Args:
            source_id: The source ID to look up.

        Returns:
            The Source, or None if not found.
        """
        with self._read("get_source") as conn:
            row = conn.execute(
                "SELECT * FROM sources WHERE id = ?", (source_id,)
            ).fetchone()
        return self._row_to_source(row) if row is not None else None

    def find_source_by_url(self, url: str) -> Source | None:
        """Get the first source registered for a feed URL."""
        with self._read("find_source_by_url") as conn:
            row = conn.execute(
                "SELECT * FROM sources WHERE url = ? ORDER BY created_at LIMIT 1",
                (url,),
            ).fetchone()
        return self._row_to_source(row) if row is not None else None

    def list_sources(self) -> list[Source]:
        """List all registered sources ordered by name.

        Returns:
            List of sources.
        """
        with self._read("list_sources") as conn:
            rows = conn.execute("SELECT * FROM sources ORDER BY name, id").fetchall()
        return [self._row_to_source(row) for row in rows]

    def update_source_last_fetched_at(self, source_id: str, when: datetime) -> None:
        """Record the last time a source was ingested.

        Args:
            source_id: Source to update.
            when: Fetch timestamp.

        Raises:
            NotFoundError: If the source does not exist.
        """
        with self._transaction("update_source_last_fetched_at") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE sources SET last_fetched_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (_iso(when), _iso(when), source_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("source", source_id)
            ctx.add_affected_rows(cursor.rowcount)

    def _row_to_source(self, row: sqlite3.Row) -> Source:
        return Source(
            id=row["id"],
            name=row["name"],
            url=row["url"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            last_fetched_at=_parse(row["last_fetched_at"]),
        )

    # ===== Contents =====

    def create_content(self, item: ContentItem) -> ContentItem:
        """Insert a content item and its categories atomically.

        Args:
            item: Content to store.

        Returns:
            The stored item.

        Raises:
            DuplicateLinkError: If an item with the same link exists.
            PersistenceFailure: If the insert fails for any other reason.
        """
        with self._transaction("create_content") as ctx:
            conn = self._ensure_connected()
            try:
                conn.execute(
                    """
                    INSERT INTO contents (
                        id, source_id, title, link, description, content,
                        published_at, fetched_at, author
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.id,
                        item.source_id,
                        item.title,
                        item.link,
                        item.description,
                        item.content,
                        _iso(item.published_at),
                        _iso(item.fetched_at),
                        item.author,
                    ),
                )
            except sqlite3.IntegrityError as e:
                if "contents.link" in str(e):
                    self._metrics.record_duplicate_link()
                    raise DuplicateLinkError(item.link) from e
                raise
            ctx.add_affected_rows(1)

            conn.executemany(
                "INSERT INTO content_categories (content_id, category) VALUES (?, ?)",
                [(item.id, category) for category in sorted(item.categories)],
            )
            ctx.add_affected_rows(len(item.categories))

        self._metrics.record_content_inserted()
        return item

    def get_content(self, content_id: str) -> ContentItem | None:
        """Get a content item by ID.

        Args:
            content_id: The content ID to look up.

        Returns:
            The ContentItem, or None if not found.
        """
        with self._read("get_content") as conn:
            row = conn.execute(
                "SELECT * FROM contents WHERE id = ?", (content_id,)
            ).fetchone()
            if row is None:
                return None
            return self._rows_to_contents(conn, [row])[0]

    def get_content_by_link(self, link: str) -> ContentItem | None:
        """Get a content item by its link."""
        with self._read("get_content_by_link") as conn:
            row = conn.execute(
                "SELECT * FROM contents WHERE link = ?", (link,)
            ).fetchone()
            if row is None:
                return None
            return self._rows_to_contents(conn, [row])[0]

    def content_link_exists(self, link: str) -> bool:
        """Check whether any content item already uses a link.

        Args:
            link: Link to check.

        Returns:
            True if the link is stored.
        """
        with self._read("content_link_exists") as conn:
            row = conn.execute(
                "SELECT 1 FROM contents WHERE link = ? LIMIT 1", (link,)
            ).fetchone()
        return row is not None

    def list_contents(
        self,
        source_id: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ContentItem]:
        """List content newest first.

        Args:
            source_id: Optional source filter.
            start: Optional earliest publication time (inclusive).
            end: Optional latest publication time (inclusive).
            limit: Maximum number of items.
            offset: Number of items to skip.

        Returns:
            List of content items.
        """
        clauses: list[str] = []
        params: list[object] = []
        if source_id is not None:
            clauses.append("source_id = ?")
            params.append(source_id)
        if start is not None:
            clauses.append("published_at >= ?")
            params.append(_iso(start))
        if end is not None:
            clauses.append("published_at <= ?")
            params.append(_iso(end))

        query = "SELECT * FROM contents"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY published_at DESC, id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        with self._read("list_contents") as conn:
            rows = conn.execute(query, params).fetchall()
            return self._rows_to_contents(conn, rows)

    def search_contents(
        self,
        keywords: str,
        source_id: str | None = None,
        limit: int = 50,
    ) -> list[ContentItem]:
        """Case-insensitive substring search over title, summary, and body.

        Args:
            keywords: Search text.
            source_id: Optional source filter.
            limit: Maximum number of items.

        Returns:
            Matching content items, newest first.
        """
        pattern = f"%{_escape_like(keywords)}%"
        query = """
            SELECT * FROM contents
            WHERE (title LIKE ? ESCAPE '\\'
                   OR description LIKE ? ESCAPE '\\'
                   OR content LIKE ? ESCAPE '\\')
        """
        params: list[object] = [pattern, pattern, pattern]
        if source_id is not None:
            query += " AND source_id = ?"
            params.append(source_id)
        query += " ORDER BY published_at DESC, id LIMIT ?"
        params.append(limit)

        with self._read("search_contents") as conn:
            rows = conn.execute(query, params).fetchall()
            return self._rows_to_contents(conn, rows)

    def list_candidates(
        self,
        since: datetime,
        source_ids: Iterable[str] | None = None,
        exclude_user_id: str | None = None,
    ) -> list[ContentItem]:
        """List content eligible for recommendation.

        Args:
            since: Oldest publication time to include.
            source_ids: Optional source filter; empty means all sources.
            exclude_user_id: Drop items this user has already rated.

        Returns:
            Candidate content items.
        """
        query = "SELECT c.* FROM contents c WHERE c.published_at >= ?"
        params: list[object] = [_iso(since)]

        sources = sorted(set(source_ids or ()))
        if sources:
            placeholders = ", ".join("?" for _ in sources)
            query += f" AND c.source_id IN ({placeholders})"
            params.extend(sources)

        if exclude_user_id:
            query += (
                " AND c.id NOT IN (SELECT content_id FROM feedback WHERE user_id = ?)"
            )
            params.append(exclude_user_id)

        with self._read("list_candidates") as conn:
            rows = conn.execute(query, params).fetchall()
            return self._rows_to_contents(conn, rows)

    def _rows_to_contents(
        self, conn: sqlite3.Connection, rows: list[sqlite3.Row]
    ) -> list[ContentItem]:
        """Convert content rows, attaching their category tags."""
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        categories: dict[str, set[str]] = {content_id: set() for content_id in ids}
        placeholders = ", ".join("?" for _ in ids)
        for cat_row in conn.execute(
            f"SELECT content_id, category FROM content_categories "
            f"WHERE content_id IN ({placeholders})",
            ids,
        ):
            categories[cat_row["content_id"]].add(cat_row["category"])

        return [
            ContentItem(
                id=row["id"],
                source_id=row["source_id"],
                title=row["title"],
                link=row["link"],
                description=row["description"],
                content=row["content"],
                published_at=datetime.fromisoformat(row["published_at"]),
                fetched_at=datetime.fromisoformat(row["fetched_at"]),
                author=row["author"],
                categories=frozenset(categories[row["id"]]),
            )
            for row in rows
        ]

    # ===== Fetch Jobs =====

    def create_job(
        self,
        days: int,
        source_id: str | None = None,
        started_at: datetime | None = None,
    ) -> FetchJob:
        """Create a pending fetch job.

        Args:
            days: Lookback window in days.
            source_id: Optional single source to ingest.
            started_at: Creation time (defaults to now).

        Returns:
            The created FetchJob.
        """
        job = FetchJob(
            id=str(uuid.uuid4()),
            status=JobStatus.PENDING,
            started_at=started_at or utc_now(),
            source_id=source_id,
            days=days,
        )

        with self._transaction("create_job") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO fetch_jobs (
                    id, status, started_at, completed_at, items_processed,
                    source_id, days
                ) VALUES (?, ?, ?, NULL, 0, ?, ?)
                """,
                (
                    job.id,
                    job.status.value,
                    _iso(job.started_at),
                    job.source_id,
                    job.days,
                ),
            )
            ctx.add_affected_rows(1)

        return job

    def get_job(self, job_id: str) -> FetchJob | None:
        """Get a fetch job with its recorded errors.

        Args:
            job_id: The job ID to look up.

        Returns:
            The FetchJob, or None if not found.
        """
        with self._read("get_job") as conn:
            row = conn.execute(
                "SELECT * FROM fetch_jobs WHERE id = ?", (job_id,)
            ).fetchone()
            if row is None:
                return None
            errors = [
                err["message"]
                for err in conn.execute(
                    "SELECT message FROM job_errors WHERE job_id = ? ORDER BY id",
                    (job_id,),
                )
            ]

        return FetchJob(
            id=row["id"],
            status=JobStatus(row["status"]),
            started_at=datetime.fromisoformat(row["started_at"]),
            completed_at=_parse(row["completed_at"]),
            items_processed=row["items_processed"],
            source_id=row["source_id"],
            days=row["days"],
            errors=tuple(errors),
        )

    def update_job(
        self,
        job_id: str,
        status: JobStatus,
        items_processed: int,
        completed_at: datetime | None = None,
    ) -> bool:
        """Update a job's status and progress.

        Jobs already in a terminal status are never modified.

        Args:
            job_id: Job to update.
            status: New status.
            items_processed: Items stored so far.
            completed_at: Completion time for terminal statuses.

        Returns:
            True if the row changed, False if the job was already terminal.

        Raises:
            NotFoundError: If the job does not exist.
        """
        terminal = sorted(s.value for s in TERMINAL_JOB_STATUSES)
        with self._transaction("update_job") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                f"""
                UPDATE fetch_jobs
                SET status = ?, items_processed = ?, completed_at = ?
                WHERE id = ? AND status NOT IN ({", ".join("?" for _ in terminal)})
                """,
                (
                    status.value,
                    items_processed,
                    _iso(completed_at) if completed_at else None,
                    job_id,
                    *terminal,
                ),
            )
            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM fetch_jobs WHERE id = ?", (job_id,)
                ).fetchone()
                if exists is None:
                    raise NotFoundError("job", job_id)
                return False
            ctx.add_affected_rows(cursor.rowcount)
        return True

    def append_job_errors(self, job_id: str, messages: list[str]) -> None:
        """Append error messages to a job's error log in order.

        Args:
            job_id: Job the errors belong to.
            messages: Error messages.
        """
        if not messages:
            return
        recorded_at = _iso(utc_now())
        with self._transaction("append_job_errors") as ctx:
            conn = self._ensure_connected()
            conn.executemany(
                "INSERT INTO job_errors (job_id, message, recorded_at) VALUES (?, ?, ?)",
                [(job_id, message, recorded_at) for message in messages],
            )
            ctx.add_affected_rows(len(messages))

    # ===== Feedback =====

    def create_feedback(
        self,
        content_id: str,
        user_id: str,
        rating: int,
        comment: str | None = None,
        timestamp: datetime | None = None,
    ) -> Feedback:
        """Store a feedback record.

        Args:
            content_id: Rated content.
            user_id: Rating user.
            rating: Rating in 1..5.
            comment: Optional comment.
            timestamp: Submission time (defaults to now).

        Returns:
            The created Feedback.

        Raises:
            NotFoundError: If the content does not exist.
        """
        feedback = Feedback(
            id=str(uuid.uuid4()),
            content_id=content_id,
            user_id=user_id,
            rating=rating,
            timestamp=timestamp or utc_now(),
            comment=comment,
        )

        with self._transaction("create_feedback") as ctx:
            conn = self._ensure_connected()
            exists = conn.execute(
                "SELECT 1 FROM contents WHERE id = ?", (content_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError("content", content_id)
            conn.execute(
                """
                INSERT INTO feedback (id, content_id, user_id, rating, timestamp, comment)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    feedback.id,
                    feedback.content_id,
                    feedback.user_id,
                    feedback.rating,
                    _iso(feedback.timestamp),
                    feedback.comment,
                ),
            )
            ctx.add_affected_rows(1)

        self._metrics.record_feedback_inserted()
        return feedback

    def list_user_feedback(self, user_id: str) -> list[Feedback]:
        """List a user's feedback, newest first.

        Args:
            user_id: User to look up.

        Returns:
            List of feedback records.
        """
        with self._read("list_user_feedback") as conn:
            rows = conn.execute(
                "SELECT * FROM feedback WHERE user_id = ? ORDER BY timestamp DESC, id",
                (user_id,),
            ).fetchall()
        return [
            Feedback(
                id=row["id"],
                content_id=row["content_id"],
                user_id=row["user_id"],
                rating=row["rating"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
                comment=row["comment"],
            )
            for row in rows
        ]

    def source_affinity(self, user_id: str) -> dict[str, float]:
        """Average rating a user has given each source.

        Args:
            user_id: User to aggregate.

        Returns:
            Mapping of source ID to mean rating in 1..5. Sources the user
            never rated are absent.
        """
        with self._read("source_affinity") as conn:
            rows = conn.execute(
                """
                SELECT c.source_id AS source_id, AVG(f.rating) AS avg_rating
                FROM feedback f
                JOIN contents c ON c.id = f.content_id
                WHERE f.user_id = ?
                GROUP BY c.source_id
                """,
                (user_id,),
            ).fetchall()
        return {row["source_id"]: float(row["avg_rating"]) for row in rows}

    # ===== Admin =====

    def get_schema_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number.
        """
        with self._read("get_schema_version") as conn:
            return MigrationManager(conn).get_current_version()

    def get_stats(self) -> StoreStats:
        """Get row counts for each table.

        Returns:
            Store statistics.
        """
        with self._read("get_stats") as conn:
            counts = {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]  # noqa: S608
                for table in ("sources", "contents", "fetch_jobs", "feedback")
            }
            jobs_by_status = {
                row["status"]: row["n"]
                for row in conn.execute(
                    "SELECT status, COUNT(*) AS n FROM fetch_jobs GROUP BY status"
                )
            }
            version = MigrationManager(conn).get_current_version()

        return StoreStats(
            schema_version=version,
            sources=counts["sources"],
            contents=counts["contents"],
            fetch_jobs=counts["fetch_jobs"],
            feedback=counts["feedback"],
            jobs_by_status=jobs_by_status,
        )
