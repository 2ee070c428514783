"""Feedwise CLI entry point.

Provides commands for registering feeds, running fetch jobs, ranking
recommendations, recording feedback, and scoring stored content.
"""

import json
import logging
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import click
import structlog
from pydantic import ValidationError

from feedwise import __version__
from feedwise.analyzer.analyzer import ContentAnalyzer
from feedwise.analyzer.explain import recommendation_reason
from feedwise.analyzer.models import ScoredContent
from feedwise.api.models import ApiModel
from feedwise.api.service import ApiResponse, ReaderApi, respond
from feedwise.config.loader import ConfigValidationError, FeedwiseConfig, resolve_config
from feedwise.data_model.base import utc_now
from feedwise.feeds.errors import OpmlParseError
from feedwise.feeds.fetcher import FeedFetcher
from feedwise.feeds.opml import import_feeds, parse_opml
from feedwise.fetch.client import HttpFetcher
from feedwise.fetch.metrics import FetchMetrics
from feedwise.ingest.metrics import IngestMetrics
from feedwise.ingest.orchestrator import FetchJobOrchestrator
from feedwise.ingest.supervisor import JobSupervisor
from feedwise.llm.client import ChatCompletionClient
from feedwise.llm.processor import ArticleInsight, InsightProcessor
from feedwise.observability.logging import configure_logging
from feedwise.recommend.feedback import FeedbackService
from feedwise.recommend.metrics import RecommendMetrics
from feedwise.recommend.ranker import RecommendationRanker
from feedwise.settings.app import AppSettings
from feedwise.store.metrics import StoreMetrics
from feedwise.store.store import ContentStore


logger = structlog.get_logger()

COMPONENT_CLI = "cli"
ANALYZE_SCAN_LIMIT = 1000


@dataclass(frozen=True)
class CliContext:
    """Settings shared by every command."""

    settings: AppSettings
    verbose: bool


@dataclass(frozen=True)
class Services:
    """Wired components for one command invocation."""

    store: ContentStore
    config: FeedwiseConfig
    supervisor: JobSupervisor
    api: ReaderApi


def _setup(ctx: CliContext, command: str) -> Any:
    """Configure logging and return a logger bound to the command."""
    level = logging.DEBUG if ctx.verbose else logging.INFO
    configure_logging(level=level, json_format=ctx.settings.json_logs)
    return logger.bind(component=COMPONENT_CLI, command=command)


def _load_config(settings: AppSettings, log: Any) -> FeedwiseConfig:
    """Resolve configuration, exit on failure."""
    try:
        return resolve_config(settings)
    except ConfigValidationError as e:
        log.warning("config_load_failed", file_path=e.file_path)
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)
    except OSError as e:
        log.warning("interests_load_failed", error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@contextmanager
def _services(ctx: CliContext, log: Any) -> Generator[Services]:
    """Open the store and wire the ingestion and ranking services."""
    settings = ctx.settings
    config = _load_config(settings, log)

    with ContentStore(settings.db_path) as store:
        orchestrator = FetchJobOrchestrator(
            store=store,
            feed_fetcher=FeedFetcher(HttpFetcher(config.fetch)),
            undated_policy=settings.undated_policy,
            default_days=settings.default_lookback_days,
        )
        with JobSupervisor(orchestrator, max_workers=settings.max_workers) as sup:
            api = ReaderApi(
                store=store,
                supervisor=sup,
                ranker=RecommendationRanker(store, config.ranker),
                feedback=FeedbackService(store),
            )
            yield Services(store=store, config=config, supervisor=sup, api=api)


def _emit(response: ApiResponse) -> None:
    """Print a response body as JSON; exit non-zero on an error status."""
    click.echo(json.dumps(response.body, indent=2))
    if response.status_code >= 400:  # noqa: PLR2004
        sys.exit(1)


def _call(call: Callable[[], ApiModel]) -> None:
    _emit(respond(call))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite database path (overrides FEEDWISE_DB_PATH).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--interests",
    "interests_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Interests file, one phrase per line.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Output logs as JSON.",
)
@click.pass_context
def cli(  # noqa: PLR0913
    ctx: click.Context,
    db_path: Path | None,
    config_path: Path | None,
    interests_path: Path | None,
    verbose: bool,
    json_logs: bool | None,
) -> None:
    """Feedwise - feed ingestion and reading recommendations."""
    overrides: dict[str, Any] = {
        key: value
        for key, value in (
            ("db_path", db_path),
            ("config_path", config_path),
            ("interests_path", interests_path),
            ("json_logs", json_logs),
        )
        if value is not None
    }
    try:
        settings = AppSettings(**overrides)
    except ValidationError as e:
        click.echo(f"Invalid settings: {e}", err=True)
        sys.exit(1)
    ctx.obj = CliContext(settings=settings, verbose=verbose)


@cli.command("import-opml")
@click.argument("opml_path", type=click.Path(exists=True, path_type=Path))
@click.pass_obj
def import_opml(ctx: CliContext, opml_path: Path) -> None:
    """Register every feed listed in an OPML file as a source."""
    log = _setup(ctx, "import-opml")

    try:
        feeds = parse_opml(opml_path)
    except OpmlParseError as e:
        log.warning("opml_parse_failed", path=str(opml_path), error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    with ContentStore(ctx.settings.db_path) as store:
        result = import_feeds(store, feeds)

    for source in result.created:
        click.echo(f"  + {source.name} <{source.url}> ({source.id})")
    for url in result.skipped:
        click.echo(f"  = {url} (already registered)")
    click.echo(
        f"Imported {len(result.created)} feeds, skipped {len(result.skipped)}."
    )


@cli.command()
@click.option("--source-id", default=None, help="Only fetch this source.")
@click.option("--days", type=int, default=None, help="Lookback window in days.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds to wait for the job before giving up.",
)
@click.pass_obj
def fetch(
    ctx: CliContext, source_id: str | None, days: int | None, timeout: float | None
) -> None:
    """Run a fetch job and print its final state."""
    log = _setup(ctx, "fetch")

    with _services(ctx, log) as services:
        handle = services.supervisor.submit(source_id=source_id, days=days)
        click.echo(f"Started job {handle.job_id}", err=True)
        try:
            handle.wait(timeout=timeout)
        except TimeoutError:
            handle.cancel()
            log.warning("fetch_wait_timed_out", job_id=handle.job_id)
            click.echo(f"Timed out waiting for job {handle.job_id}", err=True)
        log.info(
            "fetch_metrics",
            job_id=handle.job_id,
            fetch=FetchMetrics.get_instance().to_dict(),
            ingest=IngestMetrics.get_instance().to_dict(),
            store=StoreMetrics.get_instance().to_dict(),
        )
        _call(lambda: services.api.get_fetch_job(handle.job_id))


@cli.command()
@click.argument("job_id")
@click.pass_obj
def job(ctx: CliContext, job_id: str) -> None:
    """Show a fetch job."""
    log = _setup(ctx, "job")
    with _services(ctx, log) as services:
        _call(lambda: services.api.get_fetch_job(job_id))


@cli.command()
@click.option("--user-id", default=None, help="Reader to personalize for.")
@click.option(
    "--source-id",
    "source_ids",
    multiple=True,
    help="Restrict to a source (repeatable).",
)
@click.option("--limit", type=int, default=None, help="Maximum results.")
@click.pass_obj
def recommend(
    ctx: CliContext,
    user_id: str | None,
    source_ids: tuple[str, ...],
    limit: int | None,
) -> None:
    """Print ranked recommendations."""
    log = _setup(ctx, "recommend")
    request = {"userId": user_id, "sourceIds": list(source_ids), "limit": limit}
    with _services(ctx, log) as services:
        response = respond(lambda: services.api.get_recommendations(request))
    log.info("recommend_metrics", **RecommendMetrics.get_instance().to_dict())
    _emit(response)


@cli.command()
@click.argument("content_id")
@click.argument("user_id")
@click.argument("rating", type=int)
@click.option("--comment", default=None, help="Optional comment.")
@click.pass_obj
def feedback(
    ctx: CliContext,
    content_id: str,
    user_id: str,
    rating: int,
    comment: str | None,
) -> None:
    """Rate a content item from 1 to 5."""
    log = _setup(ctx, "feedback")
    request = {
        "contentId": content_id,
        "userId": user_id,
        "rating": rating,
        "comment": comment,
    }
    with _services(ctx, log) as services:
        response = respond(lambda: services.api.submit_feedback(request))
    log.info("recommend_metrics", **RecommendMetrics.get_instance().to_dict())
    _emit(response)


@cli.command()
@click.option("--days", type=int, default=None, help="Lookback window in days.")
@click.option("--top", type=int, default=10, show_default=True, help="Items to show.")
@click.option(
    "--ai-analysis",
    is_flag=True,
    help="Ask the configured chat model to summarize each shown item.",
)
@click.option("--model", default=None, help="Chat model for --ai-analysis.")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def analyze(  # noqa: PLR0913
    ctx: CliContext,
    days: int | None,
    top: int,
    ai_analysis: bool,
    model: str | None,
    json_output: bool,
) -> None:
    """Score stored items from the lookback window and print the best.

    Sources that published nothing inside the window are listed after
    the ranking.
    """
    log = _setup(ctx, "analyze")
    config = _load_config(ctx.settings, log)
    lookback = days if days is not None and days > 0 else None
    lookback = lookback or ctx.settings.default_lookback_days
    start = utc_now() - timedelta(days=lookback)

    analyzer = ContentAnalyzer(interests=config.interests, config=config.analyzer)
    with ContentStore(ctx.settings.db_path) as store:
        items = store.list_contents(start=start, limit=ANALYZE_SCAN_LIMIT)
        stale_sources = [
            source
            for source in store.list_sources()
            if not store.list_contents(source_id=source.id, start=start, limit=1)
        ]
    ranked = analyzer.analyze_many(items)[: max(top, 0)]

    insights: dict[str, ArticleInsight] = {}
    if ai_analysis and ranked:
        insights = _run_ai_analysis(ctx.settings, model, ranked, log)

    log.info(
        "analyze_complete",
        scanned=len(items),
        shown=len(ranked),
        interests=analyzer.interest_count,
        stale_sources=len(stale_sources),
        ai_analyzed=sum(1 for i in insights.values() if i.analysis is not None),
    )

    if json_output:
        output = {
            "items": [
                {
                    "id": scored.item.id,
                    "title": scored.item.title,
                    "link": scored.item.link,
                    "reason": recommendation_reason(scored.score),
                    **scored.score.to_dict(),
                    **_insight_fields(insights.get(scored.item.id)),
                }
                for scored in ranked
            ],
            "staleSources": [
                {"id": source.id, "name": source.name, "url": source.url}
                for source in stale_sources
            ],
        }
        click.echo(json.dumps(output, indent=2))
        return

    if not ranked:
        click.echo(f"No items published in the last {lookback} days.")

    for position, scored in enumerate(ranked, start=1):
        click.echo(f"{position}. {scored.item.title}")
        click.echo(f"   {scored.item.link}")
        click.echo(
            f"   overall={scored.score.overall_score:.3f} "
            f"interest={scored.score.interest_score:.3f} "
            f"content={scored.score.content_score:.3f}"
        )
        click.echo(f"   {recommendation_reason(scored.score)}")
        insight = insights.get(scored.item.id)
        if insight is not None and insight.analysis is not None:
            click.echo("   AI analysis:")
            for line in insight.analysis.splitlines():
                click.echo(f"     {line}")

    if stale_sources:
        click.echo(f"\nSources without updates in the last {lookback} days:")
        for position, source in enumerate(stale_sources, start=1):
            click.echo(f"{position}. {source.name}")


def _run_ai_analysis(
    settings: AppSettings, model: str | None, ranked: list[ScoredContent], log: Any
) -> dict[str, ArticleInsight]:
    """Analyze ranked items with the chat model, or warn and skip."""
    if not settings.ai_api_key:
        log.warning("ai_analysis_skipped", reason="no_api_key")
        click.echo(
            "Warning: OPENAI_API_KEY is not set; skipping AI analysis.", err=True
        )
        return {}

    client = ChatCompletionClient(
        api_key=settings.ai_api_key,
        base_url=settings.ai_base_url,
        model=model or settings.ai_model,
    )
    result = InsightProcessor(client).analyze([scored.item for scored in ranked])
    for insight in result.insights.values():
        if insight.error is not None:
            click.echo(
                f"Warning: Could not get AI analysis for {insight.content_id}: "
                f"{insight.error}",
                err=True,
            )
    return result.insights


def _insight_fields(insight: ArticleInsight | None) -> dict[str, str | None]:
    if insight is None:
        return {}
    return {"aiAnalysis": insight.analysis, "aiError": insight.error}


@cli.command("db-stats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def db_stats(ctx: CliContext, json_output: bool) -> None:
    """Display content database statistics."""
    _setup(ctx, "db-stats")

    with ContentStore(ctx.settings.db_path) as store:
        stats = store.get_stats()

    if json_output:
        click.echo(json.dumps(stats.model_dump(), indent=2))
        return

    click.echo("Content Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {stats.schema_version}")
    click.echo("")
    click.echo("Table Row Counts:")
    click.echo(f"  sources: {stats.sources}")
    click.echo(f"  contents: {stats.contents}")
    click.echo(f"  fetch_jobs: {stats.fetch_jobs}")
    click.echo(f"  feedback: {stats.feedback}")
    if stats.jobs_by_status:
        click.echo("")
        click.echo("Jobs by Status:")
        for status, count in sorted(stats.jobs_by_status.items()):
            click.echo(f"  {status}: {count}")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
