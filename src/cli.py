"""
Command-line interface for the docket agent.

Runs the background alert-triage agent and exposes one-shot maintenance
commands against the configured durable store.

Usage:
    docket-agent run             # Run review and retry cycles until stopped
    docket-agent review-once     # Run a single review cycle
    docket-agent retry-failed    # Retry failed alert deliveries
    docket-agent alerts          # List stored alerts and review status
    docket-agent memory show     # Print agent memory
    docket-agent memory reset    # Restore default memory
    docket-agent memory consent  # Change memory consents
"""

import asyncio
import json
import signal
import sys

import click

from src.agent.runtime import AgentRuntime
from src.alerts.config import AgentConfig
from src.config.settings import get_settings
from src.observability.logging import bind_context, get_logger, setup_logging
from src.observability.metrics import get_metrics
from src.storage.durable_store import create_store


async def _build_runtime(config: AgentConfig | None = None) -> AgentRuntime:
    return await AgentRuntime.create(config=config, store=create_store(get_settings()))


def _require_persistent_store() -> None:
    """Refuse to run a one-shot command against a process-local store."""
    settings = get_settings()
    if settings.store_backend == "memory":
        raise click.ClickException(
            "STORE_BACKEND=memory keeps nothing between invocations; "
            "set STORE_BACKEND=file or STORE_BACKEND=redis to use this command."
        )


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Docket Agent - background alert triage and preference memory."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"

    setup_logging()


@main.command()
@click.option("--provider", type=click.Choice(["openai", "anthropic"]), default=None,
              help="AI provider for reviews")
@click.option("--review-interval", type=float, default=None, help="Seconds between review cycles")
@click.option("--retry-interval", type=float, default=None, help="Seconds between retry sweeps")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def run(
    provider: str | None,
    review_interval: float | None,
    retry_interval: float | None,
    metrics: bool,
    metrics_port: int | None,
) -> None:
    """Run the background agent until SIGINT/SIGTERM."""
    overrides: dict = {}
    if provider:
        overrides["ai_provider"] = provider
    if review_interval:
        overrides["alert_review_interval_ms"] = int(review_interval * 1000)
    if retry_interval:
        overrides["failed_alert_retry_interval_ms"] = int(retry_interval * 1000)
    config = AgentConfig(**overrides)

    async def _run():
        logger = get_logger(__name__)
        bind_context(component="agent", provider=config.ai_provider)

        runtime = await _build_runtime(config)
        if metrics:
            get_metrics().start_server(port=metrics_port)

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        runtime.start()
        logger.info("Agent running", review_interval_ms=config.alert_review_interval_ms)
        await stop_event.wait()
        logger.info("Shutting down agent")
        await runtime.close()

    asyncio.run(_run())


@main.command("review-once")
@click.option("--provider", type=click.Choice(["openai", "anthropic"]), default=None,
              help="AI provider for reviews")
@click.option("--max-alerts", type=int, default=None, help="Maximum alerts to review")
def review_once(provider: str | None, max_alerts: int | None) -> None:
    """Run a single review cycle and print its outcome."""
    _require_persistent_store()
    overrides: dict = {}
    if provider:
        overrides["ai_provider"] = provider
    if max_alerts:
        overrides["max_alerts_per_review"] = max_alerts
    config = AgentConfig(**overrides)

    async def _run():
        runtime = await _build_runtime(config)
        try:
            return await runtime.reviewer.review_alerts(config)
        finally:
            await runtime.close()

    result = asyncio.run(_run())
    click.echo(
        f"Eligible: {result.eligible}  Completed: {result.completed}  "
        f"Failed: {result.failed}  Persisted: {result.persisted}"
    )


@main.command("retry-failed")
@click.option("--limit", default=10, help="Maximum failed deliveries to retry")
def retry_failed(limit: int) -> None:
    """Retry failed alert deliveries."""
    _require_persistent_store()

    async def _run():
        runtime = await _build_runtime()
        try:
            resent = await runtime.dispatcher.retry_failed_alerts(limit)
            remaining = len(await runtime.dispatcher.get_failed_alerts())
            return resent, remaining
        finally:
            await runtime.close()

    resent, remaining = asyncio.run(_run())
    click.echo(f"Resent: {resent}  Remaining: {remaining}")


@main.command()
@click.option("--limit", default=20, help="Number of most recent alerts to show")
def alerts(limit: int) -> None:
    """List stored alerts with their AI review status."""
    _require_persistent_store()

    async def _run():
        runtime = await _build_runtime()
        try:
            return await runtime.alerts.read_alerts()
        finally:
            await runtime.close()

    stored = asyncio.run(_run())
    if not stored:
        click.echo("No stored alerts.")
        return

    for alert in stored[-limit:]:
        review = alert.ai_review.status if alert.ai_review else "none"
        click.echo(
            f"{alert.created_at:%Y-%m-%d %H:%M} [{alert.severity:<8}] "
            f"{alert.title} (review: {review})"
        )


@main.group()
def memory() -> None:
    """Inspect and manage agent memory."""
    _require_persistent_store()


@memory.command("show")
def memory_show() -> None:
    """Print the current agent memory as JSON."""

    async def _run():
        runtime = await _build_runtime()
        try:
            return runtime.get_memory()
        finally:
            await runtime.close()

    snapshot = asyncio.run(_run())
    click.echo(json.dumps(snapshot.model_dump(mode="json"), indent=2))


@memory.command("reset")
@click.confirmation_option(prompt="Discard all learned preferences?")
def memory_reset() -> None:
    """Restore default agent memory."""

    async def _run():
        runtime = await _build_runtime()
        try:
            await runtime.reset_memory()
        finally:
            await runtime.close()

    asyncio.run(_run())
    click.echo("Agent memory reset.")


@memory.command("consent")
@click.option("--remember/--forget", "remember", default=None,
              help="Allow or withdraw preference memory")
@click.option("--store-emails/--no-store-emails", "store_emails", default=None,
              help="Allow or withdraw storing email addresses")
def memory_consent(remember: bool | None, store_emails: bool | None) -> None:
    """Update memory consents. Withdrawing memory consent wipes memory."""
    changes = {
        k: v
        for k, v in {"remember_preferences": remember, "store_emails": store_emails}.items()
        if v is not None
    }
    if not changes:
        click.echo("No consent changes given.", err=True)
        sys.exit(2)

    async def _run():
        runtime = await _build_runtime()
        try:
            return await runtime.update_consents(**changes)
        finally:
            await runtime.close()

    updated = asyncio.run(_run())
    click.echo(json.dumps(updated.consents.model_dump(), indent=2))


if __name__ == "__main__":
    main()
