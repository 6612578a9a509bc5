"""Command-line interface for polling GBFS systems."""
from __future__ import annotations

import time
from pathlib import Path
from typing import Dict, List, Optional

import typer

from gbfsfeed import config as cfg
from gbfsfeed.exceptions import DiscoveryMalformed, DiscoveryUnavailable
from gbfsfeed.loaders import DiscoveryResolver, FeedFetcher
from gbfsfeed.logging_config import setup_logging
from gbfsfeed.manager import SubscriptionManager
from gbfsfeed.subscription import GBFSDelivery

app = typer.Typer(add_completion=False)


@app.command()
def poll(
    discovery_url: Optional[str] = typer.Argument(None, help="gbfs.json URL; omit when using --config."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Polling config JSON/YAML."),
    language: Optional[str] = typer.Option(None, "--language", help="Manifest language code."),
    header: List[str] = typer.Option([], "--header", "-H", help="Extra request header, 'Name: value'."),
    timeout: float = typer.Option(10.0, "--timeout", help="Per-request timeout in seconds."),
    validate: bool = typer.Option(False, "--validate/--no-validate", help="Validate raw feeds on delivery."),
    interval_seconds: Optional[float] = typer.Option(None, "--interval", help="Seconds between ticks."),
    iterations: int = typer.Option(1, "--iterations", help="Number of ticks (0 runs until interrupted)."),
    workers: Optional[int] = typer.Option(None, "--workers", help="Subscriptions ticked in parallel."),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines."),
) -> None:
    """Subscribe to one or more systems and print a line per delivery."""

    polling = cfg.load_polling_config(config_path)
    setup_logging(log_level or polling.log_level, json_logs or polling.json_logs)
    subscriptions = list(polling.subscriptions)
    if discovery_url is not None:
        subscriptions.append(
            cfg.SubscriptionOptions(
                discovery_url=discovery_url,
                headers=_parse_headers(header),
                language_code=language,
                request_timeout=timeout,
                enable_validation=validate,
            )
        )
    if not subscriptions:
        typer.echo("Nothing to poll: pass a discovery URL or a config with subscriptions.", err=True)
        raise typer.Exit(code=2)

    manager_config = polling.manager
    if workers is not None:
        manager_config = manager_config.model_copy(update={"max_workers": workers})
    interval = interval_seconds if interval_seconds is not None else manager_config.tick_interval_seconds

    manager = SubscriptionManager(manager_config)
    for options in subscriptions:
        manager.subscribe(options, _printer(options.discovery_url))
    typer.echo(f"Polling {len(subscriptions)} system(s) every {interval:g}s")
    try:
        tick = 0
        while iterations == 0 or tick < iterations:
            manager.tick()
            tick += 1
            if iterations == 0 or tick < iterations:
                time.sleep(max(interval, 0.0))
    except KeyboardInterrupt:
        typer.echo("Interrupted.")
    finally:
        manager.close()


@app.command()
def discover(
    discovery_url: str = typer.Argument(..., help="gbfs.json URL."),
    language: Optional[str] = typer.Option(None, "--language"),
    header: List[str] = typer.Option([], "--header", "-H"),
    timeout: float = typer.Option(10.0, "--timeout"),
) -> None:
    """Fetch a discovery manifest and list the feeds it declares."""

    fetcher = FeedFetcher(headers=_parse_headers(header), timeout=timeout)
    resolver = DiscoveryResolver(discovery_url, fetcher, language_code=language)
    try:
        manifest = resolver.resolve(time.time())
    except (DiscoveryUnavailable, DiscoveryMalformed) as err:
        typer.echo(str(err), err=True)
        raise typer.Exit(code=1)
    finally:
        fetcher.close()
    languages = manifest.document.languages()
    typer.echo(f"Languages: {', '.join(languages) if languages else '(none, GBFS 3.x layout)'}")
    typer.echo(f"Feeds for {manifest.language or 'default'}:")
    for feed_type, url in manifest.feeds:
        typer.echo(f"  {feed_type.value:<22} {url}")


def _printer(label: str):
    def consume(delivery: GBFSDelivery) -> None:
        names = ", ".join(sorted(feed_type.value for feed_type in delivery.feeds))
        line = f"[{label}] {len(delivery.feeds)} feeds: {names}"
        if delivery.validation_error is not None:
            line += f" | validation failed: {delivery.validation_error}"
        elif delivery.validation_result is not None:
            summary = getattr(delivery.validation_result, "summary", None)
            if summary is not None:
                line += f" | validation errors: {summary.errors_count}"
        typer.echo(line)

    return consume


def _parse_headers(values: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for value in values:
        separator = ":" if ":" in value else "="
        name, found, content = value.partition(separator)
        if not found or not name.strip():
            raise typer.BadParameter(f"Expected 'Name: value', got {value!r}", param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


if __name__ == "__main__":
    app()
