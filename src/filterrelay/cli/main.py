"""filterrelay CLI — run the relay and talk to a running one.

Usage:
    filterrelay serve --port 3000                          # Run the relay (uvicorn)
    filterrelay publish orders -f business_id=1 -e order.created -p '{"id": 7}'
    filterrelay match orders -f business_id=1              # Who would receive it?
    filterrelay stats                                      # Connections per scope
    filterrelay health
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Any, Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url(override: Optional[str] = None) -> str:
    return (override or os.environ.get("FILTERRELAY_API_URL", DEFAULT_API_URL)).rstrip("/")


def _client(api_url: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the relay."""
    return httpx.AsyncClient(base_url=_api_url(api_url), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def parse_filter_pairs(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Turn ("business_id=1", "region=eu") into {"business_id": 1, "region": "eu"}.

    Values that read as JSON numbers are sent as numbers, everything else
    as text. The relay itself never coerces: "1" and 1 are different values.
    """
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--filter")
        result[key] = _coerce(value)
    return result


def _coerce(value: str) -> Any:
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return value
    if isinstance(parsed, (int, float)) and not isinstance(parsed, bool):
        return parsed
    return value


async def _request(api_url: Optional[str], method: str, path: str, **kwargs) -> httpx.Response:
    async with _client(api_url) as client:
        return await client.request(method, f"/api/v1{path}", **kwargs)


def _call(ctx: click.Context, method: str, path: str, **kwargs) -> dict:
    try:
        resp = _run(_request(ctx.obj["api_url"], method, path, **kwargs))
    except httpx.HTTPError as e:
        click.secho(f"Cannot reach relay at {_api_url(ctx.obj['api_url'])}: {e}", fg="red", err=True)
        sys.exit(1)
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        click.secho(f"Error {resp.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)
    return resp.json()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@click.group()
@click.option("--api-url", default=None, help="Relay base URL (default: $FILTERRELAY_API_URL or http://localhost:3000)")
@click.pass_context
def cli(ctx: click.Context, api_url: Optional[str]):
    """filterrelay — filter-addressed publish/subscribe relay."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url


@cli.command()
@click.option("--host", default=None, help="Bind address (default: FILTERRELAY_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: FILTERRELAY_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the relay server."""
    import uvicorn

    from filterrelay.config import settings

    uvicorn.run(
        "filterrelay.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command()
@click.argument("scope", required=False)
@click.option("--filter", "-f", "filters", multiple=True, help="key=value criteria (repeatable)")
@click.option("--event", "-e", "event_type", default="notification", show_default=True, help="Event type delivered to clients")
@click.option("--payload", "-p", default="{}", help="JSON object delivered as the event data")
@click.pass_context
def publish(ctx: click.Context, scope: Optional[str], filters: tuple[str, ...], event_type: str, payload: str):
    """Publish an event to every subscriber matching the filter."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--payload")
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--payload")

    body = {"filter": parse_filter_pairs(filters), "payload": data, "event_type": event_type}
    if scope:
        body["scope"] = scope
    result = _call(ctx, "POST", "/publish", json=body)
    click.echo(
        f"{result['event_type']}: delivered {result['delivered']}/{result['attempted']} "
        f"(filter {json.dumps(result['filter'])})"
    )


@cli.command()
@click.argument("scope", required=False)
@click.option("--filter", "-f", "filters", multiple=True, help="key=value criteria (repeatable)")
@click.pass_context
def match(ctx: click.Context, scope: Optional[str], filters: tuple[str, ...]):
    """Show which subscribers a publish would reach (sends nothing)."""
    body: dict[str, Any] = {"filter": parse_filter_pairs(filters)}
    if scope:
        body["scope"] = scope
    result = _call(ctx, "POST", "/subscribers/match", json=body)
    click.echo(f"{result['matching_subscribers']} matching subscriber(s)")
    for sub in result["subscribers"]:
        click.echo(f"  {sub['id']}  {json.dumps(sub['filter'])}")


@cli.command()
@click.pass_context
def stats(ctx: click.Context):
    """Connected subscribers per scope."""
    click.echo(_pretty_json(_call(ctx, "GET", "/stats")))


@cli.command()
@click.pass_context
def health(ctx: click.Context):
    """Relay health."""
    click.echo(_pretty_json(_call(ctx, "GET", "/health")))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
