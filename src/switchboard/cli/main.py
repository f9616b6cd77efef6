"""Switchboard CLI — inspect capabilities and invoke provider actions."""

from __future__ import annotations

import json
from typing import Any

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="switchboard",
    help="Switchboard — integration gateway for the agent dashboard",
    no_args_is_help=True,
    add_completion=False,
)

console = Console()

DEFAULT_URL = "http://localhost:8000"


def _get_client(base_url: str) -> httpx.Client:
    return httpx.Client(base_url=base_url, timeout=120.0)


def parse_fields(fields: list[str], payload_json: str = "") -> dict[str, Any]:
    """Merge a JSON payload with ``key=value`` overrides.

    Values that parse as JSON (numbers, booleans, objects) are decoded;
    anything else is kept as a plain string.
    """
    payload: dict[str, Any] = {}
    if payload_json:
        try:
            decoded = json.loads(payload_json)
        except ValueError as exc:
            raise typer.BadParameter(f"--payload is not valid JSON: {exc}") from exc
        if not isinstance(decoded, dict):
            raise typer.BadParameter("--payload must be a JSON object")
        payload.update(decoded)

    for item in fields:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got: {item}")
        try:
            payload[key.strip()] = json.loads(value)
        except ValueError:
            payload[key.strip()] = value
    return payload


def _request(client: httpx.Client, method: str, path: str, base_url: str, **kwargs: Any) -> httpx.Response:
    try:
        return client.request(method, path, **kwargs)
    except httpx.ConnectError:
        console.print(f"[red]✗[/red] Switchboard is not running at {base_url}")
        console.print("Start it with: switchboard serve")
        raise typer.Exit(1)


@app.command()
def health(
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="SWITCHBOARD_URL"),
) -> None:
    """Check server health."""
    client = _get_client(base_url)
    resp = _request(client, "GET", "/health", base_url)
    if resp.status_code >= 400:
        console.print(f"[red]Error {resp.status_code}:[/red] {resp.text}")
        raise typer.Exit(1)

    data = resp.json()
    table = Table(title="Switchboard Health", border_style="blue")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("Status", f"[green]{data['status']}[/green]")
    table.add_row("Version", data.get("version", "?"))
    table.add_row("Uptime", f"{data.get('uptime_seconds', 0)}s")
    table.add_row("Model", data.get("model", "?"))
    table.add_row("Providers", ", ".join(data.get("providers", [])))
    table.add_row("Capabilities", "probed" if data.get("capabilities") else "[dim]not probed yet[/dim]")

    console.print()
    console.print(table)
    console.print()


@app.command()
def capabilities(
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Drop the cached snapshot and re-probe"),
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="SWITCHBOARD_URL"),
    raw: bool = typer.Option(False, "--raw", help="Output raw JSON response"),
) -> None:
    """Show which providers are currently usable."""
    client = _get_client(base_url)
    if refresh:
        resp = _request(client, "POST", "/v1/capabilities/refresh", base_url)
    else:
        resp = _request(client, "GET", "/v1/capabilities", base_url)
    if resp.status_code >= 400:
        console.print(f"[red]Error {resp.status_code}:[/red] {resp.text}")
        raise typer.Exit(1)

    data = resp.json()
    if raw:
        console.print_json(json.dumps(data, indent=2))
        return

    table = Table(title="Provider Capabilities", border_style="blue")
    table.add_column("Provider", style="cyan")
    table.add_column("Available")
    for provider, available in data.get("providers", {}).items():
        table.add_row(provider, "[green]✓ yes[/green]" if available else "[red]✗ no[/red]")

    console.print()
    console.print(table)
    console.print(f"[dim]checked at {data.get('checked_at', '?')}[/dim]")
    console.print()


@app.command()
def providers(
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="SWITCHBOARD_URL"),
) -> None:
    """List providers, their actions and required fields."""
    client = _get_client(base_url)
    resp = _request(client, "GET", "/v1/providers", base_url)
    if resp.status_code >= 400:
        console.print(f"[red]Error {resp.status_code}:[/red] {resp.text}")
        raise typer.Exit(1)

    table = Table(title="Providers", border_style="blue")
    table.add_column("Provider", style="cyan")
    table.add_column("Action")
    table.add_column("Required fields")
    table.add_column("Configured")
    for entry in resp.json():
        for index, action in enumerate(entry["actions"]):
            name = action["name"]
            if name == entry.get("default_action"):
                name += " [dim](default)[/dim]"
            table.add_row(
                entry["provider"] if index == 0 else "",
                name,
                ", ".join(action["required"]) or "[dim]—[/dim]",
                ("[green]yes[/green]" if entry["configured"] else "[red]no[/red]") if index == 0 else "",
            )

    console.print()
    console.print(table)
    console.print()


@app.command()
def invoke(
    provider: str = typer.Argument(..., help="Provider name, e.g. voice-call"),
    action: str = typer.Argument("", help="Action name (omit for the provider default)"),
    agent_id: str = typer.Option(..., "--agent", "-a", help="Calling agent id"),
    field: list[str] = typer.Option([], "--field", "-f", help="Payload field as key=value (repeatable)"),
    payload_json: str = typer.Option("", "--payload", "-p", help="Payload as a JSON object"),
    base_url: str = typer.Option(DEFAULT_URL, "--url", "-u", envvar="SWITCHBOARD_URL"),
    raw: bool = typer.Option(False, "--raw", help="Output raw JSON response"),
) -> None:
    """Dispatch one action through the gateway."""
    payload = parse_fields(field, payload_json)
    body: dict[str, Any] = {"provider": provider, "agentId": agent_id, "payload": payload}
    if action:
        body["action"] = action

    client = _get_client(base_url)
    resp = _request(client, "POST", "/v1/actions", base_url, json=body)
    data = resp.json()

    if raw:
        console.print_json(json.dumps(data, indent=2))
    elif data.get("success"):
        console.print(Panel(json.dumps(data.get("data"), indent=2), title=f"✓ {provider}", border_style="green"))
    else:
        console.print(Panel(str(data.get("error")), title=f"✗ {provider}", border_style="red"))

    if not data.get("success"):
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
) -> None:
    """Start the Switchboard server."""
    import uvicorn

    console.print(Panel("Starting Switchboard server...", border_style="blue"))
    uvicorn.run(
        "switchboard.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def version() -> None:
    """Show Switchboard version."""
    from switchboard import __version__

    console.print(f"Switchboard v{__version__}")


if __name__ == "__main__":
    app()
