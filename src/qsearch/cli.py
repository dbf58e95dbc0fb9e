from __future__ import annotations

from dataclasses import dataclass
import json
import os
from pathlib import Path
import signal
import subprocess
import sys
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from qsearch.config import default_config_path, load_config, write_default_config
from qsearch.errors import QuickSearchError, UnknownDomainError
from qsearch.mcp.server_http import run_http_server
from qsearch.mcp.server_stdio import run_stdio_server
from qsearch.models import Domain
from qsearch.service import QuickSearchService, parse_domain
from qsearch.util.logging import setup_logging, use_color

app = typer.Typer(help="qsearch: device-local quick search")
recent_app = typer.Typer(help="Manage recent activity")
app.add_typer(recent_app, name="recent")


@dataclass(slots=True)
class AppState:
    service: QuickSearchService
    console: Console
    config_path: Path


def _print_banner(console: Console, show_banner: bool) -> None:
    if not show_banner:
        return
    console.print()
    console.print("[bold cyan]  q s e a r c h[/bold cyan]")
    console.print("[dim]apps • contacts • files • settings • shortcuts[/dim]")
    console.print()


def _state(ctx: typer.Context) -> AppState:
    st = ctx.obj
    if not isinstance(st, AppState):
        raise RuntimeError("app state not initialized")
    return st


def _domain(st: AppState, name: str) -> Domain:
    try:
        return parse_domain(name)
    except UnknownDomainError as exc:
        st.console.print(f"[red]{exc}[/red] (expected one of: {', '.join(d.value for d in Domain)})")
        raise typer.Exit(1) from exc


def _emit_obj(console: Console, obj: dict, json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(obj, indent=2))
        return
    for k, v in obj.items():
        console.print(f"[bold]{k}[/bold]: {v}")


def _entity_line(idx: int, row: dict[str, Any]) -> str:
    marks = []
    if row.get("pinned"):
        marks.append("[yellow]pinned[/yellow]")
    if row.get("nickname"):
        marks.append(f"[blue]aka {row['nickname']}[/blue]")
    if row.get("priority"):
        marks.append(f"[dim]{str(row['priority']).lower()}[/dim]")
    suffix = f"  {' '.join(marks)}" if marks else ""
    return f"[bold cyan]{idx}.[/bold cyan] [white]{row.get('name', '')}[/white]  [dim]{row.get('key', '')}[/dim]{suffix}"


def _emit_domains(console: Console, domains: list[dict[str, Any]], show_empty: bool = False) -> None:
    printed = False
    for block in domains:
        pinned = block.get("pinned") or []
        results = block.get("results") or []
        if not pinned and not results and not show_empty:
            continue
        printed = True
        console.print(f"[bold magenta]{block.get('domain', '')}[/bold magenta]")
        for idx, row in enumerate(pinned, start=1):
            console.print("   " + _entity_line(idx, row))
        for idx, row in enumerate(results, start=len(pinned) + 1):
            console.print("   " + _entity_line(idx, row))
    if not printed:
        console.print("[dim]no results[/dim]")


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[Path | None, typer.Option("--config", help="Config YAML path")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose logging")] = False,
) -> None:
    setup_logging(verbose)
    cfg_path = config.expanduser() if config else default_config_path()
    if not cfg_path.exists():
        write_default_config(cfg_path)
    cfg = load_config(cfg_path)
    svc = QuickSearchService(cfg)
    color_on = use_color()
    console = Console(color_system="auto" if color_on else None, force_terminal=color_on)
    _print_banner(console, show_banner=cfg.ui.show_banner)
    ctx.obj = AppState(
        service=svc,
        console=console,
        config_path=cfg_path,
    )


@app.command("init-config")
def init_config(
    ctx: typer.Context,
    path: Annotated[Path | None, typer.Option("--path", help="Write config to this path")] = None,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    written = write_default_config(path.expanduser() if path else None)
    payload = {"config_path": str(written), "catalog_path": str(st.service.config.catalog_path)}
    if json_out:
        typer.echo(json.dumps(payload, indent=2))
        return
    st.console.print(f"[green]config:[/green] {written}")
    st.console.print(f"[green]catalog:[/green] {payload['catalog_path']}")


@app.command("search")
def search_cmd(
    ctx: typer.Context,
    query: str,
    domain: Annotated[list[str] | None, typer.Option("--domain", "-d", help="Limit to a domain (repeatable)")] = None,
    record: Annotated[bool, typer.Option("--record/--no-record", help="Add the query to recent activity")] = False,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    selected = [_domain(st, d).value for d in domain] if domain else None
    response = st.service.search_all(query, domains=selected)
    if record:
        st.service.record_recent("query", query)
    if json_out:
        typer.echo(json.dumps(response, indent=2))
        return
    _emit_domains(st.console, response["domains"])


@app.command("pinned")
def pinned_cmd(
    ctx: typer.Context,
    domain: str,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    state = st.service.pinned_and_excluded(_domain(st, domain))
    if json_out:
        typer.echo(json.dumps(state, indent=2))
        return
    table = Table(title=f"{state['domain']} customizations")
    table.add_column("state")
    table.add_column("name")
    table.add_column("key")
    table.add_column("nickname")
    for row in state["pinned"]:
        table.add_row("pinned", row["name"], row["key"], row.get("nickname") or "")
    for row in state["excluded"]:
        table.add_row("excluded", row["name"], row["key"], row.get("nickname") or "")
    st.console.print(table)


@app.command("pin")
def pin_cmd(ctx: typer.Context, domain: str, key: str) -> None:
    st = _state(ctx)
    if not st.service.pin(_domain(st, domain), key):
        st.console.print(f"[yellow]{key} is excluded; run `qsearch include {domain} {key}` first[/yellow]")
        raise typer.Exit(1)
    st.console.print(f"[green]pinned:[/green] {key}")


@app.command("unpin")
def unpin_cmd(ctx: typer.Context, domain: str, key: str) -> None:
    st = _state(ctx)
    st.service.unpin(_domain(st, domain), key)
    st.console.print(f"[green]unpinned:[/green] {key}")


@app.command("exclude")
def exclude_cmd(ctx: typer.Context, domain: str, key: str) -> None:
    st = _state(ctx)
    st.service.exclude(_domain(st, domain), key)
    st.console.print(f"[green]excluded:[/green] {key}")


@app.command("include")
def include_cmd(ctx: typer.Context, domain: str, key: str) -> None:
    st = _state(ctx)
    st.service.include(_domain(st, domain), key)
    st.console.print(f"[green]included:[/green] {key}")


@app.command("nickname")
def nickname_cmd(
    ctx: typer.Context,
    domain: str,
    key: str,
    nickname: Annotated[str | None, typer.Argument(help="New nickname; omit to clear")] = None,
) -> None:
    st = _state(ctx)
    st.service.set_nickname(_domain(st, domain), key, nickname)
    if nickname and nickname.strip():
        st.console.print(f"[green]nickname:[/green] {key} -> {nickname.strip()}")
    else:
        st.console.print(f"[green]nickname cleared:[/green] {key}")


@app.command("clear-excluded")
def clear_excluded_cmd(ctx: typer.Context, domain: str) -> None:
    st = _state(ctx)
    st.service.clear_all_excluded(_domain(st, domain))
    st.console.print(f"[green]cleared excluded {domain}[/green]")


@app.command("channel")
def channel_cmd(
    ctx: typer.Context,
    contact_id: int,
    number: Annotated[str | None, typer.Option("--number", help="Scope to one phone number")] = None,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    try:
        result = st.service.channel(contact_id, phone_number=number)
    except KeyError as exc:
        st.console.print(f"[red]{exc.args[0]}[/red]")
        raise typer.Exit(1) from exc
    _emit_obj(st.console, result, json_out)


@app.command("status")
def status_cmd(
    ctx: typer.Context,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    try:
        status = st.service.status()
    except QuickSearchError as exc:
        st.console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    _emit_obj(st.console, status, json_out)


@recent_app.command("list")
def recent_list_cmd(
    ctx: typer.Context,
    json_out: Annotated[bool, typer.Option("--json")] = False,
) -> None:
    st = _state(ctx)
    rows = st.service.recent()
    if json_out:
        typer.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        st.console.print("[dim]no recent activity[/dim]")
        return
    table = Table(title="recent")
    table.add_column("kind")
    table.add_column("value")
    for row in rows:
        table.add_row(row["kind"], row["value"])
    st.console.print(table)


@recent_app.command("rm")
def recent_rm_cmd(
    ctx: typer.Context,
    kind: Annotated[str, typer.Argument(help="query|contact|file|setting|app_shortcut")],
    value: str,
) -> None:
    st = _state(ctx)
    try:
        st.service.delete_recent(kind, value)
    except ValueError as exc:
        st.console.print(f"[red]unknown recent kind: {kind}[/red]")
        raise typer.Exit(1) from exc
    st.console.print(f"[green]removed:[/green] {kind}:{value}")


@recent_app.command("clear")
def recent_clear_cmd(ctx: typer.Context) -> None:
    st = _state(ctx)
    st.service.clear_recent()
    st.console.print("[green]recent activity cleared[/green]")


@app.command("mcp")
def mcp_cmd(
    ctx: typer.Context,
    action: Annotated[str, typer.Argument(help="start|stop")] = "start",
    http: Annotated[bool, typer.Option("--http", help="Use HTTP transport")] = False,
    daemon: Annotated[bool, typer.Option("--daemon", help="Run HTTP server as daemon")] = False,
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port")] = 8181,
    serve_only: Annotated[bool, typer.Option("--serve-only", hidden=True)] = False,
) -> None:
    st = _state(ctx)
    pid_path = st.service.config.pid_path

    if action == "stop":
        if not pid_path.exists():
            typer.echo("not running")
            raise typer.Exit(0)
        pid = int(pid_path.read_text().strip())
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            pass
        pid_path.unlink(missing_ok=True)
        typer.echo(f"stopped pid {pid}")
        raise typer.Exit(0)

    if daemon and not http:
        raise typer.BadParameter("--daemon currently requires --http")

    if daemon and not serve_only:
        cmd = [
            sys.executable,
            "-m",
            "qsearch.cli",
            "--config",
            str(st.config_path),
            "mcp",
            "start",
            "--http",
            "--host",
            host,
            "--port",
            str(port),
            "--serve-only",
        ]
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
        pid_path.write_text(str(proc.pid))
        typer.echo(f"started daemon pid={proc.pid} http://{host}:{port}")
        raise typer.Exit(0)

    if http:
        code = run_http_server(st.service, host=host, port=port)
        raise typer.Exit(code)

    code = run_stdio_server(st.service)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
