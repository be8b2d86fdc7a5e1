"""
SIP Harness CLI.

Commands:
- run: Log in and run a sequence of transactions against a server
- transactions: List supported transactions
- parse: Decode a raw SIP2 message
- config: init | validate | dump
- version: Show version
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..config import (
    ErrorPolicy,
    HarnessConfig,
    LoginPolicy,
    OutputMode,
    RunStep,
    generate_default_config,
    load_config,
    parse_step,
)
from ..core.errors import SipError, TransportConnectionError
from ..core.report import RunReport
from ..protocol.fields import MESSAGE_TERMINATOR
from ..protocol.message import parse as parse_message
from ..session import Reporter, SessionDriver, SocketTransport
from ..transactions import ALIASES, CATALOG


__version__ = "1.0.0"


app = typer.Typer(
    name="sip-harness",
    help="Exercise and validate SIP2 servers",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _steps(messages: List[str], repeat: int, delay: float) -> List[RunStep]:
    """Directives without an explicit repeat or delay take the global ones."""
    steps = []
    for text in messages:
        step = parse_step(text)
        given = text.count(':')
        if given < 1:
            step = replace(step, repeat=repeat)
        if given < 2:
            step = replace(step, delay=delay)
        steps.append(step)
    return steps


def _override(section, **values):
    """Replace only the values that were actually given."""
    given = {k: v for k, v in values.items() if v is not None}
    return replace(section, **given) if given else section


def _print_summary(report: RunReport) -> None:
    """Print summary table."""
    table = Table(title="Summary")
    table.add_column("Transaction")
    table.add_column("Count", justify="right")
    table.add_column("Mean", justify="right")
    table.add_column("P50", justify="right")
    table.add_column("P99", justify="right")
    table.add_column("Max", justify="right")

    for name, stats in report.per_transaction().items():
        table.add_row(
            name,
            str(stats.count),
            f"{stats.mean_ms:.2f} ms",
            f"{stats.p50_ms:.2f} ms",
            f"{stats.p99_ms:.2f} ms",
            f"{stats.max_ms:.2f} ms",
        )

    total = report.latency
    table.add_row(
        "[bold]all[/]",
        str(total.count),
        f"{total.mean_ms:.2f} ms",
        f"{total.p50_ms:.2f} ms",
        f"{total.p99_ms:.2f} ms",
        f"{total.max_ms:.2f} ms",
    )

    console.print()
    console.print(table)
    console.print(f"Duration: {report.duration_seconds:.3f}s  Failures: {len(report.failures)}")


# === RUN COMMAND ===

@app.command()
def run(
    message: List[str] = typer.Option([], "-m", "--message", help="Transaction to run: name[:repeat[:delay]] (repeatable)"),
    host: Optional[str] = typer.Option(None, "-a", "--address", help="Server host"),
    port: Optional[int] = typer.Option(None, "-p", "--port", help="Server port"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Socket timeout in seconds"),
    username: Optional[str] = typer.Option(None, "-u", "--username", help="Login user id"),
    password: Optional[str] = typer.Option(None, "-w", "--password", envvar="SIP_PASSWORD", help="Login password"),
    location: Optional[str] = typer.Option(None, "-l", "--location", help="Location code"),
    institution: Optional[str] = typer.Option(None, "-i", "--institution", help="Institution id"),
    terminal_password: Optional[str] = typer.Option(None, "--terminal-password"),
    item_barcode: Optional[str] = typer.Option(None, "--item-barcode", help="Item identifier"),
    patron_barcode: Optional[str] = typer.Option(None, "--patron-barcode", help="Patron identifier"),
    patron_password: Optional[str] = typer.Option(None, "--patron-password"),
    summary: Optional[str] = typer.Option(None, "--summary", help="10-character patron information summary"),
    cancel: Optional[bool] = typer.Option(None, "--cancel/--no-cancel", help="Send the cancel flag"),
    repeat: int = typer.Option(1, "-r", "--repeat", min=1, help="Default repeat count"),
    delay: float = typer.Option(0.0, "-d", "--delay", min=0.0, help="Default delay between requests (s)"),
    output: Optional[OutputMode] = typer.Option(None, "-o", "--output", help="Per-transaction output"),
    continue_on_error: bool = typer.Option(False, "--continue-on-error", help="Record failures and keep going"),
    abort_on_login_failure: bool = typer.Option(False, "--abort-on-login-failure", help="Stop if login is refused"),
    error_detection: bool = typer.Option(False, "--error-detection", help="Send AY/AZ sequence and checksum"),
    report_path: Optional[Path] = typer.Option(None, "--report", help="Write JSON run report"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
):
    """Log in and run transactions over one connection."""
    _setup_logging(verbose)

    try:
        cfg = HarnessConfig.load(config_path) if config_path else load_config()
        steps = _steps(message, repeat, delay) if message else list(cfg.run)
    except (OSError, SipError) as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise typer.Exit(1)

    cfg = replace(
        cfg,
        server=_override(cfg.server, host=host, port=port, timeout=timeout),
        login=_override(cfg.login, username=username, password=password, location=location),
        defaults=_override(
            cfg.defaults,
            institution=institution,
            terminal_password=terminal_password,
            item_id=item_barcode,
            patron_id=patron_barcode,
            patron_password=patron_password,
            summary=summary,
            cancel=cancel,
        ),
        protocol=_override(cfg.protocol, error_detection=error_detection or None),
        output=_override(cfg.output, mode=output),
        policy=_override(
            cfg.policy,
            on_error=ErrorPolicy.CONTINUE if continue_on_error else None,
            on_login_failure=LoginPolicy.ABORT if abort_on_login_failure else None,
        ),
        run=tuple(steps),
    )

    errors = cfg.validate()
    if not steps:
        errors.append("No transactions to run (use -m/--message)")
    if errors:
        err_console.print("[red]Invalid configuration:[/]")
        for e in errors:
            err_console.print(f"  - {e}")
        raise typer.Exit(1)

    transport = SocketTransport(
        cfg.server.host,
        cfg.server.port,
        timeout=cfg.server.timeout,
        encoding=cfg.server.encoding,
        error_detection=cfg.protocol.error_detection,
    )
    driver = SessionDriver(cfg, transport, Reporter(cfg.output.mode))

    failed = False
    try:
        driver.session()
    except TransportConnectionError as e:
        err_console.print(f"[red]Connection failed:[/] {escape(str(e))}")
        raise typer.Exit(1)
    except SipError as e:
        err_console.print(f"[red]Run aborted:[/] {escape(str(e))}")
        failed = True

    report = driver.report
    _print_summary(report)

    if report_path:
        report_path.write_text(report.to_json(indent=2))
        console.print(f"[green]Report written to:[/] {report_path}")

    if failed or report.failures:
        raise typer.Exit(1)


# === TRANSACTIONS COMMAND ===

@app.command()
def transactions():
    """List supported transactions."""
    aliases = {}
    for alias, name in ALIASES.items():
        aliases.setdefault(name, []).append(alias)

    table = Table(title="Transactions")
    table.add_column("Name", style="cyan")
    table.add_column("Request", justify="center")
    table.add_column("Response", justify="center")
    table.add_column("Aliases")
    table.add_column("Description")

    for name, transaction in CATALOG.items():
        table.add_row(
            name,
            transaction.code,
            transaction.response_code,
            ', '.join(aliases.get(name, [])),
            transaction.description,
        )

    console.print(table)


# === PARSE COMMAND ===

@app.command("parse")
def parse_cmd(
    raw: str = typer.Argument(..., help="Raw message; the trailing carriage return is optional"),
):
    """Decode a raw SIP2 message and display its fields."""
    if not raw.endswith(MESSAGE_TERMINATOR):
        raw += MESSAGE_TERMINATOR

    try:
        msg = parse_message(raw)
    except SipError as e:
        err_console.print(f"[red]Cannot parse:[/] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(msg.to_display(), markup=False, highlight=False)


# === CONFIG COMMAND ===

@app.command("config")
def config_cmd(
    action: str = typer.Argument(..., help="Action: init|validate|dump"),
    path: Optional[Path] = typer.Argument(None, help="Config file path"),
):
    """Configuration management."""
    if action == "init":
        console.print(generate_default_config(), markup=False, highlight=False)

    elif action == "validate":
        if not path:
            console.print("[red]Path required for validate[/]")
            raise typer.Exit(1)
        try:
            cfg = HarnessConfig.load(path)
        except (OSError, SipError) as e:
            console.print(f"[red]Error:[/] {escape(str(e))}")
            raise typer.Exit(1)
        errors = cfg.validate()
        if errors:
            console.print("[red]Invalid configuration:[/]")
            for e in errors:
                console.print(f"  - {e}")
            raise typer.Exit(1)
        console.print(f"[green]Valid:[/] {path}")

    elif action == "dump":
        try:
            cfg = HarnessConfig.load(path) if path else load_config()
        except (OSError, SipError) as e:
            console.print(f"[red]Error:[/] {escape(str(e))}")
            raise typer.Exit(1)
        console.print(cfg.redacted().to_yaml(), markup=False, highlight=False)

    else:
        console.print(f"[red]Unknown action:[/] {action}")
        console.print("Valid actions: init, validate, dump")
        raise typer.Exit(1)


# === VERSION COMMAND ===

@app.command()
def version():
    """Show version information."""
    console.print(f"[bold blue]SIP Harness v{__version__}[/]")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
