"""CLI entry point using Typer."""

import asyncio
import logging
import platform
import ssl
import sys
from pathlib import Path
from typing import List, Optional

import typer

from cert_watcher.chain import analyze_host
from cert_watcher.config import settings
from cert_watcher.exceptions import CertWatcherError
from cert_watcher.models import Severity
from cert_watcher.monitor import (
    classify_days_remaining,
    read_hostnames_from_file,
    run_expiry_check,
    worst_severity,
)
from cert_watcher.network import normalize_host
from cert_watcher.reporter import (
    generate_expiry_json_report,
    generate_expiry_report,
    generate_json_report,
    generate_text_report,
    set_color_output,
)

app = typer.Typer(help="TLS certificate chain inspector")

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(message)s",
)

logger = logging.getLogger(__name__)

EXIT_CODES = {Severity.OK: 0, Severity.WARN: 1, Severity.FAIL: 2}


def _set_verbose(verbose: bool) -> None:
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.getLogger("cert_watcher").setLevel(logging.DEBUG)


@app.command()
def analyze(
    target: str = typer.Argument(..., help="Hostname or URL (e.g., example.com or https://example.com)"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port"),
    timeout: float = typer.Option(settings.connect_timeout, "--timeout", "-t", help="Timeout in seconds"),
    threshold: int = typer.Option(
        settings.alert_threshold_days, "--threshold", help="Warn when the leaf expires in fewer days"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """
    Retrieve and analyze the certificate chain presented by a host.
    """
    _set_verbose(verbose)
    set_color_output(color)

    try:
        hostname = normalize_host(target)
        record = asyncio.run(
            analyze_host(hostname, port=port, timeout=timeout, max_depth=settings.max_chain_depth)
        )
    except CertWatcherError as e:
        logger.error(f"Error analyzing {target}: {e}")
        raise typer.Exit(code=EXIT_CODES[Severity.FAIL])

    if json_output:
        typer.echo(generate_json_report(record))
    else:
        typer.echo(generate_text_report(record, target=f"{hostname}:{port}", threshold_days=threshold))

    raise typer.Exit(code=EXIT_CODES[classify_days_remaining(record.days_remaining, threshold)])


@app.command()
def check(
    hosts: Optional[List[str]] = typer.Argument(None, help="Hostnames or URLs to check"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="File containing hostnames (one per line)"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port"),
    timeout: float = typer.Option(settings.connect_timeout, "--timeout", "-t", help="Timeout in seconds"),
    threshold: int = typer.Option(
        settings.alert_threshold_days, "--threshold", help="Alert when the leaf expires in fewer days"
    ),
    json_output: bool = typer.Option(False, "--json", "-j", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    color: bool = typer.Option(True, "--color/--no-color", help="Enable/disable colored output"),
):
    """
    Check leaf certificate expiry for several hosts, e.g. from a cron job.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn

    _set_verbose(verbose)
    set_color_output(color)

    hostnames: List[str] = list(hosts or [])
    if file:
        try:
            hostnames.extend(read_hostnames_from_file(file))
        except OSError as e:
            logger.error(f"Could not read {file}: {e}")
            raise typer.Exit(code=EXIT_CODES[Severity.FAIL])

    if not hostnames:
        logger.error("No hostnames given")
        raise typer.Exit(code=EXIT_CODES[Severity.FAIL])

    logger.info(f"Running certificate expiry check for {len(hostnames)} host(s)...")
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        transient=True,
    ) as progress:
        task = progress.add_task("Checking hosts...", total=len(hostnames))

        def progress_callback(current: int, total: int):
            progress.update(task, completed=current)

        results = asyncio.run(
            run_expiry_check(
                hostnames,
                threshold_days=threshold,
                port=port,
                timeout=timeout,
                max_depth=settings.max_chain_depth,
                progress_callback=progress_callback,
            )
        )

    if json_output:
        typer.echo(generate_expiry_json_report(results))
    else:
        typer.echo(generate_expiry_report(results))

    raise typer.Exit(code=EXIT_CODES[worst_severity(results)])


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(3001, "--port", "-p", help="Listen port"),
):
    """
    Run the HTTP API.
    """
    import uvicorn

    logger.info(f"Server is running on {host}:{port}")
    uvicorn.run("cert_watcher.api:app", host=host, port=port)


@app.command()
def diagnose():
    """
    Show the Python/OpenSSL environment and how certificate chains are retrieved.
    """
    if hasattr(ssl.SSLObject, "get_unverified_chain"):
        method = "get_unverified_chain() (full chain)"
    elif sys.version_info >= (3, 10):
        method = "_sslobj.get_unverified_chain() (full chain, private API)"
    else:
        method = "getpeercert() (leaf only)"

    typer.echo("=" * 70)
    typer.echo("TLS Environment")
    typer.echo("=" * 70)
    typer.echo(f"Operating System: {platform.system()} {platform.release()}")
    typer.echo(f"Python: {platform.python_version()} ({sys.executable})")
    typer.echo(f"OpenSSL: {ssl.OPENSSL_VERSION}")
    typer.echo(f"TLSv1.3 supported: {ssl.HAS_TLSv1_3}")
    typer.echo(f"Chain retrieval: {method}")
    typer.echo("=" * 70)


def main():
    app()


if __name__ == "__main__":
    main()
