"""CLI commands for SSO authentication."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from saws.commands.common import build_pipeline
from saws.config import get_config
from saws.models.profiles import validate_region, validate_start_url
from saws.utils.cache import TokenCache
from saws.utils.errors import SawsError, handle_error
from saws.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="auth", help="Log in to IAM Identity Center and manage the cached token.")


@app.command()
def login(
    start_url: Annotated[str | None, typer.Option("--start-url", "-u", help="SSO start URL")] = None,
    region: Annotated[str | None, typer.Option("--region", "-r", help="SSO region")] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Ignore a cached token")] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Authenticate with the device authorization flow and cache the token."""
    try:
        config = get_config()
        start_url = config.resolve_start_url(start_url)
        region = config.resolve_region(region)
        validate_start_url(start_url)
        validate_region(region)
    except (SawsError, ValueError) as e:
        handle_error(e, as_json=output == OutputFormat.JSON)
        raise typer.Exit(1)

    pipeline, close = build_pipeline(config, region)
    try:
        console.print(f"Authenticating with [bold]{start_url}[/bold]...", style="yellow")
        token = pipeline.ensure_token(start_url, region, force=force)
        result = {
            "status": "authenticated",
            "start_url": start_url,
            "region": region,
            "expires_at": str(token.expires_at),
        }
        print_output(result, output, title="Authentication")
    except KeyboardInterrupt:
        pipeline.cancel()
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except SawsError as e:
        handle_error(e, as_json=output == OutputFormat.JSON)
        raise typer.Exit(1)
    finally:
        close()


@app.command()
def status(
    start_url: Annotated[str | None, typer.Option("--start-url", "-u", help="SSO start URL")] = None,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """Show the cached token status for a start URL."""
    try:
        start_url = get_config().resolve_start_url(start_url)
    except (SawsError, ValueError) as e:
        handle_error(e, as_json=output == OutputFormat.JSON)
        raise typer.Exit(1)

    token_status = TokenCache().status(start_url)
    result = {
        "start_url": start_url,
        "has_token": token_status.has_token,
        "is_expired": token_status.is_expired,
        "expires_at": str(token_status.expires_at) if token_status.expires_at else "N/A",
        "seconds_remaining": token_status.seconds_remaining or 0,
    }
    print_output(result, output, title="Token Status")


@app.command()
def logout(
    start_url: Annotated[str | None, typer.Option("--start-url", "-u", help="SSO start URL")] = None,
) -> None:
    """Delete the cached token for a start URL."""
    try:
        start_url = get_config().resolve_start_url(start_url)
        removed = TokenCache().delete(start_url)
    except (SawsError, ValueError, OSError) as e:
        handle_error(e)
        raise typer.Exit(1)

    if removed:
        console.print(f"[green]Removed cached token for {start_url}[/green]")
    else:
        console.print(f"[dim]No cached token for {start_url}[/dim]")
