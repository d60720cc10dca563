"""Shared wiring for CLI commands: transports, pipeline, and display callbacks."""

from __future__ import annotations

from typing import Callable

from rich.console import Console
from rich.panel import Panel

from saws.client import OIDCClient, PortalClient
from saws.config import Config
from saws.models.auth import DeviceAuthInfo
from saws.pipeline import CredentialPipeline

console = Console(stderr=True)


def show_device_auth(info: DeviceAuthInfo) -> None:
    body = (
        f"[bold]Verification URL:[/bold] {info.verification_uri}\n"
        f"[bold]User Code:[/bold]        {info.user_code}\n\n"
        "[dim]A browser window should open automatically.\n"
        "If not, open the URL above and enter the code.[/dim]"
    )
    console.print()
    console.print(Panel(body, title="SSO authorization", expand=False))


def show_status(message: str) -> None:
    console.print(f"  [dim]{message}[/dim]")


def show_warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def build_pipeline(config: Config, region: str, verbose: bool = False) -> tuple[CredentialPipeline, Callable[[], None]]:
    """Create HTTP transports for ``region`` and a pipeline that reports to stderr.

    Returns the pipeline and a function that closes the transports.
    """
    settings = config.settings
    oidc = OIDCClient(region, timeout=settings.http_timeout)
    portal = PortalClient(
        region,
        max_retries=settings.max_retries,
        timeout=settings.http_timeout,
        verbose=verbose,
    )
    pipeline = CredentialPipeline(
        oidc,
        portal,
        client_name=settings.client_name,
        on_device_auth=show_device_auth,
        on_status=show_status,
        on_warning=show_warning,
    )

    def close() -> None:
        oidc.close()
        portal.close()

    return pipeline, close
