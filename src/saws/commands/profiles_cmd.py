"""CLI commands for discovering and managing SSO profiles."""

from __future__ import annotations

from typing import Annotated, Any

import typer
from rich.console import Console

from saws.commands.common import build_pipeline
from saws.config import get_config
from saws.models.profiles import NamedProfile, group_by_account, validate_region, validate_start_url
from saws.services.profile_store import ProfileStore
from saws.utils.errors import SawsError, handle_error
from saws.utils.output import OutputFormat, print_output

console = Console(stderr=True)
app = typer.Typer(name="profiles", help="Discover, list, and delete SSO profiles.")

PROFILE_COLUMNS = ["name", "account_name", "account_id", "role_name", "region"]


def _matches(profile: NamedProfile, term: str) -> bool:
    term = term.lower()
    return any(
        term in value.lower()
        for value in (profile.name, profile.account_name, profile.account_id, profile.role_name)
    )


def _rows(profiles: list[NamedProfile]) -> list[dict[str, Any]]:
    return [profile.model_dump() for profile in profiles]


@app.command("discover")
def discover(
    start_url: Annotated[str | None, typer.Option("--start-url", "-u", help="SSO start URL")] = None,
    region: Annotated[str | None, typer.Option("--region", "-r", help="SSO region")] = None,
    filter_term: Annotated[str | None, typer.Option("--filter", help="Only keep profiles matching this text")] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Save without asking")] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """Discover every account and role for a start URL and save them as profiles."""
    as_json = output == OutputFormat.JSON
    try:
        config = get_config()
        start_url = config.resolve_start_url(start_url)
        region = config.resolve_region(region)
        validate_start_url(start_url)
        validate_region(region)
    except (SawsError, ValueError) as e:
        handle_error(e, as_json=as_json)
        raise typer.Exit(1)

    store = ProfileStore.from_settings(config.settings)
    pipeline, close = build_pipeline(config, region, verbose=verbose)
    try:
        token = pipeline.ensure_token(start_url, region)
        profiles = pipeline.discover_profiles(start_url, region, token.access_token)
    except KeyboardInterrupt:
        pipeline.cancel()
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except SawsError as e:
        handle_error(e, as_json=as_json)
        raise typer.Exit(1)
    finally:
        close()

    if filter_term:
        profiles = [p for p in profiles if _matches(p, filter_term)]
        if not profiles:
            console.print(f"[dim]No discovered profiles match {filter_term!r}.[/dim]")
            raise typer.Exit(0)

    print_output(_rows(profiles), output, columns=PROFILE_COLUMNS, title="Discovered Profiles")

    if not yes:
        typer.confirm(
            f"Save {len(profiles)} profile(s) to {store.config_path}?",
            abort=True,
            err=True,
        )

    try:
        store.save_profiles(profiles)
    except (SawsError, ValueError) as e:
        handle_error(e, as_json=as_json)
        raise typer.Exit(1)

    console.print(f"[green]Saved {len(profiles)} profile(s) to {store.config_path}[/green]")
    console.print("[dim]Run `saws creds get <profile>` to fetch credentials.[/dim]")


@app.command("list")
def list_profiles(
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
) -> None:
    """List saved SSO profiles, grouped by account."""
    try:
        store = ProfileStore.from_settings(get_config().settings)
        profiles = store.load_profiles()
    except SawsError as e:
        handle_error(e, as_json=output == OutputFormat.JSON)
        raise typer.Exit(1)

    if not profiles:
        console.print("[dim]No saved SSO profiles. Run `saws profiles discover`.[/dim]")
        raise typer.Exit(0)

    ordered = [role for group in group_by_account(profiles) for role in group.roles]
    print_output(_rows(ordered), output, columns=PROFILE_COLUMNS, title="SSO Profiles")


@app.command("delete")
def delete(
    name: Annotated[str, typer.Argument(help="Profile name")],
) -> None:
    """Delete a saved profile."""
    try:
        store = ProfileStore.from_settings(get_config().settings)
        removed = store.delete_profile(name)
    except SawsError as e:
        handle_error(e)
        raise typer.Exit(1)

    if not removed:
        handle_error(ValueError(f"profile {name!r} not found in {store.config_path}"))
        raise typer.Exit(1)
    console.print(f"[green]Deleted profile {name}[/green]")
