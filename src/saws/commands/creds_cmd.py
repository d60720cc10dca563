"""CLI commands for fetching temporary role credentials."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console

from saws.commands.common import build_pipeline, show_warning
from saws.config import get_config
from saws.services.credentials import credential_row, format_export_commands
from saws.services.profile_store import ProfileStore
from saws.utils.errors import ConfigurationError, SawsError, handle_error
from saws.utils.output import OutputFormat, print_export, print_output

console = Console(stderr=True)
app = typer.Typer(name="creds", help="Fetch temporary credentials for saved profiles.")


@app.command("get")
def get(
    profile_name: Annotated[str, typer.Argument(help="Saved profile name")],
    export: Annotated[bool, typer.Option("--export", "-e", help="Print shell export lines to stdout")] = False,
    output: Annotated[OutputFormat, typer.Option("--output", "-o", help="Output format")] = OutputFormat.TABLE,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show request details")] = False,
) -> None:
    """Get role credentials for a profile and store them in the credentials file.

    With --export, the output can be evaluated directly:
    eval "$(saws creds get my-profile --export)"
    """
    as_json = output == OutputFormat.JSON
    try:
        config = get_config()
        store = ProfileStore.from_settings(config.settings)
        profile = store.get_profile(profile_name)
    except (SawsError, ValueError) as e:
        handle_error(e, as_json=as_json)
        raise typer.Exit(1)

    pipeline, close = build_pipeline(config, profile.region, verbose=verbose)
    try:
        token = pipeline.ensure_token(profile.start_url, profile.region)
        creds = pipeline.credentials_for(profile, token.access_token)
    except KeyboardInterrupt:
        pipeline.cancel()
        console.print("[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except SawsError as e:
        handle_error(e, as_json=as_json)
        raise typer.Exit(1)
    finally:
        close()

    try:
        store.write_credentials(profile.name, creds)
    except ConfigurationError as e:
        show_warning(f"could not write credentials file: {e}")

    if export:
        print_export(format_export_commands(creds))
        return

    print_output(credential_row(creds, profile.name), output, title="Role Credentials")
