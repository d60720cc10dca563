"""saws: AWS IAM Identity Center helper, entry point.

Logs in with the SSO device flow, discovers every account and role the user can
assume, saves them as named profiles and fetches temporary credentials.
"""

from __future__ import annotations

import logging

import typer

from saws import __version__
from saws.commands.auth_cmd import app as auth_app
from saws.commands.creds_cmd import app as creds_app
from saws.commands.profiles_cmd import app as profiles_app

app = typer.Typer(
    name="saws",
    help="Log in to AWS IAM Identity Center and manage SSO profiles and credentials.",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(auth_app, name="auth")
app.add_typer(profiles_app, name="profiles")
app.add_typer(creds_app, name="creds")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"saws {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """saws: SSO login, profile discovery, and role credentials."""
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


if __name__ == "__main__":
    app()
