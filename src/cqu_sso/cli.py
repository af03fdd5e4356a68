"""CLI for the CQU SSO client."""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .card import access_card
from .config import Credentials, Service, SessionConfig
from .exceptions import CQUError, NotLoginError
from .mycqu import access_mycqu
from .session import DEFAULT_SESSION_FILE, Session
from .sso import LoginResult, login as sso_login, logout as sso_logout

app = typer.Typer(help="CQU single sign-on CLI")
console = Console()

state = {"session_file": DEFAULT_SESSION_FILE}


def load_env():
    """Load environment from local.env if present."""
    # Try current directory first, then parent directories
    for parent in [Path.cwd()] + list(Path.cwd().parents)[:3]:
        env_file = parent / "local.env"
        if env_file.exists():
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, _, value = line.partition("=")
                        value = value.strip().strip('"').strip("'")
                        os.environ.setdefault(key.strip(), value)
            break


def _credentials() -> Credentials:
    try:
        return Credentials.from_env()
    except ValueError:
        username = typer.prompt("Username")
        password = typer.prompt("Password", hide_input=True)
        return Credentials(username=username, password=password)


def _load_session() -> Session:
    session = Session.load(state["session_file"], config=SessionConfig.from_env())
    if session is None:
        console.print("[yellow]No saved session found - run 'login' first[/yellow]")
        raise typer.Exit(1)
    return session


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every request"),
    session_file: Path = typer.Option(
        DEFAULT_SESSION_FILE, "--session-file", envvar="CQU_SSO_SESSION_FILE", help="Saved session path"
    ),
):
    """Log in to CQU SSO and grant access to campus services."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    state["session_file"] = session_file


@app.command()
def login(force: bool = typer.Option(False, "--force", "-f", help="Force re-authentication")):
    """Log in through the SSO gateway and save the session."""
    load_env()
    creds = _credentials()
    console.print(f"Logging in as: [cyan]{creds.username}[/cyan]")

    async def run() -> LoginResult:
        config = SessionConfig.from_env()
        session = Session.load(state["session_file"], config=config) or Session(config)
        async with session:
            result = await sso_login(session, creds.username, creds.password, force_relogin=force)
            if result is LoginResult.SUCCESS:
                session.save(state["session_file"])
            return result

    try:
        result = asyncio.run(run())
    except CQUError as e:
        console.print(f"[red]✗ Login failed:[/red] {e}")
        raise typer.Exit(1)

    if result is LoginResult.INCORRECT_LOGIN_CREDENTIALS:
        console.print("[red]✗ Incorrect username or password[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Login successful![/green]")
    console.print(f"Session saved to: {state['session_file']}")


@app.command()
def access(service: Service = typer.Argument(..., help="Service to grant access to")):
    """Grant the saved session access to a campus service."""
    session = _load_session()

    async def run() -> None:
        async with session:
            if service is Service.MYCQU:
                await access_mycqu(session)
            else:
                await access_card(session)
            session.save(state["session_file"])

    try:
        asyncio.run(run())
    except NotLoginError:
        console.print("[yellow]SSO login expired - run 'login' to re-authenticate[/yellow]")
        raise typer.Exit(1)
    except CQUError as e:
        console.print(f"[red]✗ Access to {service.value} failed:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓ Access to {service.value} granted[/green]")


@app.command()
def status():
    """Show login state and granted services of the saved session."""
    session = Session.load(state["session_file"])
    if session is None:
        console.print("[yellow]No saved session found[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Session")
    table.add_column("Item")
    table.add_column("State")
    table.add_row("SSO login", "[green]yes[/green]" if session.is_login else "[yellow]no[/yellow]")
    for item in Service:
        info = session.access_infos.get(item)
        if info is None:
            table.add_row(item.value, "[yellow]not granted[/yellow]")
        elif item is Service.CARD and not info.synjones_auth:
            table.add_row(item.value, "[green]granted[/green] (no synjones auth yet)")
        else:
            table.add_row(item.value, "[green]granted[/green]")
    console.print(table)


@app.command()
def logout():
    """Log out of the SSO gateway and clear the saved session."""
    session = Session.load(state["session_file"], config=SessionConfig.from_env())
    if session is not None:

        async def run() -> None:
            async with session:
                await sso_logout(session)

        try:
            asyncio.run(run())
        except CQUError as e:
            console.print(f"[yellow]Remote logout failed:[/yellow] {e}")
    Session.clear_saved(state["session_file"])
    console.print("[green]Session cleared[/green]")
