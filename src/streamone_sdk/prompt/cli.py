"""Interactive console for inspecting an actor's roles and tokens.

Pattern: Prompt Renderer
-------------------------
The console is a thin shell over the SDK.  It has three steps:

  1. **Login** (optional): collect a username and password and start a
     session through ``Session.start``.
  2. **Roles**: fetch and tabulate the actor's roles.
  3. **Token loop**: read ``account``/``customer`` scope commands and token
     names, and report whether the actor holds each token.

Rich is used for display.  The console knows nothing about signing or
caching; it only talks to ``Platform``, ``Session`` and ``Actor``.
"""

from __future__ import annotations

import asyncio
import getpass
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table

from streamone_sdk.auth.session import Session
from streamone_sdk.config import Config, Settings, settings_as_dict
from streamone_sdk.errors import StreamOneError
from streamone_sdk.platform import Platform
from streamone_sdk.policy.actor import Actor

logger = logging.getLogger(__name__)
console = Console()

_HELP = (
    "Enter a token name to check it.\n"
    "  [bold]account[/bold] A1,A2   scope to accounts\n"
    "  [bold]customer[/bold] C1     scope to a customer\n"
    "  [bold]global[/bold]          clear the scope\n"
    "  [bold]roles[/bold]           list roles again\n"
    "  [bold]quit[/bold]            exit"
)


def _print_banner(config: Config) -> None:
    console.print(
        Panel(
            "[bold]StreamOne SDK[/bold]\n"
            f"{config.api_url} as {config.authentication_type.value} "
            f"[bold]{config.authenticator_id}[/bold]",
            border_style="blue",
        )
    )


async def _login(session: Session) -> None:
    """Prompt for credentials and start a session."""
    console.print("\n[bold yellow]Login[/bold yellow] (StreamOne session)\n")

    username = input("  Username: ").strip()
    password = getpass.getpass("  Password: ")

    if not username or not password:
        console.print("[red]Username and password are required.[/red]")
        sys.exit(1)

    result = await session.start(username, password, "127.0.0.1")
    if not result.success:
        console.print(
            f"[red]Login failed:[/red] {result.last_response.status_message}"
        )
        sys.exit(1)

    console.print(f"\n  [green]Session started[/green] for [bold]{username}[/bold]")
    console.print(f"  Session timeout: {int(session.session_store.timeout)}s\n")


async def _print_roles(actor: Actor) -> None:
    roles = await actor.get_roles()

    table = Table(title=f"Roles ({actor.actor_type.value})")
    table.add_column("Role", style="bold")
    table.add_column("Scope", style="cyan")
    table.add_column("Tokens", style="green")

    for role in roles:
        if role.account is not None:
            scope = f"account {role.account.id}"
        elif role.customer is not None:
            scope = f"customer {role.customer.id}"
        else:
            scope = "global"
        table.add_row(role.role.name, scope, ", ".join(sorted(role.role.tokens)) or "(none)")

    console.print(table)


def _scope_label(actor: Actor) -> str:
    if actor.customer is not None:
        return f"customer {actor.customer}"
    if actor.accounts:
        return "accounts " + ",".join(actor.accounts)
    return "global"


async def _token_loop(actor: Actor, session: Session | None) -> None:
    console.print(Panel(_HELP, border_style="dim"))

    while True:
        try:
            line = input(f"[{_scope_label(actor)}] > ").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not line:
            continue
        command, _, rest = line.partition(" ")
        command = command.lower()

        if command in ("quit", "exit"):
            break
        if session is not None and not session.is_active:
            console.print("[red]Session expired; please log in again.[/red]")
            break

        try:
            if command == "account":
                actor.accounts = [a.strip() for a in rest.split(",") if a.strip()]
            elif command == "customer":
                actor.customer = rest.strip() or None
            elif command == "global":
                actor.accounts = []
            elif command == "roles":
                await _print_roles(actor)
            else:
                held = await actor.has_token(line)
                mark = "[green]yes[/green]" if held else "[red]no[/red]"
                console.print(f"  {line}: {mark}")
        except StreamOneError as exc:
            console.print(f"[red]Error:[/red] {exc}")


async def _run(config: Config, use_session: bool) -> None:
    platform = Platform(config)
    session: Session | None = None

    if use_session:
        session = platform.new_session()
        await _login(session)

    actor = platform.new_actor(session)
    try:
        try:
            await _print_roles(actor)
        except StreamOneError as exc:
            console.print(f"[red]Could not fetch roles:[/red] {exc}")
        await _token_loop(actor, session)
    finally:
        if session is not None and session.is_active:
            ended = await session.end()
            logger.debug("Session end confirmed by API: %s", ended)


def run_cli(config: Config, settings: Settings, use_session: bool = False, verbose: bool = False) -> None:
    """Main entry point for the interactive console."""
    _print_banner(config)
    if verbose:
        console.print(Pretty(settings_as_dict(settings)))
    asyncio.run(_run(config, use_session))
    console.print("\n[dim]Goodbye.[/dim]")
