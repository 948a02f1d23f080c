"""Command-line interface for HireLink."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from hirelink.config import settings
from hirelink.core.errors import HireLinkError
from hirelink.core.models import Role
from hirelink.service import Marketplace

app = typer.Typer(
    name="hirelink",
    help="HireLink - hiring marketplace approval workflows",
    add_completion=False,
)
console = Console()


def _run(coro_factory):
    """Run one marketplace coroutine against a fresh connection pool."""

    async def runner():
        marketplace = Marketplace()
        try:
            await marketplace.start()
            return await coro_factory(marketplace)
        finally:
            await marketplace.close()

    try:
        return asyncio.run(runner())
    except HireLinkError as e:
        console.print(f"[red]{e.kind}[/red]: {e.message}")
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, help="Host to bind to"),
    port: int = typer.Option(settings.api_port, help="Port to bind to"),
    reload: bool = typer.Option(settings.reload, help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    console.print(f"Starting HireLink on {host}:{port}")
    uvicorn.run(
        "hirelink.api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


@app.command("init-db")
def init_db() -> None:
    """Create the database schema."""

    async def check(marketplace: Marketplace):
        return await marketplace.database.health_check()

    if not _run(check):
        console.print("[red]Database is not reachable[/red]")
        raise typer.Exit(code=1)
    console.print(f"Database ready at {settings.database_url}")


@app.command("create-account")
def create_account(
    role: Role = typer.Argument(..., help="Account role"),
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Email address"),
) -> None:
    """Provision a Directory account."""

    async def create(marketplace: Marketplace):
        return await marketplace.directory.create_account(role, name, email)

    account = _run(create)
    table = Table(title="Account created")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("ID", account.id)
    table.add_row("Role", account.role.value)
    table.add_row("Name", account.name)
    table.add_row("Email", account.email)
    console.print(table)


@app.command("issue-token")
def issue_token(account_id: str = typer.Argument(..., help="Account to issue a token pair for")) -> None:
    """Issue a bearer token pair for an existing account."""

    async def issue(marketplace: Marketplace):
        return await marketplace.login(account_id)

    pair = _run(issue)
    console.print(f"[cyan]access_token[/cyan]  {pair.access_token}")
    console.print(f"[cyan]refresh_token[/cyan] {pair.refresh_token}")
    console.print(f"expires in {pair.expires_in}s")


@app.command()
def config() -> None:
    """Show current configuration."""
    table = Table(title="HireLink Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    # Show non-sensitive settings
    table.add_row("Database URL", settings.database_url)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Log Level", settings.log_level)
    table.add_row("API", f"{settings.api_host}:{settings.api_port}")
    table.add_row("JWT Algorithm", settings.jwt_algorithm)
    table.add_row("Access Token TTL", f"{settings.access_token_expire_minutes} min")
    table.add_row("Notification Webhook", settings.notification_webhook_url or "(log only)")
    table.add_row(
        "Cover Letter Length",
        f"{settings.cover_letter_min_length}..{settings.cover_letter_max_length}",
    )

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from hirelink import __version__
    console.print(f"HireLink v{__version__}")


def main(argv: Optional[list] = None) -> None:
    """Main entry point."""
    app(args=argv)


if __name__ == "__main__":
    main()
