"""CLI commands for the REST API: running the server and issuing tokens."""

import sys
from datetime import timedelta
from typing import Optional

import click

from time_ledger.api.auth import create_token_for_user
from time_ledger.api.server import run_server
from time_ledger.cli.common import get_config
from time_ledger.core.models import UserRole


@click.command()
@click.option("--host", default=None, help="Host address (default: from config)")
@click.option("--port", type=int, default=None, help="Port number (default: from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", type=int, default=None, help="Worker processes (default: from config)")
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    reload: bool,
    workers: Optional[int],
) -> None:
    """Start the API server.

    Examples:
        time-ledger serve
        time-ledger serve --host 0.0.0.0 --port 8080
        time-ledger serve --reload
    """
    config = get_config(ctx)
    config.ensure_api_secret_key()

    final_host = host or config.get("api.host", "localhost")
    final_port = port or config.get("api.port", 8000)
    final_workers = workers or config.get("api.workers", 1)

    click.echo("Starting Time Ledger API server...")
    click.echo(f"   URL: http://{final_host}:{final_port}")
    click.echo(f"   Docs: http://{final_host}:{final_port}/docs")
    if reload:
        click.echo("   Mode: Development (auto-reload enabled)")
    if not config.get("api.authentication.enabled", True):
        click.echo(
            click.style("   Authentication is disabled; requests act as the local user", fg="yellow")
        )
    click.echo()

    try:
        run_server(
            host=final_host,
            port=final_port,
            reload=reload,
            workers=final_workers,
            config_path=config.config_path,
            data_dir=ctx.obj["data_dir"],
        )
    except KeyboardInterrupt:
        click.echo("\nShutting down API server...")
    except OSError as e:
        click.echo(click.style(f"Error starting server: {e}", fg="red"), err=True)
        sys.exit(1)


@click.command()
@click.option("--user-id", help="User the token acts for (default: configured user)")
@click.option("--name", help="Display name claim")
@click.option("--role", type=click.Choice([r.value for r in UserRole]), help="Role claim")
@click.option("--expires", type=int, help="Token expiry time in hours (default: from config)")
@click.pass_context
def token(
    ctx: click.Context,
    user_id: Optional[str],
    name: Optional[str],
    role: Optional[str],
    expires: Optional[int],
) -> None:
    """Create an API access token.

    Examples:
        time-ledger token
        time-ledger token --user-id alice --name "Alice" --expires 48
    """
    config = get_config(ctx)

    if expires is None:
        expires = config.get("api.authentication.token_expiry_hours", 24)
    if user_id is None:
        user_id = config.get("user.id")
        name = name or config.get("user.display_name")
        role = role or config.get("user.role")

    token_data = create_token_for_user(
        config,
        user_id=user_id,
        display_name=name,
        role=role,
        expires_delta=timedelta(hours=expires),
    )

    click.echo(f"Token: {token_data['access_token']}")
    click.echo(f"Expires in: {expires} hours")
    click.echo()
    click.echo("Use this token in API requests:")
    click.echo(f"  Authorization: Bearer {token_data['access_token']}")
    click.echo()
    host = config.get("api.host", "localhost")
    port = config.get("api.port", 8000)
    click.echo("Example curl command:")
    click.echo(
        f'  curl -H "Authorization: Bearer {token_data["access_token"]}" '
        f"http://{host}:{port}/api/v1/entries/"
    )
