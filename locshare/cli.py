"""
Command-line interface for locshare.
"""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Any, Callable

import click

from locshare.client.client import LocationShareClient
from locshare.common.exceptions import LocShareError
from locshare.common.models import ClientConfig, Coordinates, IdentityOptions


def _client(ctx: click.Context, **kwargs: Any) -> LocationShareClient:
    config = ClientConfig(
        store_path=ctx.obj.get("store"),
        log_level=ctx.obj.get("log_level"),
    )
    return LocationShareClient(config, **kwargs)


def handle_errors(func: Callable) -> Callable:
    """Turn client errors into a one-line CLI failure."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except LocShareError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


@click.group()
@click.option(
    "--store",
    type=click.Path(dir_okay=False),
    default=None,
    help="Secret store file (default: ~/.locshare/secrets.json)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, store: str | None, verbose: bool) -> None:  # noqa: FBT001
    """Share your live location with your groups, end-to-end encrypted."""
    ctx.ensure_object(dict)
    ctx.obj["store"] = store
    ctx.obj["log_level"] = logging.DEBUG if verbose else None


@cli.command("set-server")
@click.argument("url")
@click.pass_context
@handle_errors
def set_server(ctx: click.Context, url: str) -> None:
    """Save the relay server URL"""
    _client(ctx).save_server_url(url)
    click.echo("Server URL saved!")


@cli.command("show-server")
@click.pass_context
def show_server(ctx: click.Context) -> None:
    """Print the saved relay server URL"""
    url = _client(ctx).server_url
    if not url:
        raise click.ClickException("Server URL not set")
    click.echo(url)


@cli.command()
@click.option("--name", default="Location Share User", show_default=True)
@click.option("--email", default=None)
@click.option(
    "--algorithm",
    type=click.Choice(["curve25519", "rsa"]),
    default="curve25519",
    show_default=True,
)
@click.pass_context
@handle_errors
def keygen(ctx: click.Context, name: str, email: str | None, algorithm: str) -> None:
    """Generate a new key pair (replaces any existing one)"""
    options = IdentityOptions(name=name, email=email, algorithm=algorithm)
    key_id = _client(ctx).generate_identity(options)
    click.echo(f"Public Key ID: {key_id}")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Print the key id of the local identity"""
    key_id = _client(ctx).load_existing_key_id()
    if key_id is None:
        raise click.ClickException("No identity yet. Run 'locshare keygen'.")
    click.echo(key_id)


@cli.command()
@click.pass_context
@handle_errors
def signup(ctx: click.Context) -> None:
    """Send the public key to the server"""
    _client(ctx).sign_up()
    click.echo("Public key sent to server successfully")


@cli.command()
@click.pass_context
@handle_errors
def login(ctx: click.Context) -> None:
    """Prove key ownership and store a bearer token"""
    _client(ctx).request_token()
    click.echo("Token received and stored successfully")


@cli.group()
def groups() -> None:
    """Manage groups"""


@groups.command("list")
@click.pass_context
@handle_errors
def groups_list(ctx: click.Context) -> None:
    """List the groups you belong to"""
    for group in _client(ctx).list_groups():
        members = ", ".join(
            f"{m.keyid} ({m.full_name})" if m.full_name else m.keyid
            for m in group.other_members()
        )
        click.echo(f"{group.id}\t{group.name}\t{members}")


@groups.command("create")
@click.argument("name")
@click.argument("member_key_ids")
@click.pass_context
@handle_errors
def groups_create(ctx: click.Context, name: str, member_key_ids: str) -> None:
    """Create a group from comma separated member key ids"""
    _client(ctx).create_group(name, member_key_ids)
    click.echo("Group created successfully")


@cli.command("forget-key")
@click.argument("keyid")
@click.pass_context
def forget_key(ctx: click.Context, keyid: str) -> None:
    """Drop a cached member key so it is fetched and verified again"""
    _client(ctx).forget_cached_key(keyid)
    click.echo(f"Forgot cached key for {keyid}")


@cli.command("send-location")
@click.option("--lat", type=float, required=True)
@click.option("--lon", type=float, required=True)
@click.option("--accuracy", type=float, default=None)
@click.pass_context
@handle_errors
def send_location(
    ctx: click.Context, lat: float, lon: float, accuracy: float | None
) -> None:
    """Encrypt and send one location to every group"""
    coords = Coordinates(latitude=lat, longitude=lon, accuracy=accuracy)
    report = _client(ctx).send_location(coords)
    click.echo(
        f"Delivered to {len(report.delivered)} group(s), "
        f"{len(report.failed)} failed, {len(report.skipped)} without recipients"
    )
    for group_id, error in report.failed.items():
        click.echo(f"  group {group_id}: {error}", err=True)


@cli.command()
@click.pass_context
@handle_errors
def fetch(ctx: click.Context) -> None:
    """Fetch and decrypt the latest locations shared with you"""
    report = _client(ctx).fetch_locations()
    for marker in report.markers:
        click.echo(
            f"{marker.timestamp}\t{marker.user}\t{marker.latitude},{marker.longitude}"
        )
    if report.dropped:
        click.echo(f"{report.dropped} update(s) could not be decrypted", err=True)


@cli.command()
@click.option("--lat", type=float, required=True)
@click.option("--lon", type=float, required=True)
@click.option("--fanout-interval", type=float, default=None)
@click.option("--retrieval-interval", type=float, default=None)
@click.pass_context
def run(
    ctx: click.Context,
    lat: float,
    lon: float,
    fanout_interval: float | None,
    retrieval_interval: float | None,
) -> None:
    """Share a fixed position and print incoming positions until interrupted"""

    def print_markers(markers: list) -> None:
        for marker in markers:
            click.echo(f"{marker.user}\t{marker.latitude},{marker.longitude}")

    config = ClientConfig(
        store_path=ctx.obj.get("store"),
        log_level=ctx.obj.get("log_level"),
        fanout_interval=fanout_interval,
        retrieval_interval=retrieval_interval,
    )
    client = LocationShareClient(
        config,
        location_provider=lambda: Coordinates(latitude=lat, longitude=lon),
        marker_sink=print_markers,
    )
    client.start_in_thread()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping...")
    finally:
        client.stop_thread(wait=True)


if __name__ == "__main__":
    cli()
