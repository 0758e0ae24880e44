"""CLI entry point for the shop statistics service."""

from __future__ import annotations

import sys

import click

from .core.enums import Discipline

_DISCIPLINES = click.Choice([d.value for d in Discipline])


def _overrides(discipline: str | None, backend: str | None) -> dict:
    overrides: dict = {}
    if discipline:
        overrides["discipline"] = discipline
    if backend:
        overrides["store"] = {"backend": backend}
    return overrides


@click.group()
def main() -> None:
    """Asynchronous shop order statistics."""


@main.command()
@click.option("--username", required=True, help="User to log in as")
@click.option("--password", prompt=True, hide_input=True, help="Password")
@click.option("--discipline", type=_DISCIPLINES, default=None, help="Concurrency discipline")
@click.option("--backend", type=click.Choice(["memory", "redis"]), default=None, help="Store backend")
@click.option("--config", default=None, help="Config file path")
def stats(
    username: str,
    password: str,
    discipline: str | None,
    backend: str | None,
    config: str | None,
) -> None:
    """Log in and print the order statistics of one user."""
    from .core.models import Credentials
    from .core.result import Ok
    from .main import run_statistics

    outcome = run_statistics(
        Credentials(username=username, password=password),
        config_path=config,
        overrides=_overrides(discipline, backend),
    )
    if not isinstance(outcome, Ok):
        sys.exit(1)


@main.command()
@click.option("--discipline", type=_DISCIPLINES, default=None, help="Concurrency discipline")
@click.option("--backend", type=click.Choice(["memory", "redis"]), default=None, help="Store backend")
@click.option("--config", default=None, help="Config file path")
def demo(discipline: str | None, backend: str | None, config: str | None) -> None:
    """Run the three demo requests (ok, bad password, wrong-case user)."""
    from .core.result import Ok
    from .main import run_demo

    outcomes = run_demo(config_path=config, overrides=_overrides(discipline, backend))
    failed = sum(1 for o in outcomes if not isinstance(o, Ok))
    click.echo(f"--- {len(outcomes)} runs, {failed} failed")


@main.command()
@click.option("--backend", type=click.Choice(["memory", "redis"]), default="redis", help="Store backend")
@click.option("--config", default=None, help="Config file path")
def seed(backend: str, config: str | None) -> None:
    """Write the demo users and orders into the store."""
    from .main import seed as seed_store

    count = seed_store(config_path=config, overrides=_overrides(None, backend))
    click.echo(f"Seeded {count} documents")


if __name__ == "__main__":
    main()
