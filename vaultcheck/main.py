"""Entry point for the vaultcheck healthcheck CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vaultcheck.config import Settings, settings
from vaultcheck.health.healthchecks import CATEGORY_KEYS, Healthchecks
from vaultcheck.health.report import Report

console = Console()


def _format_value(value: Any) -> str:
    if value is True:
        return "[green]pass[/green]"
    if value is False:
        return "[red]fail[/red]"
    if value is None:
        return "[yellow]unknown[/yellow]"
    return str(value)


def render_report(report: Report) -> None:
    """Print one table per category."""
    for category, rows in report.flatten().items():
        table = Table(title=category, show_header=False, title_justify="left")
        table.add_column("check")
        table.add_column("value")
        for name, value in rows.items():
            table.add_row(name, _format_value(value))
        console.print(table)


def _load_settings(config_dir: str | None) -> Settings:
    if config_dir:
        return Settings.from_config_dir(config_dir)
    return settings


def run_check(app_settings: Settings, category: str | None, as_json: bool) -> None:
    """Run all healthchecks (or one category) and print the report."""
    with Healthchecks(app_settings) as healthchecks:
        if category:
            report = healthchecks.run_category(category)
        else:
            if not as_json:
                console.print(Panel("Running healthchecks", style="bold blue"))
            report = healthchecks.run_all()

    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)


def run_server(app_settings: Settings) -> None:
    """Start the FastAPI server."""
    import uvicorn

    from vaultcheck.api.server import create_app

    console.print(Panel("Starting vaultcheck API Server", style="bold green"))
    uvicorn.run(
        create_app(app_settings),
        host=app_settings.api_host,
        port=app_settings.api_port,
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="vaultcheck healthchecks")
    parser.add_argument("--config-dir", help="Directory holding app.yaml / passbolt.yaml")
    sub = parser.add_subparsers(dest="command")

    check_parser = sub.add_parser("check", help="Run all healthchecks")
    check_parser.add_argument("--json", action="store_true", help="Print the raw report as JSON")

    category_parser = sub.add_parser("category", help="Run a single healthcheck category")
    category_parser.add_argument("name", choices=sorted(CATEGORY_KEYS))
    category_parser.add_argument("--json", action="store_true", help="Print the raw report as JSON")

    sub.add_parser("serve", help="Start the API server")

    args = parser.parse_args(argv)
    app_settings = _load_settings(args.config_dir)
    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if args.command == "check":
        run_check(app_settings, None, args.json)
    elif args.command == "category":
        run_check(app_settings, args.name, args.json)
    elif args.command == "serve":
        run_server(app_settings)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
