"""Command line helpers for coinshop operators."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from rich.console import Console
from rich.table import Table

from .app import ShopApp
from .config import ShopConfig
from .domain.exceptions import ShopError
from .loaders import seed_catalog_from_json, validate_catalog_file
from .validators import validate_store

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coinshop", description="coinshop operator tools")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    seed = commands.add_parser("seed", help="Seed an empty catalog from a JSON file")
    seed.add_argument("catalog", type=Path)

    validate = commands.add_parser("validate", help="Validate a catalog JSON file")
    validate.add_argument("catalog", type=Path)

    commands.add_parser("check", help="Check configuration and stored data invariants")

    products = commands.add_parser("products", help="List products")
    products.add_argument("--category", default=None)

    commands.add_parser("accounts", help="List accounts")

    issue = commands.add_parser("issue-code", help="Issue a one-time login code")
    issue.add_argument("username")

    adjust = commands.add_parser("adjust", help="Add or deduct coins (balance floors at zero)")
    adjust.add_argument("account_id")
    adjust.add_argument("amount", type=int)

    promote = commands.add_parser("promote", help="Grant administrator rights to a username")
    promote.add_argument("username")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "validate":
        config = ShopConfig.from_env()
        errors = validate_catalog_file(args.catalog, categories=config.categories)
        if errors:
            console.print("[bold red]Catalog errors:[/bold red]")
            for err in errors:
                console.print(f"- {err}")
            sys.exit(1)
        console.print("Catalog is valid ✅")
        return

    try:
        code = asyncio.run(_run(args))
    except ShopError as exc:
        console.print(f"[red]{exc.code}[/red]: {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print("[bold red]Error:[/bold red]")
        console.print(str(exc), markup=False)
        sys.exit(1)
    if code:
        sys.exit(code)


async def _run(args: argparse.Namespace) -> int:
    app = ShopApp(ShopConfig.from_env())
    try:
        await app.init_backend()
        if args.command == "init-db":
            console.print(f"Storage '{app.config.storage.backend}' initialized ✅")
        elif args.command == "seed":
            count = await seed_catalog_from_json(app, args.catalog)
            console.print(f"Seeded {count} products." if count else "Catalog already seeded.")
        elif args.command == "check":
            issues = await validate_store(app)
            if issues:
                for issue in issues:
                    console.print(f"[yellow]-[/yellow] {issue}")
                return 1
            console.print("No problems found ✅")
        elif args.command == "products":
            _print_products(await app.catalog.list_products(args.category))
        elif args.command == "accounts":
            _print_accounts(await app.accounts.list_accounts())
        elif args.command == "issue-code":
            code = await app.login_codes.issue(args.username)
            console.print(f"Code [bold]{code.code}[/bold] expires at {code.expires_at.isoformat()}")
        elif args.command == "adjust":
            account = await app.accounts.adjust_balance(args.account_id, args.amount)
            console.print(f"{account.username}: {account.coins} coins")
        elif args.command == "promote":
            account = await app.accounts.get_by_username(args.username)
            await app.admin.set_admin(account.id, True)
            console.print(f"{account.username} is now an administrator.")
        return 0
    finally:
        await app.close()


def _print_products(products) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Price", justify="right")
    table.add_column("Stock", justify="right")
    table.add_column("Available")
    for product in products:
        table.add_row(
            product.id,
            product.name_en,
            product.category,
            str(product.price),
            "∞" if product.stock is None else str(product.stock),
            "yes" if product.in_stock else "no",
        )
    console.print(table)


def _print_accounts(accounts) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Username")
    table.add_column("Coins", justify="right")
    table.add_column("Admin")
    table.add_column("Discord")
    for account in accounts:
        table.add_row(
            account.id,
            account.username,
            str(account.coins),
            "yes" if account.is_admin else "",
            account.discord_username or "",
        )
    console.print(table)
