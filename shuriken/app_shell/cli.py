import argparse
import logging
import sys
from collections.abc import Sequence

import uvicorn

from shuriken.adapters.clock import SystemClock
from shuriken.adapters.sqlite.migrator import SQLiteMigrator
from shuriken.adapters.sqlite.repos import (
    SQLiteNoticeQueue,
    SQLiteReservedPathRepo,
    SQLiteRuleRepo,
)
from shuriken.api.deps import Settings
from shuriken.components.redirects import (
    CreateRuleInput,
    ListRulesInput,
    PathReservedError,
    Redirect,
    ResolvePathInput,
    normalize_slug,
    public_link,
    run_create,
    run_list,
    run_resolve,
)
from shuriken.rules.loader import load_rules, redirect_config_from_rules
from shuriken.rules.models import Rules

logger = logging.getLogger("cli")


def get_rules(settings: Settings) -> Rules:
    if not settings.rules_path.exists():
        logger.error("Rules file %s not found.", settings.rules_path)
        sys.exit(1)
    return load_rules(settings.rules_path)


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    applied = SQLiteMigrator(settings.db_path, settings.migrations_dir).run_migrations()
    if applied:
        print(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
    else:
        print("Database is up to date.")


def handle_add(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    result = run_create(
        CreateRuleInput(
            slug=args.slug,
            target_url=args.target_url,
            status="unpublished" if args.unpublished else "published",
            title=args.title,
        ),
        store=SQLiteRuleRepo(settings.db_path),
        reserved=SQLiteReservedPathRepo(
            settings.db_path, system_paths=rules.redirects.reserved_system_paths
        ),
        notices=SQLiteNoticeQueue(settings.db_path, time_port=SystemClock()),
        config=redirect_config_from_rules(rules),
    )

    if not result.success:
        for error in result.errors:
            logger.error("%s: %s", error.code, error.message)
        sys.exit(1)

    assert result.rule is not None
    print(f"Created {result.rule.id}: {public_link(settings.site_url, result.rule.slug)}")
    if result.conflict.conflict:
        print(f"Warning: {result.conflict.conflict}")


def handle_list(settings: Settings, args: argparse.Namespace) -> None:
    output = run_list(ListRulesInput(), store=SQLiteRuleRepo(settings.db_path))
    if not output.rules:
        print("No redirects.")
        return
    for rule in output.rules:
        target = rule.target_url or "(no target)"
        print(f"{rule.slug}\t{rule.status}\t{rule.visit_count}\t{target}")


def handle_reserve(settings: Settings, args: argparse.Namespace) -> None:
    path = normalize_slug(args.path.strip())
    if not path:
        logger.error("Path is required.")
        sys.exit(1)

    repo = SQLiteReservedPathRepo(settings.db_path)
    try:
        reserved = repo.add(path, args.kind)
    except PathReservedError:
        print(f"'{path}' is already reserved.")
        return
    print(f"Reserved '{reserved.path}' ({reserved.kind}).")


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    uvicorn.run("shuriken.api.main:app", host=args.host, port=args.port)


def handle_resolve(settings: Settings, args: argparse.Namespace) -> None:
    rules = get_rules(settings)
    output = run_resolve(
        ResolvePathInput(path=args.path, record_visit=False),
        store=SQLiteRuleRepo(settings.db_path),
        reserved=SQLiteReservedPathRepo(
            settings.db_path, system_paths=rules.redirects.reserved_system_paths
        ),
        config=redirect_config_from_rules(rules),
    )
    if isinstance(output.outcome, Redirect):
        print(f"{output.outcome.status_code} -> {output.outcome.target_url}")
    else:
        print("No match.")


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Shuriken Redirects CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # add
    add_parser = subparsers.add_parser("add", help="Create a redirect rule")
    add_parser.add_argument("slug", help="Path segment to redirect from (e.g. promo)")
    add_parser.add_argument("target_url", help="Absolute URL to redirect to")
    add_parser.add_argument("--unpublished", action="store_true", help="Save as a draft")
    add_parser.add_argument("--title", help="Admin label")

    # list
    subparsers.add_parser("list", help="List redirect rules with click counts")

    # reserve
    reserve_parser = subparsers.add_parser("reserve", help="Register a path owned by the site")
    reserve_parser.add_argument("path", help="Path to reserve (e.g. about)")
    reserve_parser.add_argument("--kind", choices=["page", "post", "system"], default="page")

    # resolve
    resolve_parser = subparsers.add_parser("resolve", help="Preview a path without counting it")
    resolve_parser.add_argument("path", help="Request path (e.g. /promo)")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    settings = Settings()

    handlers = {
        "migrate": handle_migrate,
        "add": handle_add,
        "list": handle_list,
        "reserve": handle_reserve,
        "resolve": handle_resolve,
        "serve": handle_serve,
    }
    handlers[args.command](settings, args)


if __name__ == "__main__":
    main()
