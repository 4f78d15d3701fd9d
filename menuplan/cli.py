"""Command-line interface for weekly menu generation."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from .config import get_settings
from .errors import ExhaustedRetriesError
from .observability import configure_logging
from .schemas import MenuRequest
from .services.menus import generate_fallback_week_menu, generate_week_menu

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weekly menu generation tooling")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a seven-day menu from a request file")
    generate.add_argument(
        "--request",
        type=Path,
        required=True,
        help="Path to a MenuRequest JSON file",
    )
    generate.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the weekly menu JSON (default: stdout)",
    )
    generate.add_argument(
        "--offline",
        action="store_true",
        help="Build the menu from the local template table without calling the completion service",
    )
    generate.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Fixed seed for the offline generator (reproducible output)",
    )
    generate.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    generate.set_defaults(func=run_generate)

    return parser


def load_request(path: Path) -> MenuRequest:
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    return MenuRequest.model_validate(payload)


def run_generate(args: argparse.Namespace) -> int:
    configure_logging(json_logs=False, level=args.log_level)
    try:
        request = load_request(args.request)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        logger.error("Could not read menu request from %s: %s", args.request, exc)
        return 2

    if args.offline:
        menu = generate_fallback_week_menu(request, seed=args.seed)
    else:
        try:
            menu = generate_week_menu(request, settings=get_settings())
        except ExhaustedRetriesError as exc:
            logger.error("%s", exc)
            print("Could not generate a weekly menu at this time.", file=sys.stderr)
            return 1

    rendered = menu.model_dump_json(indent=2)
    if args.output is None:
        print(rendered)
    else:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered, encoding="utf-8")
        logger.info("Wrote weekly menu -> %s", args.output)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
