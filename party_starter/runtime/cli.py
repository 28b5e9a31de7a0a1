from __future__ import annotations

import argparse
import logging
from typing import Sequence

from pydantic import ValidationError

from party_starter.runtime.launcher import run_create
from party_starter.runtime.schema import DEFAULT_TARGET_DIR, LaunchSettings, PollPolicy


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="create-party-starter",
        description="Create a starter app, run its dev server and open it in the browser",
    )
    parser.add_argument("target_dir", nargs="?", default=DEFAULT_TARGET_DIR)
    parser.add_argument("--template", dest="template_dir", help="Template directory to copy")
    parser.add_argument("--package-manager", help="Package manager executable (default: pnpm)")
    parser.add_argument("--port", dest="start_port", type=int, help="First port to try (default: 3000)")
    parser.add_argument("--host", help="Host used for readiness probes and the browser URL")
    parser.add_argument("--path", dest="target_path", default="/get-started", help="Path probed for readiness")
    parser.add_argument("--max-attempts", type=int, default=30)
    parser.add_argument("--interval", type=float, default=1.0, help="Seconds between readiness probes")
    parser.add_argument("--no-browser", action="store_true", help="Do not open the browser")
    parser.add_argument("--no-install", action="store_true", help="Skip dependency installation")
    parser.add_argument("--strict", action="store_true", help="Abort if the server never becomes ready")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def build_settings(args: argparse.Namespace) -> LaunchSettings:
    poll = PollPolicy(
        target_path=args.target_path,
        max_attempts=args.max_attempts,
        interval=args.interval,
    )
    return LaunchSettings.from_env(
        target_dir=args.target_dir,
        template_dir=args.template_dir,
        package_manager=args.package_manager,
        start_port=args.start_port,
        host=args.host,
        open_browser=False if args.no_browser else None,
        open_on_timeout=not args.strict,
        install=not args.no_install,
        poll=poll,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        settings = build_settings(args)
    except ValidationError as e:
        parser.error(str(e))
    return run_create(settings)
