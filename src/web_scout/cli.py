"""CLI entrypoint for web-scout."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from .config import DEFAULT_WORKERS, ScoutConfig
from .errors import ConfigError, ValidationError
from .logging_utils import configure_logging, get_logger
from .models import BatchMode
from .pipeline import run_pipeline
from .validation import load_lines_from_file


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description="web-scout - crawl sites for contact emails and social profiles."
    )
    source_group = parser.add_mutually_exclusive_group(required=False)
    source_group.add_argument("--domains", nargs="+", help="Domains or URLs to scout.")
    source_group.add_argument("--domains-file", help="Path to domain file (one per line).")
    source_group.add_argument("--emails", nargs="+", help="Known emails; scout their domains.")
    source_group.add_argument("--emails-file", help="Path to email file (one per line).")
    parser.add_argument("--output", default="scout_results.csv", help="Output CSV path.")
    parser.add_argument(
        "--workers", type=int, default=DEFAULT_WORKERS, help="Number of concurrent site workers."
    )
    parser.add_argument(
        "--exclude-generic",
        action="store_true",
        help="Never pick role addresses such as info@ or support@.",
    )
    parser.add_argument(
        "--no-prefer-personal",
        action="store_true",
        help="Pick the first email found instead of preferring personal-looking ones.",
    )
    parser.add_argument(
        "--check-mx", action="store_true", help="Check MX records of picked emails (dnspython)."
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable tqdm progress bars.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse and pre-validate CLI input."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.domains or args.domains_file or args.emails or args.emails_file):
        parser.error("Provide --domains, --domains-file, --emails, or --emails-file.")
    return args


def materialize_inputs(args: argparse.Namespace) -> tuple[BatchMode, tuple[str, ...]]:
    if args.domains:
        return BatchMode.DOMAINS, tuple(args.domains)
    if args.domains_file:
        return BatchMode.DOMAINS, tuple(load_lines_from_file(args.domains_file))
    if args.emails:
        return BatchMode.EMAILS, tuple(args.emails)
    return BatchMode.EMAILS, tuple(load_lines_from_file(args.emails_file))


def namespace_to_config(args: argparse.Namespace) -> ScoutConfig:
    """Convert CLI args to validated ScoutConfig."""
    return ScoutConfig(
        workers=args.workers,
        prefer_personal=not args.no_prefer_personal,
        exclude_generic=args.exclude_generic,
        check_mx=args.check_mx,
        show_progress=not args.no_progress,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = get_logger()
    try:
        config = namespace_to_config(args)
        mode, inputs = materialize_inputs(args)
        output = run_pipeline(config, inputs, mode, args.output, logger=logger)
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    except (ValidationError, OSError) as exc:
        logger.error("Invalid input: %s", exc)
        return 2

    logger.info("Wrote results to %s", output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
