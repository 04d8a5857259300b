"""Command-line interface for site-archive."""

import argparse
import sys
from site_archive.archiver import Archiver
from site_archive.config import Config
from site_archive.errors import ArchiveError
from site_archive.logger_setup import setup_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="site-archive", description="Archive websites into a browsable static mirror."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    archive = subparsers.add_parser("archive", help="Crawl and archive a website")
    archive.add_argument("url", help="Seed URL to start crawling from")
    archive.add_argument("--max-depth", type=int, help="Maximum link depth (default: MAX_DEPTH)")
    archive.add_argument("--workers", type=int, help="Concurrent asset downloads (default: MAX_WORKERS)")

    list_cmd = subparsers.add_parser("list", help="List the archived dates of a domain")
    list_cmd.add_argument("domain")

    subparsers.add_parser("count", help="Count archived domains")

    serve = subparsers.add_parser("serve", help="Run the HTTP front door")
    serve.add_argument("--host", help="Bind address (default: HOST)")
    serve.add_argument("--port", type=int, help="Port (default: PORT)")
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    config = Config()

    if args.command == "archive":
        if args.max_depth is not None:
            config.max_depth = args.max_depth
        if args.workers is not None:
            config.max_workers = args.workers
    elif args.command == "serve":
        config.host = args.host or config.host
        config.port = args.port or config.port

    # Validate configuration
    is_valid, error = config.validate(require_key=args.command == "serve")
    if not is_valid:
        print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_level, config.log_file)

    try:
        if args.command == "serve":
            from site_archive.server import create_app

            create_app(config).run(host=config.host, port=config.port, debug=config.debug)
            return

        archiver = Archiver.from_config(config)
        try:
            if args.command == "archive":
                result = archiver.run(args.url)
                print(f"Preview: {result.preview_url}")
                print(f"Files stored: {len(result.stored)}")
                print(f"Files failed: {len(result.failed)}")
                for url, reason in result.failed:
                    print(f"  {url}: {reason}")
                if result.skipped:
                    print(f"External iframes skipped: {len(result.skipped)}")
            elif args.command == "list":
                for date in archiver.list_archives(args.domain):
                    print(date)
            elif args.command == "count":
                print(archiver.domain_count())
        finally:
            archiver.close()
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(1)
    except ArchiveError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
