"""
=============================================================================
SIMPLEWEBSERVER CLI ENTRY POINT
=============================================================================

Command-line interface for running the server.

=============================================================================
USAGE
=============================================================================

    # Serve the current directory on localhost:8080
    python -m simplewebserver

    # Listen on all interfaces, port 8000
    python -m simplewebserver 0.0.0.0 8000

    # Serve another directory, 60 requests/minute, 5 minute penalty
    python -m simplewebserver -D ./public -r 60 -d 300

    # Serve everything, including the log files
    python -m simplewebserver -b ""

    # Verbose console plus log files
    python -m simplewebserver -v -l

    # Defaults from the environment; the command line still wins
    SWS_PORT=8000 SWS_RATELIMIT=0 python -m simplewebserver

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import WebServer
from .config import ServerConfig


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Defaults come from the SWS_* environment variables (see
    ServerConfig.from_env), so anything given on the command line wins.
    """
    defaults = ServerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="simplewebserver",
        description="Minimal static file server with traversal protection and rate limiting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  simplewebserver                           # 127.0.0.1:8080, current directory
  simplewebserver 0.0.0.0 8000              # All interfaces, port 8000
  simplewebserver -D ./public -r 60         # 60 requests per minute
  simplewebserver -b secret.txt -b .env     # Never serve these two files
  simplewebserver -b ""                     # No blacklist at all
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "bindto",
        nargs="?",
        default=defaults.host,
        help=f"Address to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--directory", "-D",
        default=defaults.root,
        help=f"Directory to serve (default: {defaults.root})"
    )

    parser.add_argument(
        "--blacklist", "-b",
        action="append",
        default=None,
        metavar="NAME",
        help="File (relative to the directory) never to serve or list. "
             "Repeatable. Defaults to the log files; pass \"\" for none."
    )

    parser.add_argument(
        "--allow-external-symlinks",
        action="store_true",
        default=defaults.allow_external_symlinks,
        help="Serve symlinks that point outside the directory"
    )

    # ─────────────────────────────────────────────────────────────────────
    # RATE LIMITING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--ratelimit", "-r",
        type=int,
        default=defaults.ratelimit,
        help=f"Requests per minute per address, 0 disables (default: {defaults.ratelimit})"
    )

    parser.add_argument(
        "--timeout", "-d",
        type=int,
        default=defaults.timeout,
        help=f"Penalty in seconds once the rate limit is hit (default: {defaults.timeout})"
    )

    parser.add_argument(
        "--max-connections",
        type=int,
        default=defaults.max_connections,
        help=f"Connections handled at the same time (default: {defaults.max_connections})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--quiet", "-q",
        action="store_true",
        default=defaults.quiet,
        help="Disable logging"
    )
    verbosity.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=defaults.verbose,
        help="Log every request (TRACE level)"
    )

    parser.add_argument(
        "--log-file", "-l",
        action="store_true",
        default=defaults.log_file,
        help="Also write the info and trace log files into the directory"
    )

    # ─────────────────────────────────────────────────────────────────────
    # TESTING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--test-mode",
        action="store_true",
        help=argparse.SUPPRESS
    )

    parser.add_argument(
        "--enable-exit-route",
        action="store_true",
        help=argparse.SUPPRESS
    )

    # Appending to a default list would mix the environment blacklist with
    # the command line one, so it is applied only when -b is absent.
    parser.set_defaults(env_blacklist=defaults.blacklist)

    parser.add_argument(
        "--version",
        action="version",
        version=f"simplewebserver {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Translate parsed CLI arguments to a ServerConfig."""
    return ServerConfig(
        host=args.bindto,
        port=args.port,
        root=args.directory,
        ratelimit=args.ratelimit,
        timeout=args.timeout,
        blacklist=args.blacklist if args.blacklist is not None else args.env_blacklist,
        allow_external_symlinks=args.allow_external_symlinks,
        max_connections=args.max_connections,
        quiet=args.quiet,
        verbose=args.verbose,
        log_file=args.log_file,
        test_mode=args.test_mode,
        enable_exit_route=args.enable_exit_route,
    )


def main(argv=None):
    """Main CLI entry point."""
    try:
        parser = build_parser()
    except ValueError as e:
        print(f"Error: invalid SWS_* environment variable: {e}", file=sys.stderr)
        sys.exit(1)

    args = parser.parse_args(argv)

    try:
        server = WebServer(config_from_args(args))
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
