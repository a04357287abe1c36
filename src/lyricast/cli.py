"""CLI entry points for Lyricast.

lyricast-server: Runs the Flask resolver server
lyricast: Queries a running server (queue lookup, outcome reports)
"""

import argparse
import json
import logging
import sys


def run_server():
    """Entry point for lyricast-server command."""
    parser = argparse.ArgumentParser(
        description="Lyricast server - video candidate queues for a lyrics display"
    )
    parser.add_argument(
        "--host", default=None, help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port", type=int, default=None, help="Port to listen on (default: 5060)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to lyricast.toml config file"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug mode"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Suppress per-request werkzeug logs"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    from lyricast.config import load_config
    from lyricast.server.app import create_app

    config = load_config(args.config)

    # CLI args override config file
    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    app = create_app(config.server)

    if args.quiet:
        logging.getLogger("werkzeug").setLevel(logging.WARNING)

    logging.getLogger("lyricast").info(
        "Lyricast server starting on %s:%d (store=%s, search=%s)",
        config.server.host, config.server.port,
        config.server.store_backend, config.server.search_provider,
    )

    app.run(
        host=config.server.host,
        port=config.server.port,
        debug=args.debug,
        threaded=True,
        use_reloader=False,
    )


def run_cli(argv: list[str] | None = None) -> int:
    """Entry point for lyricast command. Talks to a running server over HTTP."""
    from lyricast.config import load_config
    from lyricast.models import OutcomeReport
    from lyricast.player.api_client import LyricastAPIError, LyricastClient

    parser = argparse.ArgumentParser(description="Lyricast video queue tool")
    parser.add_argument(
        "--server", default=None,
        help="Lyricast server URL (default: from config or http://localhost:5060)"
    )
    parser.add_argument(
        "--config", default=None, help="Path to lyricast.toml config file"
    )
    sub = parser.add_subparsers(dest="command")

    p_queue = sub.add_parser("queue", help="Show the candidate queue for a track")
    p_queue.add_argument("artist")
    p_queue.add_argument("track")
    p_queue.add_argument("--user", default=None, help="User id for preferences")

    p_report = sub.add_parser("report", help="Report a playback outcome")
    p_report.add_argument("artist")
    p_report.add_argument("track")
    p_report.add_argument("video_id")
    p_report.add_argument("--user", required=True, help="Reporting user id")
    p_report.add_argument("--failed", action="store_true", help="Report as unplayable")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    config = load_config(args.config)
    client = LyricastClient(
        args.server or config.player.server_url,
        timeout=config.player.request_timeout,
    )
    try:
        if args.command == "queue":
            result = client.get_queue(args.artist, args.track, args.user).to_dict()
        else:
            result = client.report_outcome(OutcomeReport(
                artist=args.artist,
                track=args.track,
                video_id=args.video_id,
                user_id=args.user,
                status="failed" if args.failed else None,
            ))
    except LyricastAPIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()

    print(json.dumps(result, indent=2))
    return 0


def main():
    sys.exit(run_cli())
