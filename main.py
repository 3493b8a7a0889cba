#!/usr/bin/env python3
"""
Lecture attendance system entry point.
Runs the API server or prints reports from an existing database.
"""
import argparse
import json
import logging
import sys

from attendance.service import AttendanceService
from storage import create_store
from utils.config import config
from utils.errors import AttendanceError
from utils.logger import logger


def build_service(args) -> AttendanceService:
    store = create_store(args.backend, args.db_path)
    return AttendanceService(store=store, threshold=args.threshold)


def cmd_serve(args) -> int:
    from api.api_server import run_server

    service = build_service(args)
    run_server(service, host=args.host, port=args.port)
    return 0


def cmd_report(args) -> int:
    service = build_service(args)
    print(json.dumps(service.get_report(args.lecture_id), indent=2))
    return 0


def cmd_history(args) -> int:
    service = build_service(args)
    print(json.dumps(service.get_history_records(args.student_id), indent=2))
    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Lecture Attendance System",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --backend sqlite --db-path attendance.db
  python main.py report 3f2c... --db-path attendance.db
  python main.py history 9a1b... --db-path attendance.db
        """
    )
    parser.add_argument("--backend", "-b", choices=["memory", "sqlite"], default=None,
                        help=f"Storage backend (default: {config.storage.backend})")
    parser.add_argument("--db-path", "-d", type=str, default=None,
                        help=f"SQLite database path (default: {config.storage.db_path})")
    parser.add_argument("--threshold", "-t", type=float, default=None,
                        help=f"Face match distance threshold (default: {config.face.tolerance})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None, help=f"Bind host (default: {config.api.host})")
    serve.add_argument("--port", "-p", type=int, default=None, help=f"Bind port (default: {config.api.port})")
    serve.set_defaults(func=cmd_serve)

    report = subparsers.add_parser("report", help="Print a lecture attendance report")
    report.add_argument("lecture_id")
    report.set_defaults(func=cmd_report)

    history = subparsers.add_parser("history", help="Print a student's attendance history")
    history.add_argument("student_id")
    history.set_defaults(func=cmd_history)

    args = parser.parse_args(argv)

    if args.command in ("report", "history") and (args.backend or config.storage.backend) == "memory":
        args.backend = "sqlite"

    if args.verbose:
        config.logging.log_level = "DEBUG"
        logger.logger.setLevel(logging.DEBUG)
        for handler in logger.logger.handlers:
            handler.setLevel(logging.DEBUG)

    try:
        return args.func(args)
    except AttendanceError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("Attendance system interrupted by user")
        return 0
    finally:
        logger.shutdown()


if __name__ == "__main__":
    sys.exit(main())
