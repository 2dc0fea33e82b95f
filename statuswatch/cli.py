"""
statuswatch CLI - thin entrypoint for operator commands.

Commands:
- run      start the poll and cleanup loops (optionally the monitor API)
- poll     run one poll cycle and exit
- cleanup  run one cleanup cycle and exit
- status   print tracked status records

Exit Codes:
===========
- 0: Success
- 1: Startup or configuration error
- 2: Cycle failure (store or settings error)
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from .config import WatcherConfig
from .logging_config import setup_logging
from .persistence import PersistenceError, PersistenceManager, SettingsFile, StoreGateway
from .watcher.engine import WatcherEngine
from .watcher.errors import ConfigurationMissingError
from .watcher.models import FileState
from .watcher.scheduling import WatcherService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_CYCLE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statuswatch",
        description="Track files through an import directory and a failed directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s run                              # Poll every 5s, clean up every 60s
  %(prog)s run --monitor-port 8086          # Also serve the read-only monitor API
  %(prog)s --settings ./settings.json poll  # One reconciliation pass
  %(prog)s status --state failed            # List failed files
        """,
    )
    parser.add_argument("--db", dest="db_path", metavar="PATH",
                        help="SQLite database file (env: STATUSWATCH_DB)")
    parser.add_argument("--settings", dest="settings_path", metavar="PATH",
                        help="JSON settings document (env: STATUSWATCH_SETTINGS)")
    parser.add_argument("--log-level", dest="log_level", metavar="LEVEL",
                        help="DEBUG, INFO, WARNING or ERROR (env: STATUSWATCH_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Start the poll and cleanup loops")
    run_parser.add_argument("--poll-seconds", type=float, metavar="N",
                            help="Seconds between poll cycles (default: 5)")
    run_parser.add_argument("--cleanup-seconds", type=float, metavar="N",
                            help="Seconds between cleanup cycles (default: 60)")
    run_parser.add_argument("--monitor-port", type=int, metavar="PORT",
                            help="Serve the read-only monitor API on this port")

    subparsers.add_parser("poll", help="Run one poll cycle and exit")
    subparsers.add_parser("cleanup", help="Run one cleanup cycle and exit")

    status_parser = subparsers.add_parser("status", help="Print tracked status records")
    status_parser.add_argument("--state", choices=[state.value for state in FileState],
                               help="Only show records in this state")

    return parser


def _load_config(args: argparse.Namespace) -> WatcherConfig:
    return WatcherConfig.from_env(
        db_path=args.db_path,
        settings_path=args.settings_path,
        log_level=args.log_level,
        poll_seconds=getattr(args, "poll_seconds", None),
        cleanup_seconds=getattr(args, "cleanup_seconds", None),
    )


def _run_service(config: WatcherConfig, engine: WatcherEngine,
                 persistence: PersistenceManager, monitor_port: Optional[int]) -> int:
    service = WatcherService(
        engine,
        poll_interval=config.poll_seconds,
        cleanup_interval=config.cleanup_seconds,
    )
    if not service.start():
        return EXIT_CONFIG_ERROR

    try:
        if monitor_port is not None:
            from .monitoring.server import run_monitor_server
            run_monitor_server(persistence, service, port=monitor_port)
        else:
            stop_requested = threading.Event()

            def _handle_signal(signum, frame):
                logger.info(f"Received signal {signum}, shutting down...")
                stop_requested.set()

            signal.signal(signal.SIGTERM, _handle_signal)
            signal.signal(signal.SIGINT, _handle_signal)
            stop_requested.wait()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        service.stop()

    return EXIT_OK


def _run_poll(engine: WatcherEngine) -> int:
    result = engine.run_poll_cycle()
    summary = result.reconcile
    print(
        f"import: {result.import_files} file(s), failed: {result.failed_files} file(s), "
        f"tracked: {result.tracked}"
    )
    print(
        f"new: {summary.created}, processed: {summary.processed}, "
        f"failed: {summary.failed}, retried: {summary.retried}"
    )
    return EXIT_OK


def _run_cleanup(engine: WatcherEngine) -> int:
    report = engine.run_cleanup_cycle()
    print(
        f"timed out: {report.timed_out}, records deleted: {report.statuses_deleted}, "
        f"files deleted: {report.files_deleted}, file errors: {report.file_errors}"
    )
    return EXIT_OK


def _print_statuses(persistence: PersistenceManager, state: Optional[str]) -> int:
    statuses = persistence.list_statuses(FileState(state) if state else None)
    if not statuses:
        print("No tracked files")
        return EXIT_OK

    for record in statuses:
        remarks = f"  {record.remarks}" if record.remarks else ""
        print(
            f"{record.last_updated.isoformat(timespec='seconds')}  "
            f"{record.status.value:<10}  {record.source:<10}  {record.name}{remarks}"
        )
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except ValidationError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_level)

    try:
        persistence = PersistenceManager(config.db_path)
    except PersistenceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    gateway = StoreGateway(persistence, SettingsFile(config.settings_path))
    engine = WatcherEngine(gateway)

    try:
        if args.command == "run":
            return _run_service(config, engine, persistence, args.monitor_port)
        if args.command == "poll":
            return _run_poll(engine)
        if args.command == "cleanup":
            return _run_cleanup(engine)
        return _print_statuses(persistence, args.state)
    except ConfigurationMissingError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except PersistenceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CYCLE_ERROR


if __name__ == "__main__":
    sys.exit(main())
