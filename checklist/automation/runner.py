"""
Tool: Checklist Runner (Timer Host)
Purpose: Deliver due notifications for as long as the process runs

Features:
- Resumes on start: seeds the daily reset timer, delivers overdue notifications
- Sleeps until the next pending notification, capped by the poll interval
- PID file for single-instance enforcement
- Status file for health checks
- Graceful shutdown on SIGTERM/SIGINT that interrupts the current wait
- Daemonization support

Usage:
    python -m checklist.automation.runner --start
    python -m checklist.automation.runner --start --daemon
    python -m checklist.automation.runner --stop
    python -m checklist.automation.runner --status

Dependencies:
    - asyncio (stdlib)
    - pyyaml
"""

from __future__ import annotations

import argparse
import asyncio
import atexit
import json
import os
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from .. import PROJECT_ROOT
from ..app import ChecklistApp, build_app
from ..logging_config import bind_context, get_logger, setup_logging
from ..presentation import ConsoleRenderer
from .instants import format_instant


logger = get_logger(__name__)


class ChecklistRunner:
    """Single-threaded loop that delivers due notifications to the dispatcher."""

    def __init__(self, app: ChecklistApp, root: Path | None = None):
        self.app = app
        self.running = False
        self.start_time: datetime | None = None
        self.dispatched = 0
        self.errors = 0
        self.last_run: datetime | None = None
        self._stop_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

        root = root or PROJECT_ROOT
        runner_config = app.config.get("runner", {})
        self.pid_file = root / runner_config.get("pid_file", ".tmp/checklist.pid")
        self.status_file = root / runner_config.get("status_file", ".tmp/checklist_status.json")
        self.poll_interval = float(runner_config.get("poll_interval_seconds", 30))

    def _ensure_dirs(self):
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.status_file.parent.mkdir(parents=True, exist_ok=True)

    def _write_pid(self):
        self._ensure_dirs()
        with open(self.pid_file, "w") as f:
            f.write(str(os.getpid()))

    def _remove_pid(self):
        if self.pid_file.exists():
            self.pid_file.unlink()

    def _read_pid(self) -> int | None:
        if not self.pid_file.exists():
            return None
        try:
            with open(self.pid_file) as f:
                return int(f.read().strip())
        except (OSError, ValueError):
            return None

    def _is_running(self) -> bool:
        """Check if another instance is running."""
        pid = self._read_pid()
        if pid is None:
            return False

        try:
            os.kill(pid, 0)
            return True
        except OSError:
            # Stale PID file
            self._remove_pid()
            return False

    def _write_status(self):
        next_fire_at = self.app.store.next_fire_at()
        status = {
            "running": self.running,
            "pid": os.getpid() if self.running else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "dispatched": self.dispatched,
            "errors": self.errors,
            "next_fire_at": format_instant(next_fire_at) if next_fire_at else None,
            "days_remaining": self.app.days_remaining(),
            "updated_at": datetime.now().isoformat(),
        }

        self._ensure_dirs()
        with open(self.status_file, "w") as f:
            json.dump(status, f, indent=2)

    def _read_status(self) -> dict[str, Any]:
        if not self.status_file.exists():
            return {"running": False}
        try:
            with open(self.status_file) as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return {"running": False}

    def _setup_signal_handlers(self):
        loop = self._loop

        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down")
            # Wakes the loop even while it is waiting for the next notification
            loop.call_soon_threadsafe(self.request_stop)

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

    def request_stop(self) -> None:
        """End the delivery loop without waiting out the current sleep."""
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def _wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until a stop is requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def seconds_until_next(self) -> float:
        """How long to sleep before the next pending notification is due."""
        next_fire_at = self.app.store.next_fire_at()
        if next_fire_at is None:
            return self.poll_interval

        wait = (next_fire_at - self.app.dispatcher.clock()).total_seconds()
        return max(0.0, min(wait, self.poll_interval))

    def run_once(self) -> int:
        """Deliver everything currently due."""
        dispatched = self.app.dispatcher.process_due()
        self.dispatched += dispatched
        self.last_run = datetime.now()
        return dispatched

    async def start(self, install_signal_handlers: bool = True, max_iterations: int | None = None) -> bool:
        """Resume and run the delivery loop until stopped."""
        if self._is_running():
            logger.error(f"Checklist runner already running (PID: {self._read_pid()})")
            return False

        self.running = True
        self.start_time = datetime.now()
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        bind_context(component="runner", pid=os.getpid())

        self._write_pid()
        atexit.register(self._remove_pid)

        if install_signal_handlers:
            self._setup_signal_handlers()

        resumed = self.app.resume()
        self.dispatched += resumed
        logger.info(f"Checklist runner started, {resumed} overdue notification(s) delivered")
        self._write_status()

        iterations = 0
        while self.running:
            try:
                self.run_once()
            except Exception as e:
                # A failed batch was rolled back; its notifications stay pending
                logger.exception(f"Dispatch error: {e}")
                self.errors += 1

            self._write_status()

            iterations += 1
            if max_iterations is not None and iterations >= max_iterations:
                break

            await self._wait(self.seconds_until_next())

        self.running = False
        self._write_status()
        self._remove_pid()
        logger.info("Checklist runner stopped")

        return True

    def stop(self) -> dict[str, Any]:
        """Stop the running daemon."""
        pid = self._read_pid()
        if pid is None:
            return {"success": False, "error": "Runner not running"}

        try:
            os.kill(pid, signal.SIGTERM)
            return {"success": True, "pid": pid, "message": f"Sent SIGTERM to PID {pid}"}
        except OSError as e:
            return {"success": False, "error": str(e)}

    def get_status(self) -> dict[str, Any]:
        status = self._read_status()
        pid = self._read_pid()

        if pid:
            try:
                os.kill(pid, 0)
                status["actually_running"] = True
            except OSError:
                status["actually_running"] = False
        else:
            status["actually_running"] = False

        status["pid_file"] = str(self.pid_file)
        status["status_file"] = str(self.status_file)

        return status


def daemonize(log_path: Path):
    """Fork and daemonize the process."""
    try:
        pid = os.fork()
        if pid > 0:
            sys.exit(0)
    except OSError as e:
        print(f"Fork #1 failed: {e}")
        sys.exit(1)

    os.chdir(str(PROJECT_ROOT))
    os.setsid()
    os.umask(0)

    try:
        pid = os.fork()
        if pid > 0:
            sys.exit(0)
    except OSError as e:
        print(f"Fork #2 failed: {e}")
        sys.exit(1)

    sys.stdout.flush()
    sys.stderr.flush()

    log_path.parent.mkdir(parents=True, exist_ok=True)

    with open("/dev/null") as devnull:
        os.dup2(devnull.fileno(), sys.stdin.fileno())

    with open(log_path, "a") as log:
        os.dup2(log.fileno(), sys.stdout.fileno())
        os.dup2(log.fileno(), sys.stderr.fileno())


def main():
    parser = argparse.ArgumentParser(description="Checklist Runner")
    parser.add_argument("--start", action="store_true", help="Start the runner")
    parser.add_argument("--stop", action="store_true", help="Stop the runner")
    parser.add_argument("--status", action="store_true", help="Show runner status")
    parser.add_argument("--daemon", action="store_true", help="Run as daemon (background)")
    parser.add_argument("--quiet", action="store_true", help="Do not print the board on redraw")

    args = parser.parse_args()
    setup_logging(json_output=args.daemon or None)

    if args.start and args.daemon and hasattr(os, "fork"):
        print("Starting checklist runner in background...")
        daemonize(PROJECT_ROOT / ".tmp" / "checklist.log")

    # Opened after forking so the daemon owns its own database connection
    app = build_app()
    runner = ChecklistRunner(app)
    result = None

    if args.start:
        if not args.quiet and not args.daemon:
            app.use_presenter(ConsoleRenderer(app.board))

        success = asyncio.run(runner.start())
        result = {"success": success}

    elif args.stop:
        result = runner.stop()

    elif args.status:
        result = {"success": True, "status": runner.get_status()}

    else:
        parser.print_help()
        sys.exit(0)

    app.close()

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
