"""Scout subprocess supervisor.

Spawns the external scraper in one of two modes:

* test mode — ``--dry-run <url>``, bounded by a wall-clock timeout; output is
  captured and scanned for a ``PREVIEW_JSON:`` line.
* run mode — fire-and-forget; output is streamed to the log and the process
  reports its own status to the run registry.

Every spawn is tracked by run id so callers can ask whether a run is still
alive without waiting for the scraper to report.
"""

import logging
import os
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, TextIO

from app.config import get_settings
from app.exceptions import RunTimeoutError, SpawnError
from app.models.base import new_id
from app.models.scout_run import RunStatus
from app.models.scout_target import ScoutTarget
from app.services.preview_parser import PreviewScanner

logger = logging.getLogger(__name__)

STDERR_PREFIX = "[stderr] "
MAX_FINISHED_HANDLES = 100


@dataclass
class RunHandle:
    """A single spawned scraper process."""

    run_id: str
    argv: list[str]
    mode: str
    state: RunStatus = RunStatus.STARTING
    process: subprocess.Popen | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    returncode: int | None = None

    @property
    def alive(self) -> bool:
        return self.process is not None and self.process.poll() is None

    def finish(self, state: RunStatus) -> None:
        if self.process is not None:
            self.returncode = self.process.returncode
        self.state = state
        self.finished_at = datetime.now(timezone.utc)


@dataclass
class DryRunResult:
    """Outcome of a dry run. Carries a preview or a diagnostic log, never both."""

    success: bool
    preview: dict[str, Any] | None = None
    log: str | None = None
    timed_out: bool = False
    returncode: int | None = None

    def to_response(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "preview": self.preview}
        return {"success": False, "log": self.log or "", "timed_out": self.timed_out}


class ScoutSupervisor:
    def __init__(self, command: list[str], workdir: str, test_timeout: float = 45.0):
        if not command:
            raise ValueError("Scout command must not be empty")
        self.command = list(command)
        self.workdir = workdir
        self.test_timeout = test_timeout
        self.handles: dict[str, RunHandle] = {}
        self._lock = threading.Lock()

    # ── Tracking ────────────────────────────────────────────────

    def get_handle(self, run_id: str) -> RunHandle | None:
        with self._lock:
            return self.handles.get(run_id)

    def is_alive(self, run_id: str) -> bool:
        handle = self.get_handle(run_id)
        return handle is not None and handle.alive

    def live_run_ids(self) -> list[str]:
        with self._lock:
            return [run_id for run_id, handle in self.handles.items() if handle.alive]

    def _track(self, handle: RunHandle) -> None:
        with self._lock:
            self.handles[handle.run_id] = handle
            finished = [h for h in self.handles.values() if h.finished_at is not None]
            if len(finished) > MAX_FINISHED_HANDLES:
                finished.sort(key=lambda h: h.finished_at)
                for stale in finished[: len(finished) - MAX_FINISHED_HANDLES]:
                    del self.handles[stale.run_id]

    # ── Process plumbing ────────────────────────────────────────

    def _spawn(self, run_id: str, argv: list[str], mode: str) -> RunHandle:
        handle = RunHandle(run_id=run_id, argv=argv, mode=mode)
        self._track(handle)
        try:
            # No shell: URLs reach the scraper as single argv entries
            handle.process = subprocess.Popen(
                argv,
                cwd=self.workdir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            handle.finish(RunStatus.FAILED)
            raise SpawnError(f"Could not start scout ({argv[0]}): {e}", argv=argv) from e

        handle.state = RunStatus.RUNNING
        logger.info(f"[scout {run_id}] Spawned pid {handle.process.pid} ({mode} mode)")
        return handle

    @staticmethod
    def _pump(stream: TextIO, sink: Callable[[str], None], prefix: str = "") -> threading.Thread:
        def _read():
            try:
                for line in iter(stream.readline, ""):
                    sink(prefix + line.rstrip("\r\n"))
            finally:
                stream.close()

        thread = threading.Thread(target=_read, daemon=True)
        thread.start()
        return thread

    @staticmethod
    def _kill(process: subprocess.Popen) -> None:
        """SIGKILL the scraper and anything it started (headless browsers)."""
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except (ProcessLookupError, PermissionError):
            process.kill()
        process.wait()

    def _await_exit(self, handle: RunHandle, timeout: float) -> int:
        try:
            return handle.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"[scout {handle.run_id}] Timed out after {timeout:g}s, killing")
            self._kill(handle.process)
            raise RunTimeoutError(timeout) from None

    # ── Test mode ───────────────────────────────────────────────

    def run_test(self, url: str) -> DryRunResult:
        """Dry-run the scraper against ``url`` and wait for a preview.

        Raises:
            SpawnError: the scraper could not be started.
        """
        run_id = new_id()
        handle = self._spawn(run_id, [*self.command, "--dry-run", url], mode="test")

        lines: list[str] = []
        lines_lock = threading.Lock()
        scanner = PreviewScanner()

        def collect(line: str) -> None:
            with lines_lock:
                lines.append(line)

        def collect_stdout(line: str) -> None:
            # The preview marker only counts on stdout
            with lines_lock:
                lines.append(line)
                scanner.feed(line)

        readers = [
            self._pump(handle.process.stdout, collect_stdout),
            self._pump(handle.process.stderr, collect, STDERR_PREFIX),
        ]

        timed_out = False
        try:
            self._await_exit(handle, self.test_timeout)
        except RunTimeoutError:
            timed_out = True
        for reader in readers:
            reader.join(timeout=5)

        with lines_lock:
            log = "\n".join(lines)

        if timed_out:
            handle.finish(RunStatus.TIMED_OUT)
            return DryRunResult(success=False, log=log, timed_out=True, returncode=handle.returncode)

        preview = scanner.preview
        if preview is None:
            handle.finish(RunStatus.FAILED)
            logger.info(f"[scout {run_id}] Test of {url} produced no preview (exit {handle.process.returncode})")
            return DryRunResult(success=False, log=log, returncode=handle.returncode)

        handle.finish(RunStatus.SUCCEEDED)
        logger.info(f"[scout {run_id}] Test of {url} produced a preview")
        return DryRunResult(success=True, preview=preview, returncode=handle.returncode)

    # ── Run mode ────────────────────────────────────────────────

    def build_run_argv(self, run_id: str, url: str | None = None, target: ScoutTarget | None = None) -> list[str]:
        argv = [*self.command, "--run-id", run_id]
        if url:
            argv += ["--url", url]
        elif target is not None:
            argv += ["--url", target.url, "--target-id", target.id]
            if target.selector:
                argv += ["--selector", target.selector]
        return argv

    def launch(
        self,
        url: str | None = None,
        target: ScoutTarget | None = None,
        run_id: str | None = None,
    ) -> RunHandle | None:
        """Start a full scrape (all targets, one target, or one URL) and return at once.

        Spawn failures are logged and yield None.
        """
        run_id = run_id or new_id()
        argv = self.build_run_argv(run_id, url=url, target=target)
        try:
            handle = self._spawn(run_id, argv, mode="run")
        except SpawnError as e:
            logger.error(f"[scout {run_id}] {e}")
            return None

        threading.Thread(
            target=self._stream_run,
            args=(handle,),
            name=f"scout-{run_id}",
            daemon=True,
        ).start()
        return handle

    def _stream_run(self, handle: RunHandle) -> None:
        prefix = f"[scout {handle.run_id}] "
        readers = [
            self._pump(handle.process.stdout, lambda line: logger.info(prefix + line)),
            self._pump(handle.process.stderr, lambda line: logger.warning(prefix + STDERR_PREFIX + line)),
        ]
        returncode = handle.process.wait()
        for reader in readers:
            reader.join(timeout=5)

        handle.finish(RunStatus.SUCCEEDED if returncode == 0 else RunStatus.FAILED)
        if returncode == 0:
            logger.info(f"{prefix}Exited cleanly")
        else:
            logger.error(f"{prefix}Exited with code {returncode}")


@lru_cache
def get_supervisor() -> ScoutSupervisor:
    settings = get_settings()
    return ScoutSupervisor(
        command=settings.scout_argv,
        workdir=settings.scout_workdir,
        test_timeout=settings.scout_test_timeout,
    )
