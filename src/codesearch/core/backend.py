"""
Codesearch Backend Invocation

The search itself is done by an external executable.  This module hides
that side effect behind :class:`SearchBackend` so the parser and the
renderer can be exercised with canned output.

Backend contract::

    <backend> <keyword> <repo_root>/<username> <extension>

Exit status 0 on success; stdout carries the block protocol parsed by
:mod:`codesearch.core.protocol`; stderr is diagnostic only.
"""

import logging
import os
import re
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import Optional

from codesearch.core.config import CodeSearchConfig
from codesearch.core.query import SearchQuery
from codesearch.exceptions import BackendUnavailable, InvalidNamespace

logger = logging.getLogger(__name__)

NAMESPACE_SHAPE = re.compile(r"[A-Za-z0-9_.-]+")
_READ_CHUNK = 64 * 1024


def namespace_path(repo_root: Path, username: str) -> Path:
    """
    Return ``<repo_root>/<username>`` after checking *username* is one
    plain path segment.
    """
    if not username or username in (".", "..") or not NAMESPACE_SHAPE.fullmatch(username):
        raise InvalidNamespace(f"Username {username!r} is not a valid namespace")
    return repo_root / username


def _kill(proc: subprocess.Popen) -> None:
    """Kill *proc* and whatever it spawned (it leads its own session on POSIX)."""
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except (ProcessLookupError, PermissionError):
        pass


# =============================================================================
# Backend Abstraction
# =============================================================================

class SearchBackend:
    """
    Abstract base for search backends.

    Subclasses return the backend's raw stdout for one query and raise
    :class:`~codesearch.exceptions.BackendUnavailable` on failure.
    """

    def invoke(self, query: SearchQuery, namespace: Path,
               cancel: Optional[threading.Event] = None) -> bytes:
        """Run *query* against the repositories under *namespace*."""
        raise NotImplementedError


class _BoundedReader(threading.Thread):
    """Drain a pipe into memory, stopping at *limit* bytes."""

    def __init__(self, stream, limit: int):
        super().__init__(daemon=True)
        self._stream = stream
        self._limit = limit
        self.data = bytearray()
        self.overflowed = threading.Event()

    def run(self):
        try:
            for chunk in iter(lambda: self._stream.read1(_READ_CHUNK), b""):
                room = self._limit - len(self.data)
                if len(chunk) > room:
                    self.data.extend(chunk[:room])
                    self.overflowed.set()
                    # keep draining so the child never blocks on a full pipe
                    continue
                self.data.extend(chunk)
        except (OSError, ValueError):
            # pipe closed underneath us after the process was killed
            pass


class ProcessBackend(SearchBackend):
    """
    Run the configured backend executable as a child process.

    Every invocation is bounded in time (``backend_timeout``) and in
    captured output (``max_output_bytes``).  At most
    ``max_concurrent_searches`` processes run at once per backend
    instance; callers waiting longer than ``queue_timeout`` for a slot
    fail fast.  Setting the *cancel* event kills the running process.
    """

    def __init__(self, config: CodeSearchConfig | None = None):
        self._config = config or CodeSearchConfig.from_env()
        self._slots = threading.BoundedSemaphore(self._config.max_concurrent_searches)

    @property
    def config(self) -> CodeSearchConfig:
        return self._config

    def invoke(self, query: SearchQuery, namespace: Path,
               cancel: Optional[threading.Event] = None) -> bytes:
        executable = self._config.resolve_backend_path()
        args = [str(executable), query.keyword, str(namespace), query.extension]

        if not self._slots.acquire(timeout=self._config.queue_timeout):
            raise BackendUnavailable(
                f"No free search slot after {self._config.queue_timeout}s "
                f"({self._config.max_concurrent_searches} searches running)"
            )
        try:
            if cancel is not None and cancel.is_set():
                raise BackendUnavailable("Search was cancelled")
            return self._run(args, executable.parent, cancel)
        finally:
            self._slots.release()

    # ── Internal helpers ──────────────────────────────────────────

    def _run(self, args: list, cwd: Path, cancel: Optional[threading.Event]) -> bytes:
        cfg = self._config
        t0 = time.perf_counter()
        logger.debug(f"Spawning search backend: {args[0]} (ext={args[3]!r})")
        try:
            proc = subprocess.Popen(
                args,
                cwd=str(cwd),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=(os.name == "posix"),
            )
        except OSError as exc:
            raise BackendUnavailable(f"Could not start search backend {args[0]}", cause=exc) from exc

        out = _BoundedReader(proc.stdout, cfg.max_output_bytes)
        err = _BoundedReader(proc.stderr, cfg.max_stderr_bytes)
        out.start()
        err.start()

        failure: Optional[str] = None
        deadline = t0 + cfg.backend_timeout
        try:
            while proc.poll() is None:
                if cancel is not None and cancel.is_set():
                    failure = "Search was cancelled"
                elif out.overflowed.is_set():
                    failure = f"Search output exceeded {cfg.max_output_bytes} bytes"
                elif time.perf_counter() >= deadline:
                    failure = f"Search timed out after {cfg.backend_timeout}s"
                if failure:
                    _kill(proc)
                    break
                try:
                    proc.wait(timeout=cfg.poll_interval)
                except subprocess.TimeoutExpired:
                    continue
        finally:
            # the process group can outlive its leader; kill it on every exit
            _kill(proc)
            proc.wait()
            for reader, stream in ((out, proc.stdout), (err, proc.stderr)):
                reader.join(timeout=1.0)
                if not reader.is_alive():
                    stream.close()

        stderr = bytes(err.data)
        if stderr:
            logger.debug(f"Search backend stderr: {stderr.decode('utf-8', errors='replace').strip()}")

        if failure is None and out.overflowed.is_set():
            failure = f"Search output exceeded {cfg.max_output_bytes} bytes"
        if failure is None and out.is_alive():
            failure = "Search backend output did not close after exit"
        if failure is not None:
            raise BackendUnavailable(failure, returncode=proc.returncode, stderr=stderr)
        if proc.returncode != 0:
            raise BackendUnavailable(
                f"Search backend exited with status {proc.returncode}",
                cause=subprocess.CalledProcessError(proc.returncode, args, stderr=stderr),
                returncode=proc.returncode,
                stderr=stderr,
            )

        logger.debug(f"Search backend returned {len(out.data)} bytes in {time.perf_counter() - t0:.3f}s")
        return bytes(out.data)
