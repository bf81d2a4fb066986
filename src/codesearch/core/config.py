"""
Codesearch Configuration Module

Centralized configuration for the code-search pipeline: where the
backend executable lives, where user repositories are stored, and the
resource limits placed on every backend invocation.

Configuration is instance-based.  Build it from the environment::

    config = CodeSearchConfig.from_env()

or with explicit values (tests, embedding)::

    config = CodeSearchConfig(work_dir="/srv/gogs", repo_root_path="/srv/repos")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from codesearch.exceptions import ConfigurationUnavailable


@dataclass
class CodeSearchConfig:
    """
    Instance-based configuration for codesearch.

    Each instance is self-contained and passed explicitly through the
    call stack, so the pipeline never reads process-wide globals and
    tests stay deterministic.
    """

    # ── Locations ─────────────────────────────────────────────────
    work_dir: Optional[str] = None
    """Application working directory; the backend path is resolved against it."""
    repo_root_path: Optional[str] = None
    """Directory holding one sub-directory per user namespace."""
    backend_command: str = "scripts/searchcode"
    """Backend executable, relative to :attr:`work_dir` unless absolute."""

    # ── Backend limits ────────────────────────────────────────────
    backend_timeout: float = 10.0
    max_output_bytes: int = 4 * 1024 * 1024
    max_stderr_bytes: int = 64 * 1024
    max_concurrent_searches: int = 4
    queue_timeout: float = 5.0
    poll_interval: float = 0.05

    # ── Rendering ─────────────────────────────────────────────────
    default_branch: str = "master"

    # ── HTTP server ───────────────────────────────────────────────
    host: str = "127.0.0.1"
    port: int = 3000
    auth_header: str = "X-WEBAUTH-USER"
    """Header set by the authenticating reverse proxy to the signed-in username."""
    disconnect_poll_interval: float = 0.25

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "CodeSearchConfig":
        """Build a config snapshot from current environment variables."""
        return cls(
            work_dir=os.getenv("CODESEARCH_WORK_DIR") or None,
            repo_root_path=os.getenv("CODESEARCH_REPO_ROOT") or None,
            backend_command=os.getenv("CODESEARCH_BACKEND", "scripts/searchcode"),
            backend_timeout=float(os.getenv("CODESEARCH_TIMEOUT", "10.0")),
            max_output_bytes=int(os.getenv("CODESEARCH_MAX_OUTPUT", str(4 * 1024 * 1024))),
            max_concurrent_searches=int(os.getenv("CODESEARCH_MAX_CONCURRENT", "4")),
            queue_timeout=float(os.getenv("CODESEARCH_QUEUE_TIMEOUT", "5.0")),
            default_branch=os.getenv("CODESEARCH_BRANCH", "master"),
            host=os.getenv("CODESEARCH_HOST", "127.0.0.1"),
            port=int(os.getenv("CODESEARCH_PORT", "3000")),
            auth_header=os.getenv("CODESEARCH_AUTH_HEADER", "X-WEBAUTH-USER"),
            log_level=os.getenv("CODESEARCH_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Check that both locations resolve and the limits are usable.

        Raises :class:`~codesearch.exceptions.ConfigurationUnavailable`
        on failure.
        """
        self.resolve_backend_path()
        self.resolve_repo_root()
        if self.backend_timeout <= 0:
            raise ConfigurationUnavailable("backend_timeout must be positive")
        if self.max_output_bytes <= 0:
            raise ConfigurationUnavailable("max_output_bytes must be positive")
        if self.max_concurrent_searches < 1:
            raise ConfigurationUnavailable("max_concurrent_searches must be at least 1")
        return True

    def resolve_work_dir(self) -> Path:
        """Return the working directory, which must exist."""
        if not self.work_dir:
            raise ConfigurationUnavailable(
                "Work directory is not configured. Set CODESEARCH_WORK_DIR."
            )
        path = Path(self.work_dir).resolve()
        if not path.is_dir():
            raise ConfigurationUnavailable(f"Work directory {path} does not exist.")
        return path

    def resolve_backend_path(self) -> Path:
        """Return the absolute path of the backend executable."""
        command = Path(self.backend_command)
        path = command if command.is_absolute() else self.resolve_work_dir() / command
        if not path.is_file():
            raise ConfigurationUnavailable(f"Search backend {path} not found.")
        if not os.access(path, os.X_OK):
            raise ConfigurationUnavailable(f"Search backend {path} is not executable.")
        return path

    def resolve_repo_root(self) -> Path:
        """Return the absolute repository root directory."""
        if not self.repo_root_path:
            raise ConfigurationUnavailable(
                "Repository root is not configured. Set CODESEARCH_REPO_ROOT."
            )
        return Path(self.repo_root_path).resolve()
