"""
Shared fixtures for the codesearch test suite.
"""

import os
import sys
import threading
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# codesearch.core.* can be imported without installing the package.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from codesearch.core.backend import SearchBackend  # noqa: E402
from codesearch.core.config import CodeSearchConfig  # noqa: E402

# Keep the developer's environment out of from_env() based tests.
for _var in ("CODESEARCH_WORK_DIR", "CODESEARCH_REPO_ROOT", "CODESEARCH_BACKEND"):
    os.environ.pop(_var, None)


SAMPLE_OUTPUT = (
    b"main.go: sample excerpt\n"
    b"1.foo()\n"
    b"2.bar()\n"
    b"--\n"
    b"util.go: other excerpt\n"
    b"5.baz()\n"
)


class CannedBackend(SearchBackend):
    """Backend double returning fixed output and recording every call."""

    def __init__(self, output: bytes = SAMPLE_OUTPUT, error: Exception | None = None):
        self.output = output
        self.error = error
        self.calls = []

    def invoke(self, query, namespace, cancel=None):
        self.calls.append((query, namespace))
        if self.error is not None:
            raise self.error
        return self.output


class BlockingBackend(SearchBackend):
    """Backend double that blocks until its cancel event is set."""

    def __init__(self):
        self.started = threading.Event()
        self.saw_cancel = threading.Event()

    def invoke(self, query, namespace, cancel=None):
        self.started.set()
        if cancel is not None and cancel.wait(timeout=5):
            self.saw_cancel.set()
        return b""


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sample_output() -> bytes:
    """Two well-formed blocks: main.go (lines 1, 2) and util.go (line 5)."""
    return SAMPLE_OUTPUT


@pytest.fixture
def canned_backend() -> CannedBackend:
    return CannedBackend()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A work directory with an empty scripts/ folder and a repository root."""
    (tmp_path / "work" / "scripts").mkdir(parents=True)
    (tmp_path / "repos" / "alice").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def make_script(workspace: Path):
    """Write ``work/scripts/searchcode`` with the given shell body."""

    def _write(body: str) -> Path:
        script = workspace / "work" / "scripts" / "searchcode"
        script.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
        script.chmod(0o755)
        return script

    return _write


@pytest.fixture
def config(workspace: Path) -> CodeSearchConfig:
    """Config pointing at the temporary workspace with short limits."""
    return CodeSearchConfig(
        work_dir=str(workspace / "work"),
        repo_root_path=str(workspace / "repos"),
        backend_timeout=5.0,
        queue_timeout=0.2,
    )
