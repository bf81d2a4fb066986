"""
Codesearch Exception Hierarchy

Structured exceptions for the code-search pipeline.  Each exception type
maps to one failure mode so that the CLI and the web layer can decide
what to show without parsing message strings.

Usage::

    from codesearch.exceptions import CodeSearchError, BackendUnavailable

    try:
        outcome = client.search("ext:go parseConfig", username="alice")
    except BackendUnavailable as exc:
        logger.error(f"search backend failed: {exc.cause}")
    except CodeSearchError as exc:
        print(f"Codesearch error: {exc}")
"""


class CodeSearchError(Exception):
    """Base exception for all codesearch errors."""


class ConfigurationUnavailable(CodeSearchError, ValueError):
    """Work directory, backend executable or repository root cannot be resolved.

    Inherits from ``ValueError`` so callers validating configuration can
    keep catching the builtin type.
    """


class BackendUnavailable(CodeSearchError):
    """The search backend process could not deliver a result.

    Covers spawn failures, non-zero exit, timeouts, oversized output,
    cancellation and an exhausted concurrency limit.  The underlying
    error and the captured stderr are kept for logging; neither is meant
    for end users.
    """

    def __init__(self, message: str, *, cause: BaseException | None = None,
                 returncode: int | None = None, stderr: bytes = b""):
        super().__init__(message)
        self.cause = cause
        self.returncode = returncode
        self.stderr = stderr


class MalformedProtocolBlock(CodeSearchError):
    """A block of backend output does not have the expected shape.

    Raised by the block parser and recovered by :func:`parse_results`,
    which drops the block and keeps going.
    """

    def __init__(self, message: str, *, header: str = ""):
        super().__init__(message)
        self.header = header


class InvalidNamespace(CodeSearchError, ValueError):
    """The acting username cannot be used as a repository namespace."""
