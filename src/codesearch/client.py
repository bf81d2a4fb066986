"""
Codesearch Client Facade

Single entry point for programmatic use of the code-search pipeline.

Usage::

    from codesearch import CodeSearch

    # From environment variables
    client = CodeSearch()

    # With explicit configuration
    from codesearch.core.config import CodeSearchConfig
    client = CodeSearch(config=CodeSearchConfig(
        work_dir="/srv/gogs",
        repo_root_path="/srv/gogs-repositories",
    ))

    outcome = client.search("ext:go parseConfig", username="alice")
    for group in outcome.results.groups:
        print(group.file_path, [m.line_number for m in group.matches])

    # Async variant (Starlette / FastAPI handlers)
    outcome = await client.asearch("parseConfig", username="alice")
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Dict, Optional

from codesearch.core.backend import SearchBackend
from codesearch.core.config import CodeSearchConfig
from codesearch.core.pipeline import SearchOutcome, SearchPipeline

logger = logging.getLogger(__name__)


class CodeSearch:
    """
    High-level codesearch client.

    Each instance carries its own :class:`CodeSearchConfig` and its own
    backend (and so its own concurrency limit).  Share one instance per
    process.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        backend: Optional backend override (tests, alternative engines).
        **kwargs: Forwarded to :class:`CodeSearchConfig` when *config* is
            ``None`` (e.g. ``repo_root_path="/srv/repos"``).
    """

    def __init__(
        self,
        config: CodeSearchConfig | None = None,
        *,
        backend: SearchBackend | None = None,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = CodeSearchConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = CodeSearchConfig(**merged)
        else:
            self._config = CodeSearchConfig.from_env()

        self._pipeline = SearchPipeline(self._config, backend=backend)

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> CodeSearchConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def pipeline(self) -> SearchPipeline:
        return self._pipeline

    # ── Search ────────────────────────────────────────────────────

    def search(
        self,
        query: str,
        *,
        username: str,
        ext: str = "",
        authenticated: bool = True,
        cancel: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """
        Search *username*'s repositories for *query*.

        Args:
            query: Raw keyword, possibly carrying an ``ext:<token>`` directive.
            username: Acting user; also the repository namespace searched.
            ext: Extension filter used when *query* has no directive.
            authenticated: When False nothing is searched.
            cancel: Event that kills the backend process when set.

        Returns:
            :class:`SearchOutcome` with the parsed query, the result set
            and the rendered HTML fragment.

        Raises:
            ConfigurationUnavailable, InvalidNamespace, BackendUnavailable
        """
        return self._pipeline.run(
            query, ext,
            username=username,
            authenticated=authenticated,
            cancel=cancel,
        )

    # ── Async variant ─────────────────────────────────────────────
    # Runs the blocking search on a worker thread.  Cancelling the
    # awaiting task sets the cancel event, which kills the backend
    # process instead of leaving it running in the background.

    async def asearch(
        self,
        query: str,
        *,
        username: str,
        ext: str = "",
        authenticated: bool = True,
    ) -> SearchOutcome:
        """Async variant of :meth:`search`. Raises same exceptions as sync."""
        cancel = threading.Event()
        try:
            return await asyncio.to_thread(
                self.search, query,
                username=username, ext=ext,
                authenticated=authenticated, cancel=cancel,
            )
        except asyncio.CancelledError:
            cancel.set()
            logger.info(f"Code search for {username} cancelled; backend terminated")
            raise

    # ── Health (for status endpoints) ─────────────────────────────

    def health(self) -> Dict[str, object]:
        """
        Return a small status dict for readiness probes.

        Does not spawn the backend; reports whether the configured
        locations currently resolve.
        """
        from codesearch import __version__
        from codesearch.exceptions import ConfigurationUnavailable

        try:
            self._config.validate()
            ready, detail = True, ""
        except ConfigurationUnavailable as exc:
            ready, detail = False, str(exc)
        return {
            "version": __version__,
            "ready": ready,
            "detail": detail,
            "max_concurrent_searches": self._config.max_concurrent_searches,
        }
