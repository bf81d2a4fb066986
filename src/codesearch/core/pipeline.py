"""
Codesearch Pipeline

Wires the four stages together for one request::

    raw keyword ──parse_query──▶ SearchQuery
                ──backend.invoke──▶ raw bytes
                ──parse_results──▶ SearchResultSet
                ──renderer.render──▶ HTML fragment

Nothing here is shared between requests except the backend, whose
concurrency limit is the only cross-request state.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from markupsafe import Markup

from codesearch.core.backend import ProcessBackend, SearchBackend, namespace_path
from codesearch.core.config import CodeSearchConfig
from codesearch.core.protocol import SearchResultSet, parse_results
from codesearch.core.query import SearchQuery, parse_query
from codesearch.core.render import ResultRenderer

logger = logging.getLogger(__name__)


@dataclass
class SearchOutcome:
    """Everything a page or CLI needs to display one search."""
    query: SearchQuery
    results: SearchResultSet = field(default_factory=SearchResultSet)
    fragment: Markup = field(default_factory=Markup)
    elapsed_seconds: float = 0.0
    backend_invoked: bool = False

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict (the fragment is omitted)."""
        return {
            "query": self.query.to_dict(),
            "results": self.results.to_dict(),
            "elapsed_seconds": self.elapsed_seconds,
            "backend_invoked": self.backend_invoked,
        }


class SearchPipeline:
    """
    Run a code search end to end.

    Args:
        config: Locations and limits.  Defaults to ``CodeSearchConfig.from_env()``.
        backend: Search backend; defaults to a :class:`ProcessBackend` on *config*.
        renderer: HTML renderer; defaults to one using ``config.default_branch``.
    """

    def __init__(
        self,
        config: CodeSearchConfig | None = None,
        backend: SearchBackend | None = None,
        renderer: ResultRenderer | None = None,
    ):
        self._config = config or CodeSearchConfig.from_env()
        self.backend = backend or ProcessBackend(self._config)
        self.renderer = renderer or ResultRenderer(branch=self._config.default_branch)

    def run(
        self,
        raw_keyword: str,
        supplied_ext: str = "",
        *,
        username: Optional[str] = None,
        authenticated: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> SearchOutcome:
        """
        Search for *raw_keyword* in *username*'s repositories.

        Unauthenticated requests and keywords that are empty once
        directives are removed return an empty outcome without touching
        the backend.

        Raises:
            ConfigurationUnavailable: Repository root or backend unresolved.
            InvalidNamespace: *username* is not a usable path segment.
            BackendUnavailable: The backend failed, timed out or was cancelled.
        """
        query = parse_query(raw_keyword, supplied_ext)
        if not authenticated or not username or not query.keyword:
            return SearchOutcome(query=query)

        t0 = time.perf_counter()
        namespace = namespace_path(self._config.resolve_repo_root(), username)
        raw = self.backend.invoke(query, namespace, cancel=cancel)
        results = parse_results(raw)
        fragment = self.renderer.render(results, username)
        elapsed = time.perf_counter() - t0

        logger.info(
            f"Code search '{query.keyword}' (ext={query.extension or '-'}) for {username}: "
            f"{len(results)} file(s), {results.match_count} match(es) in {elapsed:.3f}s"
        )
        return SearchOutcome(
            query=query,
            results=results,
            fragment=fragment,
            elapsed_seconds=elapsed,
            backend_invoked=True,
        )
