"""
Codesearch core modules — query parsing, backend invocation, protocol
parsing and rendering.

Internal implementation details.  Public users should import from the
top-level ``codesearch`` package instead.
"""

from codesearch.core.config import CodeSearchConfig
from codesearch.core.pipeline import SearchOutcome, SearchPipeline
from codesearch.core.protocol import parse_results
from codesearch.core.query import parse_query

__all__ = [
    "CodeSearchConfig",
    "SearchOutcome",
    "SearchPipeline",
    "parse_results",
    "parse_query",
]
