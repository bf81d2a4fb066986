"""
Codesearch — code-search result pipeline for a self-hosted Git service.

Parses a free-text query for directives (``ext:go``), runs an external
search backend over the acting user's repositories, parses its block
output and renders it as escaped, link-annotated HTML.

Quick start (programmatic API)::

    from codesearch import CodeSearch

    client = CodeSearch()                                   # reads env vars
    outcome = client.search("ext:py load_config", username="alice")
    html = outcome.fragment

Quick start (CLI)::

    codesearch search "ext:py load_config" --user alice
    codesearch serve --port 3000

Configuration override::

    from codesearch import CodeSearch, CodeSearchConfig

    config = CodeSearchConfig(work_dir="/srv/gogs", repo_root_path="/srv/repos")
    client = CodeSearch(config=config)
"""

__version__ = "1.0.0"

# Primary public API: the CodeSearch facade
from codesearch.client import CodeSearch

# Configuration
from codesearch.core.config import CodeSearchConfig

# Core data types that callers interact with
from codesearch.core.pipeline import SearchOutcome
from codesearch.core.protocol import FileMatchGroup, MatchLine, SearchResultSet
from codesearch.core.query import SearchQuery

# Exception hierarchy
from codesearch.exceptions import (
    BackendUnavailable,
    CodeSearchError,
    ConfigurationUnavailable,
    InvalidNamespace,
    MalformedProtocolBlock,
)


__all__ = [
    "__version__",
    # Facade
    "CodeSearch",
    # Config
    "CodeSearchConfig",
    # Data types
    "SearchQuery",
    "MatchLine",
    "FileMatchGroup",
    "SearchResultSet",
    "SearchOutcome",
    # Exceptions
    "CodeSearchError",
    "ConfigurationUnavailable",
    "BackendUnavailable",
    "MalformedProtocolBlock",
    "InvalidNamespace",
]
