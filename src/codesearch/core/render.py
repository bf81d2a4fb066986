"""
Codesearch Result Rendering

Turns a :class:`~codesearch.core.protocol.SearchResultSet` into output:

- :meth:`ResultRenderer.render` — HTML fragment for the explore page
- :meth:`ResultRenderer.format_json` — JSON for scripts and the CLI
- :meth:`ResultRenderer.format_console` — human-friendly terminal output

HTML is produced by a Jinja2 template with autoescaping on, so backend
text and the acting username are escaped exactly once before they meet
any markup.  URL segments are percent-encoded first; the encoded form
contains no HTML-significant characters, so the later escape is a no-op
on them and nothing is ever escaped twice.
"""

import json
from typing import List
from urllib.parse import quote

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from codesearch.core.protocol import FileMatchGroup, SearchResultSet


def _default_environment() -> Environment:
    return Environment(
        loader=PackageLoader("codesearch", "templates"),
        autoescape=select_autoescape(["html"]),
    )


def _segment(value: str) -> str:
    """Percent-encode a single URL path segment."""
    return quote(value, safe="")


def _path(value: str) -> str:
    """Percent-encode a relative URL path, keeping its slashes."""
    return quote(value, safe="/")


class ResultRenderer:
    """
    Render search results for one acting user.

    Args:
        branch: Branch name used in source links (``/<user>/<repo>/src/<branch>/...``).
        environment: Jinja2 environment to load ``results.html`` from.
            Defaults to the package templates with HTML autoescaping.
    """

    TEMPLATE = "results.html"

    def __init__(self, branch: str = "master", environment: Environment | None = None):
        self.branch = branch
        self._env = environment or _default_environment()

    # ── HTML ──────────────────────────────────────────────────────

    def links(self, group: FileMatchGroup, acting_username: str) -> dict:
        """Return the two link targets for *group*, percent-encoded."""
        base = f"/{_segment(acting_username)}/{_path(group.file_path)}"
        return {
            "repo_url": base,
            "file_url": (
                f"{base}/src/{_segment(self.branch)}/{_path(group.excerpt)}"
                f"#L{group.first_line}"
            ),
        }

    def render(self, results: SearchResultSet, acting_username: str) -> Markup:
        """
        Render *results* as an HTML fragment scoped to *acting_username*.

        Groups keep backend order; an empty result set renders as an
        empty fragment.
        """
        if not results:
            return Markup("")
        groups = [
            dict(group=group, **self.links(group, acting_username))
            for group in results.groups
        ]
        template = self._env.get_template(self.TEMPLATE)
        return Markup(template.render(groups=groups))

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(results: SearchResultSet, indent: int = 2) -> str:
        """Machine-readable output; text is left unescaped."""
        payload = {
            "count": len(results),
            "matches": results.match_count,
            "dropped_blocks": results.dropped_blocks,
            "results": results.to_dict()["groups"],
        }
        return json.dumps(payload, indent=indent, ensure_ascii=False)

    # ── Console ───────────────────────────────────────────────────

    @staticmethod
    def format_console(results: SearchResultSet, elapsed_time: float | None = None) -> str:
        """Plain-text listing of every group and its numbered matches."""
        if not results:
            return "\n  No results found.\n"

        import shutil
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        total = len(results)
        header = f"  CODESEARCH — {total} file{'s' if total != 1 else ''}, {results.match_count} matches"
        if elapsed_time is not None:
            header += f" in {elapsed_time:.3f} seconds"

        out: List[str] = [f"\n{thin}", header, thin]
        for idx, group in enumerate(results.groups, start=1):
            out.append("")
            out.append(f"  #{idx}  {group.file_path} — {group.excerpt}")
            out.append(f"  {'─' * (width - 2)}")
            for match in group.matches:
                out.append(f"    {match.line_number:>6} │ {match.content}")
        if results.dropped_blocks:
            out.append("")
            out.append(f"  ({results.dropped_blocks} malformed block(s) skipped)")
        out.append("")
        return "\n".join(out)
