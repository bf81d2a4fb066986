"""
Codesearch Backend Protocol

Parses the line-oriented text emitted by the search backend into a
structured :class:`SearchResultSet`.

Wire format::

    <file_path>: <excerpt>
    <line_number>.<source text>
    <line_number>.<source text>
    --
    <file_path>: <excerpt>
    <line_number>.<source text>

Blocks are separated by lines consisting solely of ``--``.  Text is kept
exactly as the backend sent it; escaping is the renderer's job.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import List, Tuple

from codesearch.exceptions import MalformedProtocolBlock

logger = logging.getLogger(__name__)

# Output this short carries no results (the backend prints at most a
# stray newline or two when nothing matched).
EMPTY_OUTPUT_THRESHOLD = 5

BLOCK_SEPARATOR = "--"
HEADER_LINE = re.compile(r"(?P<path>[A-Za-z0-9_./-]+): (?P<excerpt>.+)")
MATCH_LINE = re.compile(r"(?P<number>[0-9]+)\.(?P<content>.*)")


@dataclass(frozen=True)
class MatchLine:
    """One matching source line."""
    line_number: int
    content: str


@dataclass(frozen=True)
class FileMatchGroup:
    """All matches the backend reported for one file, in emission order."""
    file_path: str
    excerpt: str
    matches: Tuple[MatchLine, ...]

    @property
    def first_line(self) -> int:
        return self.matches[0].line_number


@dataclass(frozen=True)
class SearchResultSet:
    """Ordered match groups for one search request."""
    groups: Tuple[FileMatchGroup, ...] = ()
    dropped_blocks: int = 0
    """Number of malformed blocks skipped while parsing."""

    def __len__(self) -> int:
        return len(self.groups)

    def __bool__(self) -> bool:
        return bool(self.groups)

    @property
    def match_count(self) -> int:
        return sum(len(g.matches) for g in self.groups)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/CLI output."""
        return asdict(self)


def _safe_path(path: str) -> bool:
    """Reject empty, absolute or dot-segment paths."""
    if path.startswith("/"):
        return False
    return all(part not in ("", ".", "..") for part in path.split("/"))


def parse_block(lines: List[str]) -> FileMatchGroup:
    """
    Parse one separator-delimited block.

    Raises:
        MalformedProtocolBlock: If the header does not have the
            ``<path>: <excerpt>`` shape or no match line follows it.
    """
    content_lines = [line for line in lines if line.strip()]
    if not content_lines:
        raise MalformedProtocolBlock("empty block")

    header = content_lines[0]
    found = HEADER_LINE.fullmatch(header)
    if not found or not _safe_path(found.group("path")):
        raise MalformedProtocolBlock(f"bad block header {header!r}", header=header)

    matches: List[MatchLine] = []
    for line in content_lines[1:]:
        hit = MATCH_LINE.fullmatch(line)
        if hit is None or int(hit.group("number")) < 1:
            logger.debug(f"Skipping non-match line in block {found.group('path')!r}: {line!r}")
            continue
        matches.append(MatchLine(int(hit.group("number")), hit.group("content")))

    if not matches:
        raise MalformedProtocolBlock(f"block {header!r} has no match lines", header=header)

    return FileMatchGroup(
        file_path=found.group("path"),
        excerpt=found.group("excerpt"),
        matches=tuple(matches),
    )


def _split_blocks(text: str) -> List[List[str]]:
    blocks: List[List[str]] = []
    current: List[str] = []
    # only "\n" ends a line; source text may carry form feeds and the like
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if line == BLOCK_SEPARATOR:
            blocks.append(current)
            current = []
        else:
            current.append(line)
    blocks.append(current)
    # a leading or trailing separator leaves an empty block behind
    return [b for b in blocks if any(line.strip() for line in b)]


def parse_results(raw: bytes) -> SearchResultSet:
    """
    Parse raw backend output into a :class:`SearchResultSet`.

    Malformed blocks are dropped and counted; they never fail the
    whole result.
    """
    if len(raw) <= EMPTY_OUTPUT_THRESHOLD:
        return SearchResultSet()

    text = raw.decode("utf-8", errors="replace")
    groups: List[FileMatchGroup] = []
    dropped = 0

    for block in _split_blocks(text):
        try:
            groups.append(parse_block(block))
        except MalformedProtocolBlock as exc:
            dropped += 1
            logger.debug(f"Dropped backend block: {exc}")

    if dropped:
        logger.warning(f"Dropped {dropped} malformed block(s) from backend output")

    return SearchResultSet(groups=tuple(groups), dropped_blocks=dropped)
