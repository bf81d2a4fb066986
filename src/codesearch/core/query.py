"""
Query directive parsing.

Extracts the ``ext:<token>`` file-extension directive from a free-text
search keyword.
"""

import re
from dataclasses import asdict, dataclass

EXT_DIRECTIVE = re.compile(r"ext:([a-z0-9]{1,5})")
EXTENSION_SHAPE = re.compile(r"[a-z0-9]{1,5}")


@dataclass(frozen=True)
class SearchQuery:
    """A search keyword with its directives split out."""
    raw_keyword: str
    keyword: str
    extension: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _clean_extension(value: str) -> str:
    value = (value or "").strip()
    return value if EXTENSION_SHAPE.fullmatch(value) else ""


def parse_query(raw_keyword: str, supplied_ext: str = "") -> SearchQuery:
    """
    Split *raw_keyword* into the literal search text and an extension.

    The first ``ext:`` directive wins for the extension value, but every
    directive is stripped from the keyword.  Without a directive the
    *supplied_ext* is kept when it has a valid extension shape.
    """
    raw_keyword = raw_keyword or ""
    extension = _clean_extension(supplied_ext)
    keyword = raw_keyword

    if "ext:" in raw_keyword:
        found = EXT_DIRECTIVE.search(raw_keyword)
        if found:
            extension = found.group(1)
            keyword = raw_keyword
            # removing one directive can splice its neighbours into another
            while EXT_DIRECTIVE.search(keyword):
                keyword = EXT_DIRECTIVE.sub("", keyword)

    return SearchQuery(raw_keyword=raw_keyword, keyword=keyword.strip(), extension=extension)
