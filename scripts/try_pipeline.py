#!/usr/bin/env python3
"""
Manually exercise the codesearch pipeline.

Without arguments, parses and renders a canned backend response so you
can see parse_query(), parse_results() and the renderer in action.  With
--work-dir and --repo-root it also runs a live search through the
configured backend.

Usage:
  # From project root (canned output only)
  python scripts/try_pipeline.py

  # Live search against a real namespace
  python scripts/try_pipeline.py --work-dir . --repo-root /srv/repos \
      --user alice "ext:go parseConfig"

Requirements:
  - codesearch installed (pip install -e . from project root)
"""

import sys
from pathlib import Path

# Project root on path for codesearch import when run from repo
_project_root = Path(__file__).resolve().parent.parent
_src = _project_root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

SAMPLE_OUTPUT = (
    b"main.go: sample excerpt\n"
    b"1.foo()\n"
    b"2.bar()\n"
    b"--\n"
    b"util.go: other excerpt\n"
    b"5.baz() < qux && true\n"
)


def main() -> None:
    import argparse
    from codesearch import CodeSearch, CodeSearchConfig, CodeSearchError
    from codesearch.core.protocol import parse_results
    from codesearch.core.query import parse_query
    from codesearch.core.render import ResultRenderer

    parser = argparse.ArgumentParser(
        description="Manually test the codesearch pipeline.",
    )
    parser.add_argument("query", nargs="?", default="ext:go foo",
                        help="Raw query (default: 'ext:go foo')")
    parser.add_argument("--user", default="alice", help="Acting username (default: alice)")
    parser.add_argument("--work-dir", default=None, help="Work directory with scripts/searchcode")
    parser.add_argument("--repo-root", default=None, help="Repository root directory")
    args = parser.parse_args()

    # ── Query directives ──────────────────────────────────────────
    print("=" * 60)
    print("  STEP 1: Parse query")
    print("=" * 60)
    query = parse_query(args.query)
    print(f"  raw       : {query.raw_keyword!r}")
    print(f"  keyword   : {query.keyword!r}")
    print(f"  extension : {query.extension!r}")

    # ── Canned output ─────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("  STEP 2: Parse and render canned backend output")
    print("=" * 60)
    results = parse_results(SAMPLE_OUTPUT)
    renderer = ResultRenderer()
    print(renderer.format_console(results))
    print(renderer.render(results, args.user))

    if not (args.work_dir and args.repo_root):
        print("\n  (pass --work-dir and --repo-root for a live search)")
        return

    # ── Live search ───────────────────────────────────────────────
    print("\n" + "=" * 60)
    print("  STEP 3: Live search")
    print("=" * 60)
    client = CodeSearch(config=CodeSearchConfig(
        work_dir=args.work_dir,
        repo_root_path=args.repo_root,
    ))
    try:
        outcome = client.search(args.query, username=args.user)
    except CodeSearchError as e:
        print(f"  Error: {e}")
        sys.exit(1)
    print(renderer.format_console(outcome.results, elapsed_time=outcome.elapsed_seconds))


if __name__ == "__main__":
    main()
