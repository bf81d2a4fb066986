"""
Codesearch web surface — the Starlette application serving the explore
page.
"""

from codesearch.web.app import create_app

__all__ = ["create_app"]
