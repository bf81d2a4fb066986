"""
Reverse-proxy authentication.

The hosting platform signs users in; a fronting proxy forwards the
username in a trusted header (``X-WEBAUTH-USER`` by default).  Requests
without the header are anonymous.
"""

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    SimpleUser,
    UnauthenticatedUser,
)


class ReverseProxyUserBackend(AuthenticationBackend):
    """Authenticate from a header set by the proxy in front of the app."""

    def __init__(self, header: str = "X-WEBAUTH-USER"):
        self.header = header

    async def authenticate(self, conn):
        username = conn.headers.get(self.header, "").strip()
        if not username:
            return None
        return AuthCredentials(["authenticated"]), SimpleUser(username)


def acting_user(request) -> tuple[bool, str | None]:
    """Return ``(authenticated, username)`` for *request*.

    Works with or without ``AuthenticationMiddleware`` installed.
    """
    user = request.scope.get("user") or UnauthenticatedUser()
    if not user.is_authenticated:
        return False, None
    return True, getattr(user, "username", None) or user.display_name
