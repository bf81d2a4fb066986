"""
Tests for codesearch.web — the explore page and health endpoint.
"""

import asyncio
from types import SimpleNamespace

import pytest
from starlette.authentication import SimpleUser
from starlette.requests import Request
from starlette.testclient import TestClient

from codesearch import BackendUnavailable, CodeSearch, CodeSearchConfig
from codesearch.web import create_app
from codesearch.web.app import CLIENT_CLOSED_REQUEST, _search_until_disconnect, explore_code

from conftest import BlockingBackend, CannedBackend

ALICE = {"X-WEBAUTH-USER": "alice"}


@pytest.fixture
def http(config, canned_backend) -> TestClient:
    app = create_app(client=CodeSearch(config=config, backend=canned_backend))
    return TestClient(app)


class TestExplorePage:

    def test_anonymous_gets_form_without_search(self, http, canned_backend):
        resp = http.get("/explore/code", params={"q": "foo"})
        assert resp.status_code == 200
        assert 'name="q"' in resp.text
        assert canned_backend.calls == []
        assert "codesearch" not in resp.text.split('id="codesearch-results"')[1].split("</div>")[0]

    def test_authenticated_search_renders_results(self, http, canned_backend):
        resp = http.get("/explore/code", params={"q": "foo"}, headers=ALICE)
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/html")
        assert "href='/alice/main.go/src/master/sample%20excerpt#L1'" in resp.text
        assert "<span>5</span> baz()" in resp.text
        assert len(canned_backend.calls) == 1

    def test_ext_parameter_is_forwarded(self, http, canned_backend):
        http.get("/explore/code", params={"q": "foo", "ext": "py"}, headers=ALICE)
        assert canned_backend.calls[0][0].extension == "py"

    def test_directive_only_query_skips_backend(self, http, canned_backend):
        resp = http.get("/explore/code", params={"q": "ext:go"}, headers=ALICE)
        assert resp.status_code == 200
        assert canned_backend.calls == []

    def test_keyword_is_echoed_escaped(self, http):
        resp = http.get("/explore/code", params={"q": '"><script>x</script>'}, headers=ALICE)
        assert "<script>x</script>" not in resp.text
        assert "&#34;&gt;&lt;script&gt;" in resp.text

    def test_empty_result_shows_no_matches(self, config):
        client = CodeSearch(config=config, backend=CannedBackend(output=b""))
        http = TestClient(create_app(client=client))
        resp = http.get("/explore/code", params={"q": "foo"}, headers=ALICE)
        assert resp.status_code == 200
        assert "No matches." in resp.text

    def test_blank_auth_header_is_anonymous(self, http, canned_backend):
        http.get("/explore/code", params={"q": "foo"}, headers={"X-WEBAUTH-USER": "  "})
        assert canned_backend.calls == []


class TestExploreErrors:

    def test_backend_failure_is_generic_500(self, config):
        error = BackendUnavailable("secret stderr detail", returncode=2)
        client = CodeSearch(config=config, backend=CannedBackend(error=error))
        http = TestClient(create_app(client=client))
        resp = http.get("/explore/code", params={"q": "foo"}, headers=ALICE)
        assert resp.status_code == 500
        assert "Search failed" in resp.text
        assert "secret stderr detail" not in resp.text

    def test_unsafe_username_is_400(self, http, canned_backend):
        resp = http.get("/explore/code", params={"q": "foo"}, headers={"X-WEBAUTH-USER": "../bob"})
        assert resp.status_code == 400
        assert canned_backend.calls == []

    def test_missing_configuration_is_500(self, canned_backend):
        client = CodeSearch(config=CodeSearchConfig(), backend=canned_backend)
        http = TestClient(create_app(client=client))
        resp = http.get("/explore/code", params={"q": "foo"}, headers=ALICE)
        assert resp.status_code == 500


class TestHealthz:

    def test_not_ready(self):
        http = TestClient(create_app(client=CodeSearch(config=CodeSearchConfig())))
        resp = http.get("/healthz")
        assert resp.status_code == 503
        assert resp.json()["ready"] is False

    def test_ready(self, config, make_script):
        make_script("true")
        http = TestClient(create_app(client=CodeSearch(config=config)))
        resp = http.get("/healthz")
        assert resp.status_code == 200
        assert resp.json()["ready"] is True


# =============================================================================
# Client disconnect
# =============================================================================


def _request(client: CodeSearch, gone=lambda: False) -> Request:
    """A ``q=foo`` request as alice; the connection closes once *gone()* is true."""

    async def receive():
        if gone():
            return {"type": "http.disconnect"}
        return {"type": "http.request", "body": b"", "more_body": False}

    scope = {
        "type": "http",
        "method": "GET",
        "path": "/explore/code",
        "query_string": b"q=foo",
        "headers": [],
        "app": SimpleNamespace(state=SimpleNamespace(codesearch=client)),
        "user": SimpleUser("alice"),
    }
    return Request(scope, receive)


class TestClientDisconnect:

    @pytest.mark.asyncio
    async def test_disconnect_cancels_search_and_returns_499(self, config):
        config.disconnect_poll_interval = 0.05
        backend = BlockingBackend()
        client = CodeSearch(config=config, backend=backend)

        resp = await explore_code(_request(client, gone=backend.started.is_set))

        assert resp.status_code == CLIENT_CLOSED_REQUEST == 499
        assert await asyncio.to_thread(backend.saw_cancel.wait, 2)

    @pytest.mark.asyncio
    async def test_connected_client_gets_outcome(self, config, canned_backend):
        config.disconnect_poll_interval = 0.01
        client = CodeSearch(config=config, backend=canned_backend)
        outcome = await _search_until_disconnect(
            _request(client), client, query="foo", username="alice",
        )
        assert [g.file_path for g in outcome.results.groups] == ["main.go", "util.go"]
