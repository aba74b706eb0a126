"""Tests for the GitHub contents API client, driven through httpx.MockTransport."""

from __future__ import annotations

import base64
import json
import unittest
from unittest.mock import patch

import httpx

from osmosync.adapters.github.client import GitHubContentClient
from osmosync.config import GitHubConfig
from osmosync.domain.exceptions import (
    RemoteAuthError,
    RemoteConflictError,
    RemoteNetworkError,
    RemoteNotFoundError,
    RemoteStoreError,
)

CONTENTS_URL = "/repos/octo/memo/contents/README.md"


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


class FakeContentsApi:
    """Minimal stand-in for one file of the GitHub contents API."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text
        self.sha = 1 if text is not None else 0
        self.requests: list[httpx.Request] = []
        self.put_bodies: list[dict] = []
        # status codes returned, in order, before normal handling resumes
        self.forced_get: list[int] = []
        self.forced_put: list[int] = []
        self.before_put = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path != CONTENTS_URL:
            return httpx.Response(404, json={"message": "Not Found"})

        if request.method == "GET":
            if self.forced_get:
                return httpx.Response(self.forced_get.pop(0), json={"message": "forced"})
            if self.text is None:
                return httpx.Response(404, json={"message": "Not Found"})
            return httpx.Response(
                200,
                json={
                    "type": "file",
                    "encoding": "base64",
                    "content": _encode(self.text),
                    "sha": f"sha{self.sha}",
                },
            )

        if request.method == "PUT":
            body = json.loads(request.content)
            self.put_bodies.append(body)
            if self.before_put is not None:
                self.before_put()
            if self.forced_put:
                return httpx.Response(self.forced_put.pop(0), json={"message": "forced"})
            expected = f"sha{self.sha}" if self.text is not None else None
            if body.get("sha") != expected:
                return httpx.Response(409, json={"message": "sha does not match"})
            self.text = base64.b64decode(body["content"]).decode("utf-8")
            self.sha += 1
            return httpx.Response(200, json={"content": {"sha": f"sha{self.sha}"}})

        return httpx.Response(405)


def make_client(api: FakeContentsApi, **kwargs) -> GitHubContentClient:
    config = GitHubConfig(
        access_token="ghp_secret",
        username="octo",
        repo="memo",
        **kwargs.pop("config", {}),
    )
    kwargs.setdefault("max_retries", 0)
    return GitHubContentClient(config, transport=httpx.MockTransport(api.handler), **kwargs)


class TestGetContent(unittest.IsolatedAsyncioTestCase):
    async def test_decodes_document(self):
        api = FakeContentsApi("- [Café](https://cafe.example)\n")
        async with make_client(api) as client:
            text = await client.get_content()

        assert text == "- [Café](https://cafe.example)\n"
        request = api.requests[0]
        assert request.headers["Authorization"] == "Bearer ghp_secret"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert "ref" not in request.url.params

    async def test_branch_is_sent_as_ref(self):
        api = FakeContentsApi("x")
        async with make_client(api, config={"branch": "notes"}) as client:
            await client.get_content()
        assert api.requests[0].url.params["ref"] == "notes"

    async def test_missing_file_raises_not_found(self):
        async with make_client(FakeContentsApi(None)) as client:
            with self.assertRaises(RemoteNotFoundError):
                await client.get_content()

    async def test_status_mapping(self):
        cases = [
            (401, RemoteAuthError),
            (403, RemoteAuthError),
            (500, RemoteNetworkError),
            (503, RemoteNetworkError),
            (400, RemoteStoreError),
        ]
        for status, error in cases:
            with self.subTest(status=status):
                api = FakeContentsApi("x")
                api.forced_get = [status]
                async with make_client(api) as client:
                    with self.assertRaises(error):
                        await client.get_content()

    async def test_rate_limit_is_a_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403, headers={"x-ratelimit-remaining": "0"}, json={"message": "rate limited"}
            )

        config = GitHubConfig(access_token="t", username="octo", repo="memo")
        client = GitHubContentClient(config, max_retries=0, transport=httpx.MockTransport(handler))
        async with client:
            with self.assertRaises(RemoteNetworkError):
                await client.get_content()

    async def test_transport_failure_is_a_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        config = GitHubConfig(access_token="t", username="octo", repo="memo")
        client = GitHubContentClient(config, max_retries=0, transport=httpx.MockTransport(handler))
        async with client:
            with self.assertRaises(RemoteNetworkError):
                await client.get_content()

    async def test_transient_failure_is_retried(self):
        api = FakeContentsApi("ok")
        api.forced_get = [502]
        with patch("osmosync.utils.retry_utils._calculate_delay", return_value=0):
            async with make_client(api, max_retries=2) as client:
                assert await client.get_content() == "ok"
        assert len(api.requests) == 2

    async def test_auth_failure_is_not_retried(self):
        api = FakeContentsApi("ok")
        api.forced_get = [401]
        async with make_client(api, max_retries=2) as client:
            with self.assertRaises(RemoteAuthError):
                await client.get_content()
        assert len(api.requests) == 1

    async def test_directory_is_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"name": "README.md"}])

        config = GitHubConfig(access_token="t", username="octo", repo="memo")
        async with GitHubContentClient(config, transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(RemoteStoreError):
                await client.get_content()

    async def test_use_outside_context_manager_fails(self):
        client = make_client(FakeContentsApi("x"))
        with self.assertRaises(RemoteStoreError):
            await client.get_content()


class TestUpdateContent(unittest.IsolatedAsyncioTestCase):
    async def test_commits_transformed_text_with_sha(self):
        api = FakeContentsApi("- [Old](https://old)\n")
        async with make_client(api) as client:
            result = await client.update_content(
                lambda text: "- [New](https://new)\n" + (text or ""), message="Import 1 bookmark"
            )

        assert result == "- [New](https://new)\n- [Old](https://old)\n"
        assert api.text == result
        body = api.put_bodies[0]
        assert body["sha"] == "sha1"
        assert body["message"] == "Import 1 bookmark"
        assert "branch" not in body

    async def test_unchanged_text_is_not_committed(self):
        api = FakeContentsApi("same")
        async with make_client(api) as client:
            result = await client.update_content(lambda text: text or "", message="noop")

        assert result == "same"
        assert api.put_bodies == []

    async def test_missing_file_is_created(self):
        api = FakeContentsApi(None)
        seen = []

        def transform(text):
            seen.append(text)
            return "- [A](https://a)\n"

        async with make_client(api, config={"branch": "main"}) as client:
            await client.update_content(transform, message="create")

        assert seen == [None]
        assert "sha" not in api.put_bodies[0]
        assert api.put_bodies[0]["branch"] == "main"
        assert api.text == "- [A](https://a)\n"

    async def test_conflict_rereads_and_retries(self):
        api = FakeContentsApi("base\n")
        edits = iter(["concurrent edit\n"])

        def edit_underneath():
            # another writer lands between our read and our write, once
            text = next(edits, None)
            if text is not None:
                api.text = text
                api.sha += 1

        api.before_put = edit_underneath
        async with make_client(api) as client:
            result = await client.update_content(lambda t: "top\n" + (t or ""), message="m")

        assert result == "top\nconcurrent edit\n"
        assert api.text == result
        assert len(api.put_bodies) == 2

    async def test_persistent_conflict_gives_up(self):
        api = FakeContentsApi("base\n")
        api.forced_put = [409, 409, 409]
        async with make_client(api, max_conflict_retries=2) as client:
            with self.assertRaises(RemoteConflictError):
                await client.update_content(lambda t: "x" + (t or ""), message="m")
        assert len(api.put_bodies) == 3

    async def test_write_auth_error_propagates(self):
        api = FakeContentsApi("base\n")
        api.forced_put = [403]
        async with make_client(api) as client:
            with self.assertRaises(RemoteAuthError):
                await client.update_content(lambda t: "x" + (t or ""), message="m")


if __name__ == "__main__":
    unittest.main()
