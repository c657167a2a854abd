"""Tests for the registry client."""

from __future__ import annotations

import httpx
import pytest

from pkg_extra.config import RetryPolicy
from pkg_extra.errors import MalformedDataError, NetworkError, PackageNotFoundError
from pkg_extra.registry.client import RegistryClient, parse_package_meta

_REGISTRY = "https://registry.example.com"
_DOWNLOADS = "https://registry.example.com/downloads/point/last-month"


def _client(handler, **kwargs) -> RegistryClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RegistryClient(http, registry_url=_REGISTRY, downloads_url=_DOWNLOADS, **kwargs)


class TestParsePackageMeta:
    def test_full_document(self) -> None:
        meta = parse_package_meta(
            "com.example.a",
            {
                "name": "com.example.a",
                "dist-tags": {"latest": "1.1.0"},
                "versions": {
                    "1.0.0": {"dependencies": {"com.example.b": "2.0.0"}, "unity": "2019.4"},
                    "1.1.0": {},
                },
                "time": {"1.1.0": "2024-01-02T03:04:05.000Z"},
            },
        )
        assert meta.name == "com.example.a"
        assert meta.dist_tags == {"latest": "1.1.0"}
        assert meta.versions["1.0.0"].dependencies == {"com.example.b": "2.0.0"}
        assert meta.versions["1.0.0"].unity == "2019.4"
        assert meta.versions["1.1.0"].dependencies == {}
        assert meta.time["1.1.0"] == "2024-01-02T03:04:05.000Z"

    def test_missing_fields(self) -> None:
        meta = parse_package_meta("x", {})
        assert meta.name == "x"
        assert meta.dist_tags == {}
        assert meta.versions == {}
        assert meta.time == {}

    def test_non_map_dependencies_are_marked_malformed(self) -> None:
        meta = parse_package_meta("x", {"versions": {"1.0.0": {"dependencies": ["a"]}}})
        assert meta.versions["1.0.0"].dependencies is None

    def test_null_dependencies_mean_none_declared(self) -> None:
        meta = parse_package_meta("x", {"versions": {"1.0.0": {"dependencies": None}}})
        assert meta.versions["1.0.0"].dependencies == {}

    def test_string_version_entry_becomes_marker(self) -> None:
        meta = parse_package_meta("x", {"versions": {"1.0.0": "latest"}})
        assert meta.versions["1.0.0"].marker == "latest"

    def test_non_string_unity_is_dropped(self) -> None:
        meta = parse_package_meta("x", {"versions": {"1.0.0": {"unity": 2019}}})
        assert meta.versions["1.0.0"].unity == ""


class TestGetPackageMeta:
    async def test_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"dist-tags": {"latest": "1.0.0"}, "versions": {"1.0.0": {}}}
            )

        meta = await _client(handler).get_package_meta("com.example.a")
        assert meta.dist_tags["latest"] == "1.0.0"
        assert str(seen[0].url) == f"{_REGISTRY}/com.example.a"
        assert seen[0].headers["Accept"] == "application/json"

    async def test_scoped_name_is_encoded(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.raw_path.decode())
            return httpx.Response(200, json={})

        await _client(handler).get_package_meta("@scope/pkg")
        assert seen == ["/@scope%2Fpkg"]

    async def test_404_raises_not_found(self) -> None:
        client = _client(lambda request: httpx.Response(404, json={"error": "not_found"}))
        with pytest.raises(PackageNotFoundError):
            await client.get_package_meta("missing")

    async def test_500_raises_network_error(self) -> None:
        client = _client(lambda request: httpx.Response(500))
        with pytest.raises(NetworkError, match="HTTP 500"):
            await client.get_package_meta("broken")

    async def test_transport_error_raises_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            await _client(handler).get_package_meta("a")

    async def test_invalid_json_raises_malformed(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(MalformedDataError):
            await client.get_package_meta("a")

    async def test_non_object_document_raises_malformed(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=["a"]))
        with pytest.raises(MalformedDataError):
            await client.get_package_meta("a")

    async def test_retries_transport_errors(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] < 3:
                raise httpx.ReadError("reset", request=request)
            return httpx.Response(200, json={})

        client = _client(handler, retry=RetryPolicy(max_attempts=3, base_delay=0))
        await client.get_package_meta("a")
        assert attempts["n"] == 3

    async def test_404_is_never_retried(self) -> None:
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            return httpx.Response(404)

        client = _client(handler, retry=RetryPolicy(max_attempts=3, base_delay=0))
        with pytest.raises(PackageNotFoundError):
            await client.get_package_meta("a")
        assert attempts["n"] == 1


class TestGetMonthlyDownloads:
    async def test_reads_downloads(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"downloads": 42, "package": "a"})

        assert await _client(handler).get_monthly_downloads("a") == 42
        assert seen == [f"{_DOWNLOADS}/a"]

    async def test_missing_count_is_zero(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"package": "a"}))
        assert await client.get_monthly_downloads("a") == 0

    async def test_not_found_raises(self) -> None:
        client = _client(lambda request: httpx.Response(404))
        with pytest.raises(PackageNotFoundError):
            await client.get_monthly_downloads("a")
