"""Tests for source fetching, the one-shot loader and the retry policy."""

import asyncio
import json

import httpx
import pytest

from config import LOAD_FAILED_MESSAGE
from conftest import SAMPLE_CSV, SAMPLE_TOPOLOGY
from data_fetchers import (
    DataFetchError, DataLoadError, RetryPolicy,
    fetch_geo_document, fetch_source, load_snapshot,
)
from region_index import GeoDataError

GEO_URL = "https://data.example/taiwan.json"
CSV_URL = "https://data.example/cases.csv"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _serve(routes: dict):
    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body.encode("utf-8"))
    return handler


class TestFetchSource:
    def test_url(self):
        async def run():
            async with _client(_serve({CSV_URL: SAMPLE_CSV})) as http:
                return await fetch_source(CSV_URL, http)

        assert asyncio.run(run()) == SAMPLE_CSV

    def test_non_200_status(self):
        async def run():
            async with _client(lambda request: httpx.Response(503)) as http:
                await fetch_source(CSV_URL, http)

        with pytest.raises(DataFetchError, match="503"):
            asyncio.run(run())

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def run():
            async with _client(handler) as http:
                await fetch_source(CSV_URL, http)

        with pytest.raises(DataFetchError):
            asyncio.run(run())

    def test_local_file(self, tmp_path):
        path = tmp_path / "cases.csv"
        path.write_text("\ufeff" + SAMPLE_CSV, encoding="utf-8")

        assert asyncio.run(fetch_source(str(path))) == SAMPLE_CSV

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(DataFetchError):
            asyncio.run(fetch_source(str(tmp_path / "missing.csv")))

    def test_geo_document_must_be_json_object(self):
        async def run(body):
            async with _client(_serve({GEO_URL: body})) as http:
                return await fetch_geo_document(GEO_URL, http)

        assert asyncio.run(run(json.dumps(SAMPLE_TOPOLOGY))) == SAMPLE_TOPOLOGY
        with pytest.raises(DataFetchError):
            asyncio.run(run("{not json"))
        with pytest.raises(DataFetchError):
            asyncio.run(run("[1, 2]"))


class TestLoadSnapshot:
    def test_builds_complete_snapshot(self):
        routes = {GEO_URL: json.dumps(SAMPLE_TOPOLOGY), CSV_URL: SAMPLE_CSV}

        async def run():
            async with _client(_serve(routes)) as http:
                return await load_snapshot(GEO_URL, CSV_URL, version=4, http_client=http)

        snapshot = asyncio.run(run())

        assert snapshot.version == 4
        assert snapshot.regions == ["臺北市", "新北市", "連江縣"]
        taipei = snapshot.aggregates["臺北市"]
        assert (taipei.total, taipei.childAbuseCount, taipei.juvenileCount) == (3, 1, 1)
        assert snapshot.aggregates["新北市"].childAbuseCount == 1
        assert snapshot.aggregates["連江縣"].total == 0
        assert snapshot.stats.totalCases == 5
        assert snapshot.stats.totalAbuse == 3
        assert snapshot.geo == SAMPLE_TOPOLOGY

    def test_sources_fetched_concurrently(self):
        async def run():
            started = set()
            both_started = asyncio.Event()

            async def handler(request):
                started.add(str(request.url))
                if len(started) == 2:
                    both_started.set()
                await asyncio.wait_for(both_started.wait(), timeout=1.0)
                body = json.dumps(SAMPLE_TOPOLOGY) if request.url.path.endswith(".json") else SAMPLE_CSV
                return httpx.Response(200, content=body.encode("utf-8"))

            async with _client(handler) as http:
                return await load_snapshot(GEO_URL, CSV_URL, http_client=http)

        assert asyncio.run(run()).stats.totalCases == 5

    def test_either_failure_fails_the_load(self):
        async def run():
            async with _client(_serve({GEO_URL: json.dumps(SAMPLE_TOPOLOGY)})) as http:
                await load_snapshot(GEO_URL, CSV_URL, http_client=http)

        with pytest.raises(DataFetchError):
            asyncio.run(run())

    def test_unusable_geo_document(self):
        routes = {GEO_URL: json.dumps({"type": "FeatureCollection", "features": []}), CSV_URL: SAMPLE_CSV}

        async def run():
            async with _client(_serve(routes)) as http:
                await load_snapshot(GEO_URL, CSV_URL, http_client=http)

        with pytest.raises(GeoDataError):
            asyncio.run(run())


class FakeClock:
    def __init__(self):
        self.sleeps = []

    async def sleep(self, seconds):
        self.sleeps.append(seconds)


class TestRetryPolicy:
    def test_succeeds_after_failures(self):
        clock = FakeClock()
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise DataFetchError("temporary")
            return "ok"

        policy = RetryPolicy(max_attempts=3, delay=2.5, sleep=clock.sleep)

        assert asyncio.run(policy.run(flaky)) == "ok"
        assert len(calls) == 3
        assert clock.sleeps == [2.5, 2.5]

    def test_budget_exhausted(self):
        clock = FakeClock()
        calls = []

        async def broken():
            calls.append(1)
            raise GeoDataError(f"bad document #{len(calls)}")

        policy = RetryPolicy(max_attempts=4, delay=1.0, sleep=clock.sleep)

        with pytest.raises(DataLoadError) as excinfo:
            asyncio.run(policy.run(broken))

        err = excinfo.value
        assert len(calls) == 4
        assert clock.sleeps == [1.0, 1.0, 1.0]
        assert err.attempts == 4
        assert err.user_message == LOAD_FAILED_MESSAGE
        assert "bad document #4" in str(err.__cause__)
        assert "bad document" not in err.user_message

    def test_non_retryable_error_propagates(self):
        clock = FakeClock()
        calls = []

        async def bug():
            calls.append(1)
            raise RuntimeError("programming error")

        with pytest.raises(RuntimeError):
            asyncio.run(RetryPolicy(max_attempts=3, sleep=clock.sleep).run(bug))
        assert len(calls) == 1
        assert clock.sleeps == []

    def test_single_attempt_never_sleeps(self):
        clock = FakeClock()

        async def broken():
            raise DataFetchError("down")

        with pytest.raises(DataLoadError):
            asyncio.run(RetryPolicy(max_attempts=1, sleep=clock.sleep).run(broken))
        assert clock.sleeps == []

    def test_rejects_empty_budget(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)
