"""Tests for the feature service query client."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest

from utils.feature_service import FeatureServiceClient, RemoteQueryError, escape_sql_literal

LAYER_URL = "https://services.example.com/arcgis/rest/services/Tracts/FeatureServer/0"


def make_client(handler, **kwargs):
    return FeatureServiceClient(LAYER_URL, transport=httpx.MockTransport(handler), **kwargs)


def form(request):
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def features(*rows, exceeded=False):
    payload = {"features": [{"attributes": row} for row in rows]}
    if exceeded:
        payload["exceededTransferLimit"] = True
    return httpx.Response(200, json=payload)


class TestEscape:
    def test_doubles_quotes(self):
        assert escape_sql_literal("O'Brien") == "'O''Brien'"

    def test_plain_value(self):
        assert escape_sql_literal("37119001201") == "'37119001201'"


class TestQuery:
    def test_requires_layer_url(self):
        with pytest.raises(ValueError):
            FeatureServiceClient("")

    def test_sends_query_parameters(self):
        seen = []

        def handler(request):
            seen.append((request.url, form(request)))
            return features({"year": 2020, "total_pop": 10})

        client = make_client(handler)
        records = asyncio.run(client.query("county_name = 'Wake'", ["total_pop", "year"]))

        assert records == [{"year": 2020, "total_pop": 10}]
        url, params = seen[0]
        assert str(url) == f"{LAYER_URL}/query"
        assert params["where"] == "county_name = 'Wake'"
        assert params["outFields"] == "total_pop,year"
        assert params["returnGeometry"] == "false"
        assert params["f"] == "json"

    def test_trailing_slash_on_layer_url(self):
        client = FeatureServiceClient(LAYER_URL + "/")
        assert client.query_url == f"{LAYER_URL}/query"

    def test_pages_until_transfer_limit_clears(self):
        offsets = []

        def handler(request):
            params = form(request)
            offset = int(params.get("resultOffset", 0))
            offsets.append(offset)
            assert params["resultRecordCount"] == "2"
            if offset == 0:
                return features({"v": 1}, {"v": 2}, exceeded=True)
            if offset == 2:
                return features({"v": 3}, {"v": 4}, exceeded=True)
            return features({"v": 5})

        client = make_client(handler, page_size=2)
        records = asyncio.run(client.query("1=1", ["v"]))

        assert [r["v"] for r in records] == [1, 2, 3, 4, 5]
        assert offsets == [0, 2, 4]

    def test_repeated_page_raises_instead_of_looping(self):
        requests = []

        def handler(request):
            requests.append(form(request))
            return features({"v": 1}, exceeded=True)

        client = make_client(handler)
        with pytest.raises(RemoteQueryError, match="paging made no progress"):
            asyncio.run(client.query("1=1", ["v"]))
        assert len(requests) == 2

    def test_page_limit_raises(self):
        requests = []

        def handler(request):
            requests.append(form(request))
            return features({"v": len(requests)}, exceeded=True)

        client = make_client(handler, max_pages=3)
        with pytest.raises(RemoteQueryError, match="exceeded 3 pages"):
            asyncio.run(client.query("1=1", ["v"]))
        assert len(requests) == 3

    def test_empty_result(self):
        client = make_client(lambda request: features())
        assert asyncio.run(client.query("1=0", ["v"])) == []

    def test_error_payload_raises(self):
        def handler(request):
            return httpx.Response(200, json={"error": {"code": 400, "message": "Invalid field: bogus"}})

        client = make_client(handler)
        with pytest.raises(RemoteQueryError, match="Invalid field: bogus"):
            asyncio.run(client.query("1=1", ["bogus"]))

    def test_http_status_raises(self):
        client = make_client(lambda request: httpx.Response(503))
        with pytest.raises(RemoteQueryError):
            asyncio.run(client.query("1=1", ["v"]))

    def test_invalid_json_raises(self):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
        with pytest.raises(RemoteQueryError, match="Invalid JSON"):
            asyncio.run(client.query("1=1", ["v"]))

    def test_non_object_payload_raises(self):
        client = make_client(lambda request: httpx.Response(200, content=json.dumps([1, 2]).encode()))
        with pytest.raises(RemoteQueryError):
            asyncio.run(client.query("1=1", ["v"]))

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteQueryError):
            asyncio.run(client.query("1=1", ["v"]))

    def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler)
        with pytest.raises(RemoteQueryError):
            asyncio.run(client.query("1=1", ["v"]))
