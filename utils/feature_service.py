"""ArcGIS feature service query client, shared through Streamlit caching."""

import logging

import httpx
import streamlit as st

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_PAGES = 500


class TractChartError(Exception):
    """Base class for tract chart loading failures."""


class RemoteQueryError(TractChartError):
    """A feature service query failed (network, HTTP status or service error)."""


def escape_sql_literal(value) -> str:
    """Quote a value for a where clause, doubling embedded single quotes."""
    return "'" + str(value).replace("'", "''") + "'"


class FeatureServiceClient:
    """
    Minimal async client for the ``/query`` endpoint of a feature layer.

    The layer URL is queried directly (not through a map layer), so any
    definition expression applied on the map does not filter the results.
    """

    def __init__(
        self,
        layer_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int | None = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not layer_url:
            raise ValueError("Feature layer URL is not configured")
        self.layer_url = layer_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.max_pages = max_pages
        self._transport = transport

    @property
    def query_url(self) -> str:
        return f"{self.layer_url}/query"

    async def query(
        self,
        where: str,
        out_fields: list[str],
        return_geometry: bool = False,
    ) -> list[dict]:
        """
        Run a query and return the attribute mapping of every feature.

        Pages through results while the service reports
        ``exceededTransferLimit`` so large queries are never silently cut off.
        A server that ignores ``resultOffset`` (repeats the previous page) or
        a result longer than ``max_pages`` pages is an error, not a loop.

        Raises:
            RemoteQueryError: on transport errors, timeouts, HTTP error
                statuses, an ``error`` payload in the response body, or
                paging that makes no progress
        """
        params = {
            "where": where,
            "outFields": ",".join(out_fields),
            "returnGeometry": "true" if return_geometry else "false",
            "f": "json",
        }
        if self.page_size:
            params["resultRecordCount"] = self.page_size

        records = []
        previous_page = None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for _ in range(self.max_pages):
                if records:
                    params["resultOffset"] = len(records)
                payload = await self._fetch(client, params)

                features = payload.get("features") or []
                page = [feature.get("attributes") or {} for feature in features]
                if page and page == previous_page:
                    raise RemoteQueryError(
                        f"Feature service at {self.query_url} ignored resultOffset; paging made no progress"
                    )
                records.extend(page)
                previous_page = page

                if not payload.get("exceededTransferLimit") or not features:
                    break
                logger.debug("Paging %s at offset %d", where, len(records))
            else:
                raise RemoteQueryError(
                    f"Query {where!r} exceeded {self.max_pages} pages at {self.query_url}"
                )

        logger.debug("Query %r returned %d records", where, len(records))
        return records

    async def _fetch(self, client: httpx.AsyncClient, params: dict) -> dict:
        try:
            # POST keeps long where clauses out of the URL
            response = await client.post(self.query_url, data=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise RemoteQueryError(f"Query against {self.query_url} failed: {e}") from e
        except ValueError as e:
            raise RemoteQueryError(f"Invalid JSON from {self.query_url}: {e}") from e

        if not isinstance(payload, dict):
            raise RemoteQueryError(f"Unexpected response from {self.query_url}")

        # ArcGIS reports service errors with HTTP 200 and an error object
        if error := payload.get("error"):
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            raise RemoteQueryError(f"Feature service error: {message}")

        return payload


@st.cache_resource
def get_feature_service() -> FeatureServiceClient:
    """
    Get or create the shared feature service client (app-wide singleton).

    Reads the ``[feature_service]`` table of Streamlit secrets:
    ``layer_url`` (required), ``timeout``, ``page_size`` and ``max_pages``
    (optional).

    Returns:
        FeatureServiceClient: Shared client
    """
    config = st.secrets["feature_service"]
    return FeatureServiceClient(
        layer_url=config["layer_url"],
        timeout=float(config.get("timeout", DEFAULT_TIMEOUT)),
        page_size=config.get("page_size"),
        max_pages=int(config.get("max_pages", DEFAULT_MAX_PAGES)),
    )
