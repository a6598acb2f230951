"""Fetch and aggregate the three series behind the tract trend chart."""

import asyncio
import logging
from dataclasses import dataclass

from rapidfuzz import fuzz, process
from rapidfuzz.utils import default_process

from utils.aggregation import group_mean, series_by_year, series_values
from utils.feature_service import (
    FeatureServiceClient,
    RemoteQueryError,
    TractChartError,
    escape_sql_literal,
)
from utils.variables import MapVariable

logger = logging.getLogger(__name__)

REGION_LABEL = "Region Avg"


class NoDataError(TractChartError):
    """The tract query returned no records."""


@dataclass(frozen=True)
class TractFields:
    """Attribute names of the tract feature layer."""

    id_field: str = "crdt_unique_id"
    name_field: str = "name"
    county_field: str = "county_name"
    year_field: str = "year"


@dataclass(frozen=True)
class TractChartData:
    tract_id: str
    tract_label: str
    county_name: str | None
    variable: MapVariable
    years: list[int]
    tract_series: list[float | None]
    county_series: list[float | None]
    region_series: list[float | None]

    @property
    def county_label(self) -> str:
        return f"{self.county_name} Avg" if self.county_name else "County Avg"

    @property
    def region_label(self) -> str:
        return REGION_LABEL


class TractChartLoader:
    """
    Issue the tract, county and region queries for one (tract, variable) pair.

    The tract query runs first because it supplies the county name; the
    county and region queries then run concurrently.
    """

    def __init__(self, service: FeatureServiceClient, fields: TractFields = TractFields()):
        self.service = service
        self.fields = fields

    async def load(self, tract_id: str, variable: MapVariable) -> TractChartData:
        """
        Load all three series for a tract.

        Raises:
            NoDataError: the tract has no records
            RemoteQueryError: any of the queries failed
        """
        f = self.fields
        field_name = variable.field_name
        years = variable.sorted_years()

        logger.info("Loading %s for tract %s", field_name, tract_id)

        # Query 1: this tract across all years
        tract_records = await self.service.query(
            where=f"{f.id_field} = {escape_sql_literal(tract_id)}",
            out_fields=[field_name, f.year_field, f.name_field, f.county_field, f.id_field],
        )
        if not tract_records:
            raise NoDataError(f"No records for tract {tract_id}")

        first = tract_records[0]
        tract_label = first.get(f.name_field) or tract_id
        county_name = first.get(f.county_field) or None

        tract_series = series_values(
            series_by_year(tract_records, years, field_name, f.year_field, variable.value_type)
        )

        # Queries 2 and 3: county and region averages
        county_task = None
        if county_name:
            county_task = asyncio.create_task(self._average(
                f"{f.county_field} = {escape_sql_literal(county_name)}", years, field_name
            ))
        # Whole-dataset query; the costliest of the three
        region_task = asyncio.create_task(self._average("1=1", years, field_name))

        tasks = [t for t in (county_task, region_task) if t is not None]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        county_series = county_task.result() if county_task else [None] * len(years)
        region_series = region_task.result()

        logger.info("Loaded %s for tract %s (%d years)", field_name, tract_id, len(years))
        return TractChartData(
            tract_id=tract_id,
            tract_label=str(tract_label),
            county_name=county_name,
            variable=variable,
            years=years,
            tract_series=tract_series,
            county_series=county_series,
            region_series=region_series,
        )

    async def _average(self, where: str, years: list[int], field_name: str) -> list[float | None]:
        records = await self.service.query(
            where=where,
            out_fields=[field_name, self.fields.year_field],
        )
        return series_values(group_mean(records, years, field_name, self.fields.year_field))


async def search_tracts(
    service: FeatureServiceClient,
    searchterm: str,
    year: int | None = None,
    fields: TractFields = TractFields(),
    limit: int = 25,
) -> list[tuple[str, str]]:
    """
    Search tracts by name for the tract picker.

    Args:
        service: Feature service client
        searchterm: User's search input
        year: Restrict to one year so each tract appears once
        fields: Attribute names of the layer
        limit: Maximum number of matches

    Returns:
        List of (display_label, tract_id) tuples, best matches first
    """
    # Minimum 2 characters to search
    if not searchterm or len(searchterm.strip()) < 2:
        return []

    term = searchterm.strip().upper()
    where = f"UPPER({fields.name_field}) LIKE {escape_sql_literal(f'%{term}%')}"
    if year is not None:
        where += f" AND {fields.year_field} = {int(year)}"

    records = await service.query(
        where=where,
        out_fields=[fields.id_field, fields.name_field, fields.county_field],
    )

    candidates = {}
    for record in records:
        tract_id = record.get(fields.id_field)
        if not tract_id or tract_id in candidates:
            continue
        label = str(record.get(fields.name_field) or tract_id)
        if county := record.get(fields.county_field):
            label = f"{label}, {county}"
        candidates[tract_id] = label

    matches = process.extract(
        searchterm,
        candidates,
        scorer=fuzz.token_set_ratio,
        processor=default_process,
        limit=limit,
    )
    return [(label, tract_id) for label, score, tract_id in matches]


def tract_search_options(
    service: FeatureServiceClient,
    searchterm: str,
    year: int | None = None,
) -> list[tuple[str, str | None]]:
    """
    Blocking wrapper around search_tracts for the searchbox callback.

    A failed query shows a placeholder option instead of raising inside the
    searchbox component.
    """
    if not searchterm or len(searchterm.strip()) < 2:
        return []

    try:
        results = asyncio.run(search_tracts(service, searchterm, year=year))
    except RemoteQueryError as e:
        logger.warning("Tract search for %r failed: %s", searchterm, e)
        return [("Tract search unavailable - try again", None)]

    if not results:
        return [("No tracts found - try a different search", None)]
    return results
