"""Per-year aggregation of feature-service records into chart series."""

from dataclasses import dataclass
from typing import Iterable, Mapping

import pandas as pd

from utils.formatters import normalize_value, round_tenth


@dataclass(frozen=True)
class SeriesPoint:
    year: int
    value: float | None


def _records_frame(observations: Iterable[Mapping], field_name: str, year_field: str) -> pd.DataFrame:
    rows = [
        {"year": obs.get(year_field), "value": obs.get(field_name)}
        for obs in observations
    ]
    return pd.DataFrame(rows, columns=["year", "value"])


def group_mean(
    observations: Iterable[Mapping],
    years: list[int],
    field_name: str,
    year_field: str = "year",
) -> list[SeriesPoint]:
    """
    Average a field per year across many records.

    Null and non-numeric values are excluded from both the sum and the count.
    A year with no valid values yields None. The result has exactly one point
    per requested year, in the requested order.

    Args:
        observations: Attribute mappings returned by the feature service
        years: Year axis the series must align to
        field_name: Attribute holding the measured value
        year_field: Attribute holding the year

    Returns:
        List of SeriesPoint aligned to years
    """
    df = _records_frame(observations, field_name, year_field)
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    df["year"] = pd.to_numeric(df["year"], errors="coerce")
    df = df.dropna(subset=["year", "value"])
    df["year"] = df["year"].astype(int)
    # Fixed summation order so the mean does not depend on arrival order
    df = df.sort_values(["year", "value"], kind="mergesort")

    means = df.groupby("year")["value"].mean()

    points = []
    for year in years:
        mean = means.get(year)
        if mean is None or pd.isna(mean):
            points.append(SeriesPoint(year, None))
        else:
            points.append(SeriesPoint(year, round_tenth(float(mean))))
    return points


def series_by_year(
    observations: Iterable[Mapping],
    years: list[int],
    field_name: str,
    year_field: str = "year",
    value_type: str = "plain",
) -> list[SeriesPoint]:
    """
    Map a single tract's records onto the year axis.

    A year without a record is None; a record with an unusable value counts
    as 0. Records whose year does not parse are skipped. When a year appears
    twice the later record wins.
    """
    by_year = {}
    for obs in observations:
        year = obs.get(year_field)
        if year is None:
            continue
        year = pd.to_numeric(year, errors="coerce")
        if pd.isna(year):
            continue
        by_year[int(year)] = normalize_value(obs.get(field_name), value_type)
    return [SeriesPoint(year, by_year.get(year)) for year in years]


def series_values(points: list[SeriesPoint]) -> list[float | None]:
    """Strip a point list down to its values."""
    return [point.value for point in points]
