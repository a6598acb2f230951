"""Shared fixtures for tract chart tests.

Provides:
- FakeFeatureService: canned records per where clause, optional gates to
  hold a query open, call log
- FakeLoader / RecordingRenderer: controller collaborators with manual control
- sample variables and tract records
"""

import asyncio

import pytest

from utils.tract_queries import TractChartData
from utils.variables import MapVariable, ValueType

YEARS = (2018, 2019, 2020)


# ---------------------------------------------------------------------------
# Feature service fake
# ---------------------------------------------------------------------------

class FakeFeatureService:
    """Answers queries from a dict of where clause -> records (or exception)."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.gates = {}
        self.started = []

    def hold(self, where):
        """Block queries for this where clause until the returned event is set."""
        gate = asyncio.Event()
        self.gates[where] = gate
        return gate

    async def query(self, where, out_fields, return_geometry=False):
        self.calls.append({"where": where, "out_fields": list(out_fields)})
        self.started.append(where)
        if where in self.gates:
            await self.gates[where].wait()
        response = self.responses.get(where, [])
        if isinstance(response, BaseException):
            raise response
        return [dict(record) for record in response]


# ---------------------------------------------------------------------------
# Controller collaborators
# ---------------------------------------------------------------------------

def make_chart_data(tract_id, variable, value=1.0, county_name="Mecklenburg"):
    years = variable.sorted_years()
    return TractChartData(
        tract_id=tract_id,
        tract_label=f"Tract {tract_id}",
        county_name=county_name,
        variable=variable,
        years=years,
        tract_series=[value] * len(years),
        county_series=[value + 1] * len(years),
        region_series=[value + 2] * len(years),
    )


class FakeLoader:
    """Each load waits on its own future so tests decide completion order."""

    def __init__(self, auto=False):
        self.auto = auto
        self.calls = []
        self.pending = {}
        self.cancelled = []

    async def load(self, tract_id, variable):
        key = (tract_id, variable.field_name, len(self.calls))
        self.calls.append((tract_id, variable.field_name))
        if self.auto:
            await asyncio.sleep(0)
            return make_chart_data(tract_id, variable)
        future = asyncio.get_running_loop().create_future()
        self.pending[key] = future
        try:
            return await future
        except asyncio.CancelledError:
            self.cancelled.append(tract_id)
            raise

    def _future(self, index):
        for key, future in self.pending.items():
            if key[2] == index:
                return future
        raise KeyError(index)

    def resolve(self, index, data):
        self._future(index).set_result(data)

    def fail(self, index, error):
        self._future(index).set_exception(error)


class RecordingRenderer:
    def __init__(self):
        self.renders = []
        self.destroyed = 0
        self.chart = None

    def render(self, years, tract_series, county_series, region_series, variable,
               tract_label="Tract", county_label="County Avg", region_label="Region Avg"):
        self.chart = {
            "years": years,
            "tract": tract_series,
            "county": county_series,
            "region": region_series,
            "variable": variable,
            "labels": (tract_label, county_label, region_label),
        }
        self.renders.append(self.chart)
        return self.chart

    def destroy(self):
        self.destroyed += 1
        self.chart = None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def income():
    return MapVariable(
        field_name="median_hh_income",
        name="Median Household Income",
        value_type=ValueType.MONEY,
        years_available=(2020, 2018, 2019),
    )


@pytest.fixture
def poverty():
    return MapVariable(
        field_name="pct_poverty",
        name="Poverty Rate",
        value_type=ValueType.PERCENTAGE,
        years_available=YEARS,
    )


@pytest.fixture
def tract_records():
    return [
        {"median_hh_income": 51000.04, "year": 2018, "name": "Census Tract 12.01",
         "county_name": "Mecklenburg", "crdt_unique_id": "37119001201"},
        {"median_hh_income": 53500, "year": 2020, "name": "Census Tract 12.01",
         "county_name": "Mecklenburg", "crdt_unique_id": "37119001201"},
    ]


@pytest.fixture
def county_records():
    return [
        {"median_hh_income": 40000, "year": 2018},
        {"median_hh_income": 50000, "year": 2018},
        {"median_hh_income": 61000, "year": 2019},
        {"median_hh_income": None, "year": 2020},
    ]


@pytest.fixture
def region_records():
    return [
        {"median_hh_income": 30000, "year": 2018},
        {"median_hh_income": 45000, "year": 2019},
        {"median_hh_income": 47000, "year": 2020},
        {"median_hh_income": 49001, "year": 2020},
    ]


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def renderer():
    return RecordingRenderer()
