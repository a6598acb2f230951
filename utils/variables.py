"""Map variables that can drive the tract trend chart."""

from dataclasses import dataclass
from enum import Enum

from utils.formatters import MONEY, PERCENTAGE, PLAIN

PROJECT_NAME = "Carolinas Regional Explorer"


class ValueType(str, Enum):
    PLAIN = PLAIN
    PERCENTAGE = PERCENTAGE
    MONEY = MONEY


@dataclass(frozen=True)
class MapVariable:
    """A measured quantity stored as one field of the tract feature layer."""

    field_name: str
    name: str
    value_type: ValueType = ValueType.PLAIN
    years_available: tuple[int, ...] = ()

    def __post_init__(self):
        # Accept plain strings/lists from config without losing hashability
        object.__setattr__(self, "value_type", ValueType(self.value_type))
        object.__setattr__(self, "years_available", tuple(int(y) for y in self.years_available))

    def sorted_years(self) -> list[int]:
        return sorted(set(self.years_available))


ACS_YEARS = (2013, 2014, 2015, 2016, 2017, 2018, 2019, 2020, 2021, 2022)

# Variable catalog, keyed by display name
VARIABLES = {
    "Median Household Income": MapVariable(
        field_name="median_hh_income",
        name="Median Household Income",
        value_type=ValueType.MONEY,
        years_available=ACS_YEARS,
    ),
    "Median Home Value": MapVariable(
        field_name="median_home_value",
        name="Median Home Value",
        value_type=ValueType.MONEY,
        years_available=ACS_YEARS,
    ),
    "Poverty Rate": MapVariable(
        field_name="pct_poverty",
        name="Poverty Rate",
        value_type=ValueType.PERCENTAGE,
        years_available=ACS_YEARS,
    ),
    "Renter-Occupied Housing": MapVariable(
        field_name="pct_renter",
        name="Renter-Occupied Housing",
        value_type=ValueType.PERCENTAGE,
        years_available=ACS_YEARS,
    ),
    "Total Population": MapVariable(
        field_name="total_pop",
        name="Total Population",
        value_type=ValueType.PLAIN,
        years_available=(2010, 2015, 2020, 2022),
    ),
}

DEFAULT_VARIABLE = "Median Household Income"
