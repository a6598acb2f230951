"""Altair line chart comparing a tract with its county and region averages."""

import altair as alt
import pandas as pd

from utils.formatters import axis_format, axis_label_expr, format_display
from utils.variables import MapVariable

# Series styling; emphasis decreases tract -> county -> region
SERIES_STYLES = {
    "tract": {"color": "#90caf9", "dash": [1, 0], "width": 2.5, "point_size": 36},
    "county": {"color": "#77791e", "dash": [5, 3], "width": 2.0, "point_size": 16},
    "region": {"color": "#888", "dash": [3, 3], "width": 1.5, "point_size": 16},
}

# Region first so the tract line is drawn on top
DRAW_ORDER = ["region", "county", "tract"]

CHART_HEIGHT = 260


class TractChartRenderer:
    """Holds the single live trend chart and rebuilds it on every render."""

    def __init__(self, height: int = CHART_HEIGHT):
        self.height = height
        self._chart = None
        self.render_count = 0

    @property
    def chart(self) -> alt.LayerChart | None:
        return self._chart

    def destroy(self):
        self._chart = None

    def render(
        self,
        years: list[int],
        tract_series: list[float | None],
        county_series: list[float | None],
        region_series: list[float | None],
        variable: MapVariable,
        tract_label: str = "Tract",
        county_label: str = "County Avg",
        region_label: str = "Region Avg",
    ) -> alt.LayerChart:
        """
        Replace the current chart with one built from three aligned series.

        Args:
            years: Shared x axis
            tract_series, county_series, region_series: One value (or None)
                per year, in the same order as years
            variable: Selected variable; its value type drives all formatting
            tract_label, county_label, region_label: Legend labels

        Returns:
            The new Altair chart

        Raises:
            ValueError: if a series is not aligned to years
        """
        for name, series in (
            ("tract", tract_series),
            ("county", county_series),
            ("region", region_series),
        ):
            if len(series) != len(years):
                raise ValueError(
                    f"{name} series has {len(series)} points for {len(years)} years"
                )

        labels = {"tract": tract_label, "county": county_label, "region": region_label}
        df = build_chart_frame(
            years,
            {"tract": tract_series, "county": county_series, "region": region_series},
            labels,
            variable.value_type,
        )
        chart = build_trend_chart(df, labels, variable, self.height)

        self.destroy()
        self._chart = chart
        self.render_count += 1
        return self._chart


def build_chart_frame(
    years: list[int],
    series: dict[str, list[float | None]],
    labels: dict[str, str],
    value_type: str,
) -> pd.DataFrame:
    """
    Melt the series into long format, one row per (series, year).

    Missing values stay as rows with a null value so every series keeps the
    full year axis.
    """
    rows = []
    for key in DRAW_ORDER:
        for year, value in zip(years, series[key]):
            rows.append({
                "year": str(year),
                "series": labels[key],
                "value": value,
                "display": format_display(value, value_type),
            })
    df = pd.DataFrame(rows, columns=["year", "series", "value", "display"])
    df["value"] = pd.to_numeric(df["value"], errors="coerce")
    return df


def build_trend_chart(
    df: pd.DataFrame,
    labels: dict[str, str],
    variable: MapVariable,
    height: int = CHART_HEIGHT,
) -> alt.LayerChart:
    """Build the layered line chart; nulls break the line instead of dropping to zero."""
    keys = list(SERIES_STYLES)
    domain = [labels[key] for key in keys]
    color_scale = alt.Scale(domain=domain, range=[SERIES_STYLES[k]["color"] for k in keys])
    dash_scale = alt.Scale(domain=domain, range=[SERIES_STYLES[k]["dash"] for k in keys])
    width_scale = alt.Scale(domain=domain, range=[SERIES_STYLES[k]["width"] for k in keys])
    size_scale = alt.Scale(domain=domain, range=[SERIES_STYLES[k]["point_size"] for k in keys])

    y_axis = alt.Axis(format=axis_format(variable.value_type))
    if label_expr := axis_label_expr(variable.value_type):
        y_axis.labelExpr = label_expr

    base = alt.Chart(df).encode(
        x=alt.X("year:O", title=None, axis=alt.Axis(labelAngle=0)),
        y=alt.Y("value:Q", title=variable.name, axis=y_axis),
        color=alt.Color(
            "series:N",
            scale=color_scale,
            legend=alt.Legend(orient="bottom", title=None, labelFontSize=10),
        ),
        tooltip=[
            alt.Tooltip("year:O", title="Year"),
            alt.Tooltip("series:N", title="Series"),
            alt.Tooltip("display:N", title=variable.name),
        ],
    )

    lines = base.mark_line(interpolate="monotone", invalid=None).encode(
        strokeDash=alt.StrokeDash("series:N", scale=dash_scale, legend=None),
        strokeWidth=alt.StrokeWidth("series:N", scale=width_scale, legend=None),
        detail="series:N",
    )
    points = base.mark_point(filled=True).encode(
        size=alt.Size("series:N", scale=size_scale, legend=None),
    ).transform_filter("isValid(datum.value)")

    chart = alt.layer(lines, points).properties(
        width="container",
        height=height,
    ).configure_axis(
        labelFontSize=10,
        titleFontSize=11,
    ).configure_legend(
        symbolStrokeWidth=2,
    )

    return chart
