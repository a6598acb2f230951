import asyncio

import streamlit as st
from streamlit_searchbox import st_searchbox

from components.glossary_dialog import render_glossary_button
from components.hover_controller import TractChartController
from components.tract_chart import TractChartRenderer
from utils.feature_service import get_feature_service
from utils.formatters import format_display
from utils.tract_queries import TractChartLoader, tract_search_options
from utils.variables import DEFAULT_VARIABLE, VARIABLES

st.set_page_config(layout="wide")

st.title("Tract Trends")

try:
    service = get_feature_service()
except Exception:
    st.info("Add a `[feature_service]` section with `layer_url` to `.streamlit/secrets.toml` to load tract data.")
    st.stop()


def get_controller() -> TractChartController:
    """Per-session controller; keeps the last rendered chart across reruns."""
    if "tract_chart_controller" not in st.session_state:
        st.session_state.tract_chart_controller = TractChartController(
            TractChartLoader(service),
            TractChartRenderer(),
        )
    return st.session_state.tract_chart_controller


controller = get_controller()

variable_col, search_col, glossary_col = st.columns([1, 2, 0.5])
with variable_col:
    variable_names = list(VARIABLES)
    variable_name = st.selectbox(
        "Variable",
        options=variable_names,
        index=variable_names.index(DEFAULT_VARIABLE),
    )
    variable = VARIABLES[variable_name]

with search_col:
    latest_year = max(variable.years_available) if variable.years_available else None
    tract_id = st_searchbox(
        lambda term: tract_search_options(service, term, year=latest_year),
        key="tract_search",
        placeholder="Search for a tract (e.g., Census Tract 12.01)",
        label="Find a Tract",
        debounce=250,
        clear_on_submit=False,
    )

with glossary_col:
    st.write("")
    render_glossary_button(variable=variable)

with st.spinner("Loading tract history..."):
    asyncio.run(controller.select(tract_id, variable))

if not controller.visible:
    st.caption("Pick a tract to compare it with its county and the region.")
elif controller.no_data:
    st.caption("No history available for this tract.")
elif controller.renderer.chart is not None:
    data = controller.last_data
    st.markdown(f"#### {controller.tract_name} · {controller.variable_name}")
    st.altair_chart(controller.renderer.chart, width='stretch')

    if data is not None and data.variable == variable:
        latest = [
            (year, value) for year, value in zip(data.years, data.tract_series) if value is not None
        ]
        if latest:
            year, value = latest[-1]
            st.caption(f"Latest ({year}): {format_display(value, variable.value_type)}")
