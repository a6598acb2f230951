import streamlit as st

from utils.variables import PROJECT_NAME, VARIABLES

st.title(PROJECT_NAME)

st.markdown("""
Explore how census tracts across the region have changed over time, and how
each tract compares with its county and the region as a whole.
""")

st.markdown("### Features")

col1, col2 = st.columns(2)

with col1:
    st.markdown("""
    **Tract Trends**

    Pick a tract and a variable to see the tract's history next to its
    county average and the region-wide average.
    """)

with col2:
    st.markdown("**Available Variables**")
    for name, variable in VARIABLES.items():
        years = variable.sorted_years()
        st.markdown(f"- {name} ({years[0]}–{years[-1]})")
