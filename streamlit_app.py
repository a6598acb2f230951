import streamlit as st

from utils.variables import PROJECT_NAME

st.set_page_config(layout="wide", page_title=PROJECT_NAME)

# Define pages
pages = [
    st.Page("pages/home.py", title="Home", icon="🏠", default=True),
    st.Page("pages/tract_trends.py", title="Tract Trends", icon="📈"),
]

# Top bar navigation
pg = st.navigation(pages, position="top")
pg.run()
