"""Glossary dialog explaining the tract trend chart."""

import streamlit as st

from components.glossary_definitions import GLOSSARY_TERMS
from utils.formatters import format_display
from utils.variables import MapVariable, ValueType


def render_glossary_button(button_label="📚 Glossary", help_text="What the chart lines mean", variable=None):
    """
    Render a button that opens the glossary dialog when clicked.

    Args:
        button_label: Text for the button
        help_text: Tooltip text for the button
        variable: Currently selected MapVariable, described at the top of the dialog
    """
    if st.button(button_label, help=help_text, use_container_width=True):
        show_glossary_dialog(GLOSSARY_TERMS, variable)


def describe_variable(variable: MapVariable) -> list[str]:
    """Markdown lines summarizing a variable's coverage and display format."""
    years = variable.sorted_years()
    example = 12.5 if variable.value_type == ValueType.PERCENTAGE else 1234.5
    coverage = f"{years[0]}–{years[-1]} ({len(years)} years)" if years else "No years published"
    return [
        f"**{variable.name}** (`{variable.field_name}`)",
        f"Coverage: {coverage}",
        f"Displayed as: {format_display(example, variable.value_type)}",
    ]


@st.dialog("Glossary", width="large")
def show_glossary_dialog(glossary_terms, variable=None):
    """
    Display glossary content in a modal dialog.

    Args:
        glossary_terms: Dictionary of glossary terms organized by category
        variable: Optional MapVariable to describe first
    """
    if variable is not None:
        st.markdown("### Selected Variable")
        for line in describe_variable(variable):
            st.markdown(line)

    st.markdown("### Definitions and Methodology")

    for category_key, category_data in glossary_terms.items():
        icon = category_data.get('icon', '•')
        label = category_data.get('label', category_key.title())

        with st.expander(f"{icon} {label}", expanded=True):
            for term_name, term_data in category_data.get('terms', {}).items():
                st.markdown(f"**{term_name}**")

                if 'definition' in term_data:
                    st.markdown(term_data['definition'])

                if 'formula' in term_data:
                    st.markdown(term_data['formula'])

                if 'note' in term_data:
                    st.caption(f"_Note: {term_data['note']}_")
