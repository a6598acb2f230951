"""Glossary term definitions for the tract trend chart."""

GLOSSARY_TERMS = {
    "series": {
        "label": "Chart Lines",
        "icon": "📈",
        "terms": {
            "Tract": {
                "definition": "The selected census tract's value for each year the variable was published.",
                "note": "A year with no record leaves a gap in the line."
            },
            "County Avg": {
                "definition": "Unweighted mean of the variable across every tract in the selected tract's county, per year.",
                "formula": r"$$\Large \frac{1}{n} \sum_{i=1}^{n} x_{i,\text{year}}$$",
                "note": "Tracts with a missing value for a year are left out of that year's average."
            },
            "Region Avg": {
                "definition": "Unweighted mean of the variable across every tract in the region, per year."
            }
        }
    },
    "value_types": {
        "label": "Value Types",
        "icon": "🔢",
        "terms": {
            "Money": {
                "definition": "Dollar amounts, shown rounded to whole dollars."
            },
            "Percentage": {
                "definition": "Shares of a tract's population or housing units, shown to one decimal place."
            },
            "Count": {
                "definition": "Plain counts such as population, shown with thousands separators."
            }
        }
    },
    "methodology": {
        "label": "Methodology",
        "icon": "📐",
        "terms": {
            "Rounding": {
                "definition": "Tract values and averages are rounded to one decimal place before charting."
            }
        }
    }
}
