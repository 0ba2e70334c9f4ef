"""
Analysis Engine Module

Builds chart-ready data from normalized analytics responses:
- Response normalization (per-metric dispatch, failures, warnings)
- Year-over-year alignment of current and previous periods
"""

__version__ = "0.1.0"
