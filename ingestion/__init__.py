"""
Data Ingestion Module

Reads and normalizes merchant analytics API payloads:
- Metric schema (identifier -> scalar / time series / categorical)
- Raw payload contracts and category narrowing
- Per-category normalizers and value parsing
- Context-driven request filters
"""

__version__ = "0.1.0"
