"""
Test Suite for Merchant Insights normalization

Includes:
- Unit tests for parsing and per-category normalizers
- Integration tests for full response normalization
- Golden response fixtures (tests/fixtures/golden)
"""
