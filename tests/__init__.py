"""
Test suite for the SKU reconciliation engine.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run API tests only: pytest tests/test_api_routes.py -v
"""
