# KtCloud Client Test Suite
"""
Test suite including:
- Unit tests for key rings, CryptoInfo, gateway and events
- Pipeline tests against an in-memory gateway
- CLI tests

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
