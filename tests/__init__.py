# efile Test Suite
"""
Test suite including:
- Unit tests (core crypto, files, tree, config)
- Integration tests (command line, event log)
- Security tests (tampering, hostile names, keys)

Run with: pytest
Coverage: pytest --cov=efile
"""
