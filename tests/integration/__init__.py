"""
Integration tests for chatprobe.

These tests drive complete bot conversations over the in-memory chat
service, with the rate limiter at realistic speeds where spacing matters.

Run integration tests:
    pytest tests/integration/ -v

Skip integration tests:
    pytest tests/ -v -m "not integration"
"""
