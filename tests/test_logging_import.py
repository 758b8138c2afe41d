"""
Test that backend_veritas.logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from backend_veritas.logging and use the logger."""
    from backend_veritas.logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", identity="abc", flags=0)


def test_short_id():
    from backend_veritas.logging import short_id

    assert short_id(None) == "?"
    assert short_id("abc") == "abc"
    assert short_id("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka") == "9QCfNuQuxct1Xk9y..."


def test_bind_identity():
    from backend_veritas.logging import bind_identity

    bind_identity("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka").info("bound_message")


def test_event_renamed_to_event_type():
    from backend_veritas.logging.logger import _event_to_event_type

    out = _event_to_event_type(None, "info", {"event": "claim_paid", "score": 80})
    assert out == {"event_type": "claim_paid", "score": 80, "service": "veritas"}


def test_bind_identity_on_module_logger():
    from backend_veritas.logging import bind_identity, get_logger

    bind_identity("9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka", get_logger("tests")).info("bound_module_message")
