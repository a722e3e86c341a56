import json
import logging

from comfin.core.logging import ContextFilter, LogContext, StructuredFormatter, get_logger


def make_record(**extra):
    record = logging.LogRecord("comfin.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_log_context_nests_and_resets():
    context_filter = ContextFilter()

    with LogContext(email="a@x.com"):
        with LogContext(user_id="u1"):
            record = make_record()
            context_filter.filter(record)
            assert record.email == "a@x.com"
            assert record.user_id == "u1"

        record = make_record()
        context_filter.filter(record)
        assert not hasattr(record, "user_id")

    record = make_record()
    context_filter.filter(record)
    assert not hasattr(record, "email")


def test_explicit_extra_wins_over_context():
    context_filter = ContextFilter()

    with LogContext(form_id="outer"):
        record = make_record(form_id="explicit")
        context_filter.filter(record)
        assert record.form_id == "explicit"


def test_structured_formatter_includes_context():
    record = make_record(email="a@x.com", role="admin")
    data = json.loads(StructuredFormatter().format(record))
    assert data["message"] == "hello"
    assert data["email"] == "a@x.com"
    assert data["role"] == "admin"
    assert "user_id" not in data


def test_get_logger_namespace():
    assert get_logger("tests.sample").name == "comfin.tests.sample"
    assert get_logger("comfin.services.otp_service").name == "comfin.services.otp_service"
