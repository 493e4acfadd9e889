"""Unit tests for common utils (pure functions only; DB-backed ones need integration)."""
import logging
from datetime import date, datetime

import pytest

from pathway.utils.common import ensure_owner, iso_day
from pathway.utils.logger import RequestIdFilter, clear_request_id, log_request, set_request_id
from pathway.utils.errors import (
    AttemptsExhaustedError,
    NotFoundError,
    QuizLockedError,
    TransientStoreError,
    VersionConflict,
)


@pytest.mark.unit
class TestIsoDay:
    def test_date_and_datetime(self):
        assert iso_day(date(2025, 3, 9)) == "2025-03-09"
        assert iso_day(datetime(2025, 3, 9, 23, 0)) == "2025-03-09"


@pytest.mark.unit
class TestEnsureOwner:
    def test_trusted_caller(self):
        ensure_owner(None, "u1")

    def test_same_user(self):
        ensure_owner("7", 7)

    def test_other_user(self):
        from pathway.utils.errors import UnauthorizedError
        with pytest.raises(UnauthorizedError):
            ensure_owner("u2", "u1")


@pytest.mark.unit
class TestErrors:
    def test_status_codes(self):
        assert NotFoundError("x").status_code == 404
        assert QuizLockedError("x").status_code == 403
        assert AttemptsExhaustedError("x").status_code == 409
        assert TransientStoreError("x").status_code == 503

    def test_to_dict_includes_details(self):
        body = QuizLockedError("locked", details={"missing": {"videos": ["v1"]}}).to_dict()
        assert body == {"detail": "locked", "code": "quiz_locked", "missing": {"videos": ["v1"]}}

    def test_version_conflict_is_transient(self):
        err = VersionConflict("k/1", 1, 2)
        assert isinstance(err, TransientStoreError)
        assert (err.expected, err.actual) == (1, 2)


class _Records(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.mark.unit
class TestLogRequest:
    def _logger(self):
        logger = logging.getLogger("pathway.tests.log_request")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False
        handler = _Records()
        logger.handlers = [handler]
        return logger, handler

    def test_success_logged_with_duration(self):
        logger, handler = self._logger()
        with log_request(logger, "work"):
            pass
        assert handler.records[-1].levelno == logging.INFO
        assert "work ok duration_ms=" in handler.records[-1].getMessage()

    def test_failure_logged_and_reraised(self):
        logger, handler = self._logger()
        with pytest.raises(NotFoundError):
            with log_request(logger, "work"):
                raise NotFoundError("gone")
        assert handler.records[-1].levelno == logging.WARNING
        assert "error=NotFoundError" in handler.records[-1].getMessage()

    def test_request_id_attached(self):
        rid = set_request_id("req-42")
        record = logging.LogRecord("pathway", logging.INFO, __file__, 1, "m", None, None)
        RequestIdFilter().filter(record)
        clear_request_id()
        assert rid == "req-42"
        assert record.request_id == "req-42"
