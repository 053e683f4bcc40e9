"""Unit coverage for BaseService transaction handling and metrics."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from appointment_engine.core.exceptions import (
    NotFoundException,
    RepositoryException,
    ServiceException,
)
from appointment_engine.services.base import BaseService


class _SampleService(BaseService):
    @BaseService.measure_operation("sample_operation")
    def run(self, fail=False):
        if fail:
            raise NotFoundException("missing")
        return "ok"


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def sample_service(session, config, clock):
    service = _SampleService(session, config=config, clock=clock)
    service.reset_metrics()
    return service


class TestTransaction:
    def test_commits_on_success(self, sample_service, session):
        with sample_service.transaction():
            pass

        session.commit.assert_called_once()
        session.rollback.assert_not_called()

    def test_database_error_becomes_service_exception(self, sample_service, session):
        with pytest.raises(ServiceException) as exc_info:
            with sample_service.transaction():
                raise SQLAlchemyError("disk full")

        session.rollback.assert_called_once()
        session.commit.assert_not_called()
        assert "disk full" in exc_info.value.message

    def test_repository_error_becomes_service_exception(self, sample_service, session):
        with pytest.raises(ServiceException):
            with sample_service.transaction():
                raise RepositoryException("constraint")

        session.rollback.assert_called_once()

    def test_domain_error_is_reraised_after_rollback(self, sample_service, session):
        with pytest.raises(NotFoundException):
            with sample_service.transaction():
                raise NotFoundException("nope")

        session.rollback.assert_called_once()

    def test_failed_commit_rolls_back(self, sample_service, session):
        session.commit.side_effect = SQLAlchemyError("lost connection")

        with pytest.raises(ServiceException):
            with sample_service.transaction():
                pass

        session.rollback.assert_called_once()


class TestMetrics:
    def test_measure_operation_records_success_and_failure(self, sample_service):
        assert sample_service.run() == "ok"
        with pytest.raises(NotFoundException):
            sample_service.run(fail=True)

        metrics = sample_service.get_metrics()["sample_operation"]
        assert metrics["count"] == 2
        assert metrics["success_count"] == 1
        assert metrics["failure_count"] == 1
        assert metrics["success_rate"] == 0.5

    def test_reset_metrics(self, sample_service):
        sample_service.run()
        sample_service.reset_metrics()

        assert sample_service.get_metrics() == {}

    def test_decorated_method_is_marked(self):
        assert _SampleService.run._is_measured is True
        assert _SampleService.run._operation_name == "sample_operation"


class TestClock:
    def test_now_uses_injected_clock(self, sample_service, clock):
        assert sample_service.now() == clock.now
