import pytest
from pydantic import ValidationError

from appointment_engine.core.config import Settings, is_running_tests
from appointment_engine.core.constants import DEFAULT_MAX_OCCURRENCES, MAX_REMINDERS_PER_BOOKING


class TestSettings:
    def test_defaults(self):
        config = Settings(_env_file=None)

        assert config.default_capacity == 1
        assert config.default_cancellation_deadline_hours == 24
        assert config.max_recurring_occurrences == DEFAULT_MAX_OCCURRENCES
        assert config.reminder_max_sends == MAX_REMINDERS_PER_BOOKING
        assert config.slot_lock_backend == "memory"
        assert config.is_sqlite

    def test_environment_prefix(self, monkeypatch):
        monkeypatch.setenv("APPOINTMENT_DEFAULT_CAPACITY", "4")
        monkeypatch.setenv("APPOINTMENT_DATABASE_URL", "postgresql://db/appointments")

        config = Settings(_env_file=None)

        assert config.default_capacity == 4
        assert not config.is_sqlite

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="chatty")

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, default_capacity=0)

    def test_running_under_pytest(self):
        assert is_running_tests()
