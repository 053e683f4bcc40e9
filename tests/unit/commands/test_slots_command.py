from datetime import date

import pytest

from appointment_engine.commands.slots import SlotsCommand, build_parser, main
from appointment_engine.core.config import Settings
from appointment_engine.models import AppointmentSlot, Interviewer

MONDAY = date(2030, 1, 7)

WORKDAY = {
    "enabled": True,
    "start_time": "09:00",
    "end_time": "17:00",
    "break_times": [{"start_time": "12:00", "end_time": "13:00"}],
}


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'slots.db'}"


@pytest.fixture
def command(database_url):
    cmd = SlotsCommand(database_url=database_url, config=Settings(_env_file=None))
    cmd.init_db()
    yield cmd
    cmd.engine.dispose()


def _add_interviewer(command, **overrides):
    fields = {
        "name": "Lin",
        "appointment_types": ["consultation"],
        "interview_types": ["video_call"],
        "default_availability": {"monday": WORKDAY},
        "buffer_time_minutes": 15,
        "is_active": True,
    }
    fields.update(overrides)
    session = command.session_factory()
    try:
        session.add(Interviewer(**fields))
        session.commit()
    finally:
        session.close()


class TestSlotsCommand:
    def test_seed_creates_sub_slots(self, command):
        _add_interviewer(command)

        result = command.seed(days=1, start_date=MONDAY)

        assert result["status"] == "success"
        assert result["created"] == 9
        assert result["skipped"] == 0
        assert result["interviewers"][0]["name"] == "Lin"

        session = command.session_factory()
        try:
            assert session.query(AppointmentSlot).count() == 9
        finally:
            session.close()

    def test_seed_is_repeatable(self, command):
        _add_interviewer(command)
        command.seed(days=1, start_date=MONDAY)

        again = command.seed(days=1, start_date=MONDAY)

        assert again["created"] == 0
        assert again["skipped"] == 9

    def test_inactive_interviewers_are_ignored(self, command):
        _add_interviewer(command, is_active=False)

        result = command.seed(days=7, start_date=MONDAY)

        assert result["interviewers"] == []
        assert result["created"] == 0


class TestMain:
    def test_parser(self):
        args = build_parser().parse_args(["seed", "--days", "3", "--start-date", "2030-01-07"])

        assert args.command == "seed"
        assert args.days == 3
        assert args.start_date == MONDAY

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "Appointment slot management" in capsys.readouterr().out

    def test_init_db_then_seed_without_interviewers(self, database_url, capsys):
        assert main(["--database-url", database_url, "init-db"]) == 0
        assert "Tables created" in capsys.readouterr().out

        assert main(["--database-url", database_url, "seed", "--days", "2"]) == 0
        out = capsys.readouterr().out
        assert "No active interviewers found." in out
        assert "Total: 0 created, 0 skipped" in out
