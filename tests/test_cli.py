"""
CLI command tests against the fixture DB.
"""

import sys

import pytest

from cli import main as cli
from lib.allocations import AllocationService


@pytest.fixture
def allocated(service, hr):
    return service.create_allocation(
        hr,
        {
            "employee_id": "emp-1",
            "project_id": "prj-a",
            "role": "Developer",
            "percentage": 70,
            "start_date": "2024-01-01",
            "end_date": "2024-06-30",
        },
    )


def test_init_creates_schema(tmp_path, monkeypatch, capsys):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("STAFF_DESK_DB", str(db_path))

    cli.cmd_init([])

    out = capsys.readouterr().out
    assert "Schema version: 3" in out
    assert "+ table project_allocation" in out
    assert db_path.exists()


def test_capacity_reports_total_and_headroom(allocated, capsys):
    assert cli.cmd_capacity(["emp-1", "2024-03-01"]) == 0

    out = capsys.readouterr().out
    assert "Allocated: 70%" in out
    assert "Headroom:  30%" in out


def test_capacity_usage_and_errors(fixture_db_path, capsys):
    assert cli.cmd_capacity(["emp-1"]) == 1
    assert cli.cmd_capacity(["ghost", "2024-01-01"]) == 1
    assert "Employee not found" in capsys.readouterr().out


def test_allocations_lists_rows(allocated, capsys):
    assert cli.cmd_allocations([]) == 0

    out = capsys.readouterr().out
    assert "ALLOCATIONS (1)" in out
    assert "PRJ-A" in out


def test_audit_lists_entries(allocated, capsys):
    assert cli.cmd_audit([allocated.id]) == 0

    out = capsys.readouterr().out
    assert "AUDIT LOG (1)" in out
    assert "INSERT" in out


def test_main_dispatches_and_rejects_unknown(fixture_db_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

    monkeypatch.setattr(sys, "argv", ["staff-desk", "help"])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 0
    assert "STAFF DESK CLI" in capsys.readouterr().out

    monkeypatch.setattr(sys, "argv", ["staff-desk", "frobnicate"])
    with pytest.raises(SystemExit) as exc_info:
        cli.main()
    assert exc_info.value.code == 1


def test_cli_actor_sees_everything(db, allocated):
    page = AllocationService(db).list_allocations(cli.CLI_ACTOR)
    assert page["total"] == 1
