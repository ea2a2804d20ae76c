#!/usr/bin/env python3
"""
STAFF DESK CLI - Direct operator interface.
Read-only views over allocations plus database setup.
"""

import sys

from lib import config, paths
from lib.allocations import AllocationError, AllocationService
from lib.audit import AuditStore
from lib.db import Database, run_startup_migrations
from lib.observability import configure_logging
from lib.security import Actor, Role

# Operator commands run with HR visibility.
CLI_ACTOR = Actor(id="cli", role=Role.HR_EXECUTIVE)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths, strict=False))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths, strict=False)))


def cmd_init(args):
    """Create data directories and converge the database schema."""
    print_header("STAFF DESK - Setup")

    for d in (paths.data_dir(), paths.log_dir()):
        d.mkdir(parents=True, exist_ok=True)
        print(f"  ✓ {d}")

    result = run_startup_migrations()
    print(f"\n  ✓ Database: {paths.db_path()}")
    print(f"  ✓ Schema version: {result.get('schema_version')}")
    for table in result.get("tables_created", []):
        print(f"  + table {table}")
    for error in result.get("errors", []):
        print(f"  ✗ {error}")


def cmd_capacity(args):
    """Show an employee's overlapping total for an interval."""
    if len(args) < 2:
        print("Usage: capacity <employee_id> <start_date> [end_date]")
        return 1

    employee_id, start = args[0], args[1]
    end = args[2] if len(args) > 2 else None

    db = Database()
    try:
        preview = AllocationService(db).capacity_preview(employee_id, start, end)
    except AllocationError as e:
        print(f"✗ {e.message}")
        return 1
    finally:
        db.close()

    print_header(f"CAPACITY: {employee_id}")
    print(f"  Interval:  {preview['start_date']} .. {preview['end_date'] or 'open'}")
    print(f"  Allocated: {preview['current_total']:g}%")
    print(f"  Headroom:  {preview['headroom']:g}%")
    return 0


def cmd_allocations(args):
    """List allocations, optionally for one employee."""
    employee_id = args[0] if args else None

    db = Database()
    try:
        page = AllocationService(db).list_allocations(
            CLI_ACTOR, employee_id=employee_id, limit=config.MAX_PAGE_LIMIT
        )
    finally:
        db.close()

    print_header(f"ALLOCATIONS ({page['total']})")
    if not page["allocations"]:
        print("No allocations.")
        return 0

    rows = [
        [
            a["employee_code"],
            a["project_code"],
            a["role"],
            f"{a['percentage']:g}%",
            a["start_date"],
            a["end_date"] or "open",
            "yes" if a["billable"] else "no",
        ]
        for a in page["allocations"]
    ]
    print_table(
        ["Employee", "Project", "Role", "Pct", "Start", "End", "Billable"],
        rows,
        [10, 10, 16, 7, 10, 10, 8],
    )
    return 0


def cmd_audit(args):
    """Show recent audit entries, optionally for one entity."""
    entity_id = args[0] if args else None

    db = Database()
    try:
        entries = AuditStore(db).get_events(entity_id=entity_id, limit=50)
    finally:
        db.close()

    print_header(f"AUDIT LOG ({len(entries)})")
    if not entries:
        print("No entries.")
        return 0

    rows = [
        [e.changed_at[:19].replace("T", " "), e.operation, e.entity_id, e.changed_by, ", ".join(sorted(e.changed_fields))]
        for e in entries
    ]
    print_table(["When", "Op", "Entity", "By", "Fields"], rows, [19, 6, 22, 12, 40])
    return 0


def cmd_serve(args):
    """Run the API server."""
    from api.server import main as serve

    serve()
    return 0


def cmd_help(args):
    """Show help."""
    print_header("STAFF DESK CLI")
    print("""
COMMANDS:

  init                                   Create data dirs and database schema
  capacity <employee> <start> [end]      Overlapping allocation total for an interval
  allocations [employee]                 List allocations
  audit [entity_id]                      Recent audit log entries
  serve                                  Run the API server
  help                                   Show this help

ENVIRONMENT:

  STAFF_DESK_HOME        Data directory root (default ~/.staff_desk)
  STAFF_DESK_DB          Database file override
  STAFF_DESK_JWT_SECRET  Bearer token signing secret
""")
    return 0


COMMANDS = {
    "init": cmd_init,
    "capacity": cmd_capacity,
    "cap": cmd_capacity,
    "allocations": cmd_allocations,
    "a": cmd_allocations,
    "audit": cmd_audit,
    "serve": cmd_serve,
    "help": cmd_help,
    "-h": cmd_help,
    "--help": cmd_help,
}


def main():
    """Main entry point."""
    configure_logging(level=config.LOG_LEVEL, json_format=False)

    if len(sys.argv) < 2:
        cmd_help([])
        return

    cmd = sys.argv[1]
    args = sys.argv[2:]

    if cmd in COMMANDS:
        sys.exit(COMMANDS[cmd](args) or 0)
    else:
        print(f"Unknown command: {cmd}")
        print("Run 'help' for available commands.")
        sys.exit(1)


if __name__ == "__main__":
    main()
