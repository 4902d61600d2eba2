#!/usr/bin/env python3
"""Run one lifecycle scheduler tick in-process, without Celery Beat."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from calmanage.core.logging import configure_logging
from calmanage.db import init_db
from calmanage.tasks.reminders import get_scheduler


def main():
    configure_logging()
    init_db()

    scheduler = get_scheduler()
    scheduler.tick()

    print("=" * 60)
    print("SCHEDULER TICK")
    print("=" * 60)
    for name, value in (scheduler.last_summary.as_dict() if scheduler.last_summary else {}).items():
        print(f"  {name}: {value}")
    print("=" * 60)


if __name__ == "__main__":
    main()
