#!/usr/bin/env python3
"""Print the latest notifications and per-type counts from the database."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func
from sqlmodel import Session, select

from calmanage.db import engine
from calmanage.models import Notification


def main():
    print("=" * 80)
    print("NOTIFICATIONS")
    print("=" * 80)
    print()

    with Session(engine) as session:
        notifications = session.exec(
            select(Notification)
            .order_by(Notification.created_at.desc())
            .limit(10)
        ).all()

        print(f"Latest notifications: {len(notifications)}")
        print()

        if notifications:
            print(f"{'ID':<38} {'Type':<15} {'Message':<40} {'Created At'}")
            print("-" * 80)
            for n in notifications:
                print(f"{str(n.id):<38} {n.type:<15} {n.message[:37]:<40} {n.created_at}")
        else:
            print("No notifications found")

        print()
        print("=" * 80)

        stats = session.exec(
            select(Notification.type, func.count(Notification.id))
            .group_by(Notification.type)
        ).all()

        if stats:
            print("By type:")
            for type_name, count in stats:
                print(f"  {type_name}: {count}")

        print("=" * 80)


if __name__ == "__main__":
    main()
