"""CLI entry -- python -m fieldops.core <command>

Commands:
  init-db               create the database and schema
  replay [task_id]      rebuild task activity from the event log
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI main entry"""
    if len(sys.argv) < 2:
        print("usage: python -m fieldops.core <command>")
        print("commands:")
        print("  init-db            create the database and schema")
        print("  replay [task_id]   rebuild task activity from the event log")
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "replay":
        task_id = sys.argv[2] if len(sys.argv) > 2 else None
        asyncio.run(replay(task_id))
    else:
        print(f"unknown command: {command}")
        print("available commands: init-db, replay")
        sys.exit(1)


async def init_database() -> None:
    from .store import create_store_group

    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    await store_group.close()
    print(f"database ready: {db_path}")


async def replay(task_id: str | None = None) -> None:
    """Replay one task topic (or the whole log) and print the resulting activity"""
    from .models.event import task_topic
    from .projection import TaskActivityProjection
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        projection = TaskActivityProjection()
        if task_id is None:
            count = await projection.rebuild_all(store_group.event_store)
        else:
            count = await projection.replay(store_group.event_store, task_topic(task_id))
        print(f"applied {count} events")
        for activity in projection.activities.values():
            print(activity.model_dump_json(indent=2))
    finally:
        await store_group.close()


if __name__ == "__main__":
    main()
