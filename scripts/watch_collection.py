"""Watch a collection through a live materialized view and print each snapshot.

Usage:
    python -m scripts.watch_collection <user_items|group_items|group_members|member_groups> <id> [pages]
Loads up to [pages] pages (default 1), then prints snapshots as live updates
arrive until interrupted. Requires Firestore credentials (see delete_group).
"""

import asyncio
import sys

from inventory_sync.application.services.view_sources import SOURCES
from inventory_sync.application.use_cases.view_session import (
    ViewSession,
    member_groups_session,
)
from inventory_sync.core.config import get_settings
from inventory_sync.infrastructure.firebase import (
    close_firebase,
    get_document_store,
    init_firebase,
)
from inventory_sync.shared.telemetry import setup_logging


def _print_snapshot(rows: tuple) -> None:
    print(f"--- {len(rows)} row(s)")
    for row in rows:
        print(f"  {row}")


async def main() -> None:
    if len(sys.argv) < 3 or sys.argv[1] not in SOURCES:
        print(
            f"Usage: python -m scripts.watch_collection <{'|'.join(SOURCES)}> <id> [pages]",
            file=sys.stderr,
        )
        sys.exit(2)
    kind, target_id = sys.argv[1], sys.argv[2]
    pages = int(sys.argv[3]) if len(sys.argv) > 3 else 1

    settings = get_settings()
    setup_logging()
    if not init_firebase():
        print("Firestore not configured", file=sys.stderr)
        sys.exit(1)
    store = get_document_store()

    if kind == "member_groups":
        session = member_groups_session(
            store, target_id, settings=settings, on_snapshot=_print_snapshot
        )
    else:
        session = ViewSession(
            store, SOURCES[kind](target_id), settings=settings, on_snapshot=_print_snapshot
        )
    try:
        async with session:
            for _ in range(pages - 1):
                if not await session.on_next_page_needed():
                    break
            await asyncio.Event().wait()
    finally:
        await close_firebase()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
