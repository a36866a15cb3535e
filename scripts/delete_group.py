"""Delete a group with its items, members and fan-out index records.

Usage:
    python -m scripts.delete_group <group_id>
Requires FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH.
Safe to re-run after a failure: the deletion resumes from what is left.
"""

import asyncio
import sys

from inventory_sync.application.use_cases.group_deletion import delete_group_cascade
from inventory_sync.core.config import get_settings
from inventory_sync.infrastructure.firebase import (
    close_firebase,
    get_document_store,
    init_firebase,
)
from inventory_sync.shared.telemetry import setup_logging
from inventory_sync.shared.telemetry.telemetry import configure_from_settings


async def main() -> None:
    if len(sys.argv) != 2:
        print("Usage: python -m scripts.delete_group <group_id>", file=sys.stderr)
        sys.exit(2)
    group_id = sys.argv[1]

    settings = get_settings()
    setup_logging()
    telemetry = configure_from_settings(settings)
    if not init_firebase():
        print("Firestore not configured", file=sys.stderr)
        sys.exit(1)
    store = get_document_store()
    try:
        result = await delete_group_cascade(store, group_id, settings)
    finally:
        await close_firebase()
        if telemetry:
            telemetry.shutdown()

    if result.already_deleted:
        print(f"Group {group_id} does not exist (nothing to delete)")
    elif result:
        print(f"Deleted group {group_id}: {result.deleted} document(s) in {result.commits} commit(s)")
    else:
        print(
            f"Deletion of group {group_id} failed after {result.commits} commit(s): {result.error}",
            file=sys.stderr,
        )
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
