"""Inventory item writes for user-private and group collections.

Every write stamps ``updatedAt`` with the server timestamp; the user items
view is ordered by it. Group items may only be changed by the group's owner
or admins. The acting user's role is read from their fan-out index record.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from inventory_sync.domain.collections import (
    FIELD_DESCRIPTION,
    FIELD_NAME,
    FIELD_QUANTITY,
    FIELD_ROLE,
    FIELD_UPDATED_AT,
    group_item_path,
    member_group_index_path,
    user_item_path,
)
from inventory_sync.domain.entities.document import SERVER_TIMESTAMP
from inventory_sync.domain.enums import GroupRole
from inventory_sync.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
)
from inventory_sync.shared.utils.generators import generate_document_id

if TYPE_CHECKING:
    from inventory_sync.application.interfaces.store import IDocumentStore

logger = logging.getLogger(__name__)


def item_fields(name: str, quantity: int, description: str | None = None) -> dict[str, Any]:
    """Validated item record. Negative quantities are stored as 0; blank descriptions as None.

    Raises:
        ValidationException: empty name or non-integer quantity.
    """
    name = name.strip()
    if not name:
        raise ValidationException("Item name must not be empty", field="name")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationException(
            f"Quantity must be an integer, got: {quantity!r}", field="quantity"
        )
    description = (description or "").strip() or None
    return {
        FIELD_NAME: name,
        FIELD_DESCRIPTION: description,
        FIELD_QUANTITY: max(quantity, 0),
        FIELD_UPDATED_AT: SERVER_TIMESTAMP,
    }


def _check_item_id(item_id: str) -> None:
    if not item_id or "/" in item_id:
        raise ValidationException(f"Invalid item id: {item_id!r}", field="item_id")


class ItemService:
    """Adds, edits and deletes inventory items."""

    def __init__(self, store: IDocumentStore) -> None:
        self._store = store

    # -- user items -----------------------------------------------------------

    async def add_user_item(
        self, user_id: str, name: str, quantity: int, description: str | None = None
    ) -> str:
        """Create an item in the user's private inventory. Returns the new item id."""
        fields = item_fields(name, quantity, description)
        item_id = generate_document_id()
        await self._store.set(user_item_path(user_id, item_id), fields)
        return item_id

    async def update_user_item(
        self,
        user_id: str,
        item_id: str,
        name: str,
        quantity: int,
        description: str | None = None,
    ) -> None:
        """Edit an existing item.

        Raises:
            ValidationException: invalid fields or item id.
            ResourceNotFoundException: the item does not exist.
        """
        fields = item_fields(name, quantity, description)
        await self._update(user_item_path, user_id, item_id, fields)

    async def delete_user_item(self, user_id: str, item_id: str) -> None:
        _check_item_id(item_id)
        await self._delete(user_item_path(user_id, item_id))

    # -- group items ----------------------------------------------------------

    async def add_group_item(
        self,
        group_id: str,
        acting_user_id: str,
        name: str,
        quantity: int,
        description: str | None = None,
    ) -> str:
        """Create an item in the group's inventory. Returns the new item id.

        Raises:
            AuthorizationException: the acting user is not an owner or admin of the group.
        """
        fields = item_fields(name, quantity, description)
        await self._require_privileged(group_id, acting_user_id, "create")
        item_id = generate_document_id()
        await self._store.set(group_item_path(group_id, item_id), fields)
        logger.debug("User %s added item %s to group %s", acting_user_id, item_id, group_id)
        return item_id

    async def update_group_item(
        self,
        group_id: str,
        acting_user_id: str,
        item_id: str,
        name: str,
        quantity: int,
        description: str | None = None,
    ) -> None:
        """Edit an existing group item.

        Raises:
            AuthorizationException: the acting user is not an owner or admin of the group.
            ResourceNotFoundException: the item does not exist.
        """
        fields = item_fields(name, quantity, description)
        await self._require_privileged(group_id, acting_user_id, "update")
        await self._update(group_item_path, group_id, item_id, fields)

    async def delete_group_item(self, group_id: str, acting_user_id: str, item_id: str) -> None:
        _check_item_id(item_id)
        await self._require_privileged(group_id, acting_user_id, "delete")
        await self._delete(group_item_path(group_id, item_id))

    # -- internals ------------------------------------------------------------

    async def _update(
        self,
        path_of: Callable[[str, str], str],
        owner_id: str,
        item_id: str,
        fields: dict[str, Any],
    ) -> None:
        _check_item_id(item_id)
        path = path_of(owner_id, item_id)
        if await self._store.get(path) is None:
            raise ResourceNotFoundException("item", item_id)
        await self._store.set(path, fields, merge=True)

    async def _delete(self, path: str) -> None:
        batch = self._store.batch()
        batch.delete(path)
        await batch.commit()

    async def _require_privileged(self, group_id: str, user_id: str, action: str) -> GroupRole:
        record = await self._store.get(member_group_index_path(user_id, group_id))
        role = GroupRole.parse(record.get(FIELD_ROLE)) if record is not None else None
        if role is None or not role.is_privileged:
            logger.info("Refused %s on items of group %s for user %s", action, group_id, user_id)
            raise AuthorizationException(resource="group item", action=action)
        return role
