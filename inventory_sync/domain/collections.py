"""Firestore collection names and paths (schema-in-code).

Firestore has no DDL or migrations. Collections are created automatically
when the first document is written. Use these helpers so paths stay
consistent across views, deletion plans and membership writes.

Layout:
    users/{uid}/items/{itemId}          user-private inventory
    users/{uid}/groups/{groupId}        fan-out index: groups the user belongs to
    groups/{groupId}                    canonical group (ownerUid, name, ...)
    groups/{groupId}/items/{itemId}     group inventory
    groups/{groupId}/members/{uid}      membership (role, email)
"""

COLLECTION_USERS = "users"
COLLECTION_GROUPS = "groups"
SUBCOLLECTION_ITEMS = "items"
SUBCOLLECTION_MEMBERS = "members"
SUBCOLLECTION_MEMBER_GROUPS = "groups"

# Field names shared by several records
FIELD_OWNER_UID = "ownerUid"
FIELD_ROLE = "role"
FIELD_EMAIL = "email"
FIELD_NAME = "name"
FIELD_QUANTITY = "quantity"
FIELD_DESCRIPTION = "description"
FIELD_CREATED_AT = "createdAt"
FIELD_UPDATED_AT = "updatedAt"


def user_path(user_id: str) -> str:
    return f"{COLLECTION_USERS}/{user_id}"


def user_items_path(user_id: str) -> str:
    return f"{user_path(user_id)}/{SUBCOLLECTION_ITEMS}"


def user_item_path(user_id: str, item_id: str) -> str:
    return f"{user_items_path(user_id)}/{item_id}"


def member_groups_path(user_id: str) -> str:
    return f"{user_path(user_id)}/{SUBCOLLECTION_MEMBER_GROUPS}"


def member_group_index_path(user_id: str, group_id: str) -> str:
    """Fan-out index record for one (member, group) pair."""
    return f"{member_groups_path(user_id)}/{group_id}"


def group_path(group_id: str) -> str:
    return f"{COLLECTION_GROUPS}/{group_id}"


def group_items_path(group_id: str) -> str:
    return f"{group_path(group_id)}/{SUBCOLLECTION_ITEMS}"


def group_item_path(group_id: str, item_id: str) -> str:
    return f"{group_items_path(group_id)}/{item_id}"


def group_members_path(group_id: str) -> str:
    return f"{group_path(group_id)}/{SUBCOLLECTION_MEMBERS}"


def group_member_path(group_id: str, user_id: str) -> str:
    return f"{group_members_path(group_id)}/{user_id}"
