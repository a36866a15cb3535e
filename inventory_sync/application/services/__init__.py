"""Application services: sync engine, group deletion, membership and item writes."""

from inventory_sync.application.services.cascading_deleter import BatchWriter, CascadingDeleter
from inventory_sync.application.services.deletion_plans import group_deletion_plan
from inventory_sync.application.services.document_join import DocumentJoin
from inventory_sync.application.services.fanout_index import FanoutIndexMaintainer
from inventory_sync.application.services.item_service import ItemService
from inventory_sync.application.services.materialized_view import MaterializedView
from inventory_sync.application.services.membership_service import (
    MembershipService,
    default_group_name,
)
from inventory_sync.application.services.page_fetcher import RemotePageFetcher
from inventory_sync.application.services.subscription_registry import (
    SubscriptionHandle,
    SubscriptionRegistry,
)
from inventory_sync.application.services.view_sources import (
    ViewSource,
    group_items_source,
    group_members_source,
    member_groups_source,
    user_items_source,
)

__all__ = [
    "BatchWriter",
    "CascadingDeleter",
    "DocumentJoin",
    "FanoutIndexMaintainer",
    "ItemService",
    "MaterializedView",
    "MembershipService",
    "RemotePageFetcher",
    "SubscriptionHandle",
    "SubscriptionRegistry",
    "ViewSource",
    "default_group_name",
    "group_deletion_plan",
    "group_items_source",
    "group_members_source",
    "member_groups_source",
    "user_items_source",
]
