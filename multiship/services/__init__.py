"""Service layer for multiship.

Consignment reconciliation, the per-item wizard, and the state they share.
"""

from multiship.services.completion import CompletionAggregator
from multiship.services.consignment_cache import (
    DeliveryDate,
    FileConsignmentStore,
    InMemoryConsignmentStore,
    PersistedRecord,
)
from multiship.services.item_config import (
    FeatureFlags,
    ItemConfigurationEntry,
    ItemConfigurationModel,
    OriginalOrder,
)
from multiship.services.reconciler import ConsignmentReconciler, ReconcileResult
from multiship.services.wizard import ItemState, WizardController

__all__ = [
    "CompletionAggregator",
    "ConsignmentReconciler",
    "DeliveryDate",
    "FeatureFlags",
    "FileConsignmentStore",
    "InMemoryConsignmentStore",
    "ItemConfigurationEntry",
    "ItemConfigurationModel",
    "ItemState",
    "OriginalOrder",
    "PersistedRecord",
    "ReconcileResult",
    "WizardController",
]
