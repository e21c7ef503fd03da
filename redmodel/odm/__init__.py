"""
Record/collection/view layer for redmodel.

Re-exports the record, record set and view types so downstream code can
import from `redmodel.odm` directly.
"""

from redmodel.odm.abstract import Destroyable, StoreClient
from redmodel.odm.events import Emitter, LifecycleHooks
from redmodel.odm.indexer import IndexMaintainer
from redmodel.odm.record import Record
from redmodel.odm.record_set import RecordSet
from redmodel.odm.teardown import destroy_all
from redmodel.odm.view import MaterializedView, ViewCache

__all__ = [
    # Capabilities
    "Destroyable",
    "StoreClient",
    # Events
    "Emitter",
    "LifecycleHooks",
    # Records
    "IndexMaintainer",
    "Record",
    "RecordSet",
    # Views
    "MaterializedView",
    "ViewCache",
    "destroy_all",
]
