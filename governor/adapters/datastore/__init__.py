"""Data store adapter layer - abstracts over the remote store backends."""

from governor.adapters.datastore.base import AbstractDataStore
from governor.adapters.datastore.factory import create_data_store
from governor.adapters.datastore.in_memory import InMemoryDataStore
from governor.adapters.datastore.postgrest_client import PostgRESTDataStore

__all__ = [
    "AbstractDataStore",
    "InMemoryDataStore",
    "PostgRESTDataStore",
    "create_data_store",
]
