from carecoord.store.fetch import (
    FetchController,
    QueryState,
    SubscriptionHub,
    fetch_once,
    shared_hub,
)
from carecoord.store.gateway import DocumentStore, InMemoryDocumentStore, WriteMode
from carecoord.store.mutate import mutate
from carecoord.store.query import LimitDirection, QueryDescriptor, build_query

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "WriteMode",
    "mutate",
    "QueryDescriptor",
    "LimitDirection",
    "build_query",
    "FetchController",
    "QueryState",
    "SubscriptionHub",
    "fetch_once",
    "shared_hub",
]
