"""MongoDB helpers and bulk upsert utility.

Centralizes creation of Mongo clients and the bulk_upsert implementation
used to publish Gold reports.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

import certifi
from pymongo import MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

log = logging.getLogger(__name__)


def get_client(uri: str) -> MongoClient:
    """Return a configured PyMongo MongoClient for the provided URI.

    TLS is enabled for `mongodb+srv://` (Atlas) URIs only, so a local
    `mongodb://localhost` server works without certificates.

    Args:
        uri: MongoDB connection URI.

    Returns:
        Configured MongoClient instance.
    """
    tls_opts: dict[str, Any] = {}
    if uri.startswith("mongodb+srv://"):
        tls_opts = {"tls": True, "tlsCAFile": certifi.where()}
    return MongoClient(
        uri,
        serverSelectionTimeoutMS=30000,
        socketTimeoutMS=30000,
        connectTimeoutMS=30000,
        **tls_opts,
    )


def get_db(
    client: MongoClient[dict[str, Any]],
    db_name: str,
) -> Database[dict[str, Any]]:
    """Return the named Database instance from a MongoClient."""
    return client[db_name]


def bulk_upsert(
    collection: Collection[dict[str, Any]],
    docs: Iterable[dict[str, Any]],
    key_fields: Sequence[str],
    batch_size: int = 1000,
) -> int:
    """Bulk upsert documents using `key_fields` as the selector.

    Documents missing any key field are skipped. A failing batch is logged
    and the remaining batches are still written; the return value counts
    the documents that were attempted.

    Args:
        collection: Target PyMongo collection.
        docs: Iterable of document dictionaries to upsert.
        key_fields: Document keys forming the upsert selector.
        batch_size: Number of ops per bulk_write call.

    Returns:
        Integer number of documents attempted.
    """
    ops: list[UpdateOne] = []
    attempted = 0
    skipped = 0

    def _flush() -> None:
        try:
            collection.bulk_write(ops, ordered=False)
        except PyMongoError as e:
            log.warning("bulk_upsert batch on %s failed: %s", collection.name, e)
        ops.clear()

    for d in docs:
        if any(k not in d for k in key_fields):
            skipped += 1
            continue

        ops.append(
            UpdateOne(
                {k: d[k] for k in key_fields},
                {"$set": d},
                upsert=True,
            )
        )
        attempted += 1

        if len(ops) >= batch_size:
            _flush()

    if ops:
        _flush()

    if skipped:
        log.warning("bulk_upsert skipped %d documents without %s", skipped, list(key_fields))
    return attempted


def delete_stale(
    collection: Collection[dict[str, Any]],
    docs: Iterable[dict[str, Any]],
    key_fields: Sequence[str],
) -> int:
    """Delete documents whose key is not among `docs`.

    With no documents the collection is emptied, so a report that came out
    empty does not keep the rows of a previous run.

    Returns:
        Number of documents deleted.
    """
    selectors = [
        {k: d[k] for k in key_fields}
        for d in docs
        if all(k in d for k in key_fields)
    ]
    query: dict[str, Any] = {"$nor": selectors} if selectors else {}
    result = collection.delete_many(query)
    return int(result.deleted_count)
