"""
Paginated collection fetching.

Large lists are read in batches ordered by item id so that the remote's
resume cursor stays valid across retried calls, and so that no single
query trips the list view threshold.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .models import TreeNode
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


class Collection(Enum):
    WEBS = "webs"      # immediate subsites of a web
    LISTS = "lists"    # lists and libraries of a web
    ITEMS = "items"    # records of a list


@dataclass(frozen=True)
class CollectionQuery:
    """
    What to enumerate under a container.

    Attributes:
        container: Web (for WEBS/LISTS) or list (for ITEMS) to enumerate
        collection: Which child collection to read
        batch_size: Maximum records per round trip
        folders_only: Restrict ITEMS to folder records
    """

    container: TreeNode
    collection: Collection
    batch_size: int = DEFAULT_BATCH_SIZE
    folders_only: bool = False


def fetch_all(remote, query: CollectionQuery, policy: RetryPolicy) -> Iterator[TreeNode]:
    """
    Yield every node of ``query`` in remote order, one batch per round trip.

    The generator is lazy and single-use. ``remote.fetch_page(query, cursor)``
    must return a ``Page`` whose cursor is None once the collection is done.
    A None cursor also means "start", so whether the first page has been read
    is tracked separately; an empty collection costs exactly one call.
    """
    cursor = None
    started = False
    pages = 0
    while not started or cursor is not None:
        page = policy.execute(remote.fetch_page, query, cursor)
        started = True
        pages += 1
        logger.debug(
            "Fetched page %d of %s under %r: %d record(s)",
            pages, query.collection.value, query.container.title, len(page.nodes),
        )
        yield from page.nodes
        cursor = page.cursor
