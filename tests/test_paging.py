from __future__ import annotations

import math

import pytest

from spaudit.models import NodeKind
from spaudit.paging import Collection, CollectionQuery, fetch_all
from tests.fakes import document_list, folder, item


def _populate(remote, size: int):
    lst = document_list("Docs")
    remote.items[lst.id] = [folder(str(i), lst) for i in range(1, size + 1)]
    return lst


@pytest.mark.parametrize("size,batch", [(1234, 500), (1000, 500), (7, 3), (1, 500)])
def test_fetch_all_yields_every_record_in_order(remote, policy, size, batch):
    lst = _populate(remote, size)
    query = CollectionQuery(lst, Collection.ITEMS, batch_size=batch)

    nodes = list(fetch_all(remote, query, policy))

    assert [n.id for n in nodes] == [str(i) for i in range(1, size + 1)]
    assert len(remote.calls_to("fetch_page")) == math.ceil(size / batch)


def test_empty_collection_costs_one_call(remote, policy):
    lst = _populate(remote, 0)
    nodes = list(fetch_all(remote, CollectionQuery(lst, Collection.ITEMS), policy))
    assert nodes == []
    assert len(remote.calls_to("fetch_page")) == 1


def test_cursor_is_carried_between_calls(remote, policy):
    lst = _populate(remote, 5)
    list(fetch_all(remote, CollectionQuery(lst, Collection.ITEMS, batch_size=2), policy))
    cursors = [call[3] for call in remote.calls_to("fetch_page")]
    assert cursors == [None, "2", "4"]


def test_throttled_page_is_retried(remote, policy, sleeps):
    lst = _populate(remote, 3)
    remote.throttle["fetch_page"] = 2
    nodes = list(fetch_all(remote, CollectionQuery(lst, Collection.ITEMS, batch_size=2), policy))
    assert len(nodes) == 3
    assert sleeps == [5.0, 10.0]


def test_fetch_is_lazy(remote, policy):
    lst = _populate(remote, 10)
    records = fetch_all(remote, CollectionQuery(lst, Collection.ITEMS, batch_size=5), policy)
    assert remote.calls == []
    next(records)
    assert len(remote.calls_to("fetch_page")) == 1


def test_folders_only_filters_records(remote, policy):
    lst = document_list("Docs")
    remote.items[lst.id] = [folder("1", lst), item("2", lst), folder("3", lst)]
    query = CollectionQuery(lst, Collection.ITEMS, folders_only=True)
    nodes = list(fetch_all(remote, query, policy))
    assert [n.id for n in nodes] == ["1", "3"]
    assert all(n.kind is NodeKind.FOLDER for n in nodes)
