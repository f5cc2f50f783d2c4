from pathlib import Path

import pytest

from bizops_console import live
from bizops_console.db import (
    FieldFilter,
    add_document,
    delete_document,
    subscribe_documents,
    update_document,
)


def test_subscription_receives_initial_snapshot_and_updates(db_cfg):
    """Every write to the collection triggers a fresh snapshot."""
    snapshots = []
    sub = subscribe_documents(
        db_cfg, "teams", lambda docs: snapshots.append([d.data for d in docs])
    )

    assert snapshots == [[]]

    doc = add_document(db_cfg, "teams", {"teamName": "North"})
    update_document(db_cfg, "teams", doc.id, {"quota": 1000})
    delete_document(db_cfg, "teams", doc.id)

    assert snapshots == [
        [],
        [{"teamName": "North"}],
        [{"teamName": "North", "quota": 1000}],
        [],
    ]
    sub.unsubscribe()


def test_subscription_filters_and_other_collections(db_cfg):
    seen = []
    sub = subscribe_documents(
        db_cfg,
        "deals",
        lambda docs: seen.append(len(docs)),
        [FieldFilter("stage", "==", "Closed")],
    )

    add_document(db_cfg, "deals", {"stage": "Prospecting"})
    add_document(db_cfg, "deals", {"stage": "Closed"})
    # Writes to another collection do not refresh the deals view
    add_document(db_cfg, "leads", {"channel": "Email"})

    assert seen == [0, 0, 1]
    sub.unsubscribe()


def test_unsubscribe_stops_updates(db_cfg):
    seen = []
    sub = subscribe_documents(db_cfg, "teams", lambda docs: seen.append(len(docs)))
    key = sub.key

    assert sub.active
    assert live.active_subscriptions(key) == 1

    sub.unsubscribe()
    sub.unsubscribe()
    add_document(db_cfg, "teams", {"teamName": "South"})

    assert not sub.active
    assert live.active_subscriptions(key) == 0
    assert seen == [0]


def test_subscription_as_context_manager(db_cfg):
    seen = []
    with subscribe_documents(
        db_cfg, "teams", lambda docs: seen.append(len(docs))
    ) as sub:
        add_document(db_cfg, "teams", {"teamName": "East"})
    add_document(db_cfg, "teams", {"teamName": "West"})

    assert not sub.active
    assert seen == [0, 1]


def test_failing_initial_snapshot_does_not_leave_subscription(db_cfg):
    def broken(_docs):
        raise RuntimeError("boom")

    before = live.active_subscriptions()
    with pytest.raises(RuntimeError):
        subscribe_documents(db_cfg, "teams", broken)
    assert live.active_subscriptions() == before


def test_notify_returns_number_of_refreshed_subscriptions():
    calls = []
    sub_a = live.subscribe("memory", "things", lambda: "a", calls.append)
    sub_b = live.subscribe("memory", "things", lambda: "b", calls.append)

    assert live.notify("memory", "things") == 2
    assert live.notify("memory", "other") == 0
    assert calls == ["a", "b", "a", "b"]

    sub_a.unsubscribe()
    sub_b.unsubscribe()
    assert live.active_subscriptions("memory") == 0


def test_failing_callback_does_not_break_the_write(db_cfg):
    """The write is kept and the other subscriptions still get their snapshot."""
    calls = []

    def flaky(docs):
        calls.append(len(docs))
        if len(calls) > 1:
            raise RuntimeError("boom")

    seen = []
    sub_flaky = subscribe_documents(db_cfg, "teams", flaky)
    sub_ok = subscribe_documents(db_cfg, "teams", lambda docs: seen.append(len(docs)))

    doc = add_document(db_cfg, "teams", {"teamName": "North"})

    assert doc.data == {"teamName": "North"}
    assert calls == [0, 1]
    assert seen == [0, 1]
    assert live.notify(str(Path(db_cfg.path).resolve()), "teams") == 1
    sub_flaky.unsubscribe()
    sub_ok.unsubscribe()
