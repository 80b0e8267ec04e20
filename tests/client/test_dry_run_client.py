"""
Tests for the in-memory DryRunClusterClient
"""

# Third Party
import pytest

# Local
from reconkit.client import DryRunClusterClient
from reconkit.exceptions import (
    ConflictError,
    ObjectNotFoundError,
    ResourceVersionExpiredError,
)
from reconkit.managed_object import ManagedObject
from reconkit.test_helpers.helpers import make_object

## List ########################################################################


def test_list_tracks_resource_version():
    client = DryRunClusterClient([make_object("a"), make_object("b")])
    listed = client.list()
    assert sorted(item["metadata"]["name"] for item in listed.items) == ["a", "b"]
    assert listed.resource_version == "2"
    assert [item["metadata"]["resourceVersion"] for item in listed.items] == [
        "1",
        "2",
    ]
    assert client.list_calls == 1


def test_list_returns_copies():
    client = DryRunClusterClient([make_object("a")])
    client.list().items[0]["spec"]["mutated"] = True
    assert "mutated" not in client.get("a", "test")["spec"]


def test_cluster_scoped_objects():
    client = DryRunClusterClient([make_object("a", namespace=None)])
    assert client.get("a") is not None
    assert client.get("a", "test") is None


## Watch #######################################################################


@pytest.mark.timeout(5)
def test_watch_replays_newer_history():
    client = DryRunClusterClient([make_object("a")])
    version = client.list().resource_version
    client.apply(make_object("b"))
    client.apply(make_object("a", spec={"size": 1}))

    events = client.watch(version)
    first = next(events)
    second = next(events)
    assert (first["type"], first["object"]["metadata"]["name"]) == ("ADDED", "b")
    assert (second["type"], second["object"]["metadata"]["name"]) == ("MODIFIED", "a")

    client.stop()
    assert list(events) == []


@pytest.mark.timeout(5)
def test_watch_receives_live_events():
    client = DryRunClusterClient()
    events = client.watch("0")
    client.apply(make_object("a"))
    client.delete("a", "test")
    assert next(events)["type"] == "ADDED"
    deleted = next(events)
    assert deleted["type"] == "DELETED"
    assert deleted["object"]["metadata"]["resourceVersion"] == "2"
    client.stop()


@pytest.mark.timeout(5)
def test_watch_timeout_ends_stream():
    client = DryRunClusterClient(watch_timeout=0.05)
    assert list(client.watch("0")) == []
    assert client.watch_calls == 1


def test_watch_after_compaction_expires():
    client = DryRunClusterClient([make_object("a")])
    version = client.list().resource_version
    client.apply(make_object("b"))
    client.compact()
    with pytest.raises(ResourceVersionExpiredError):
        client.watch(version)


def test_injected_watch_error():
    client = DryRunClusterClient()
    error = RuntimeError("boom")
    client.inject_watch_error(error)
    with pytest.raises(RuntimeError):
        client.watch("0")


## Delete ######################################################################


def test_delete_without_finalizers_removes():
    client = DryRunClusterClient([make_object("a")])
    assert client.delete("a", "test")
    assert client.get("a", "test") is None
    assert not client.delete("a", "test")


def test_delete_with_finalizers_marks_object():
    client = DryRunClusterClient([make_object("a", finalizers=["f"])])
    assert client.delete("a", "test")
    current = ManagedObject(client.get("a", "test"))
    assert current.is_deleting
    version = current.resource_version

    # A second delete does not touch the object again
    client.delete("a", "test")
    assert client.get("a", "test")["metadata"]["resourceVersion"] == version


## Finalizers ##################################################################


def test_update_finalizers():
    client = DryRunClusterClient([make_object("a")])
    current = ManagedObject(client.get("a", "test"))
    updated = client.update_finalizers(current, ["f"], current.resource_version)
    assert updated["metadata"]["finalizers"] == ["f"]
    assert updated["metadata"]["resourceVersion"] != current.resource_version
    assert client.get("a", "test")["metadata"]["finalizers"] == ["f"]


def test_update_finalizers_stale_version():
    client = DryRunClusterClient([make_object("a")])
    stale = ManagedObject(client.get("a", "test"))
    client.apply(make_object("a", spec={"size": 2}))
    with pytest.raises(ConflictError):
        client.update_finalizers(stale, ["f"], stale.resource_version)


def test_update_finalizers_injected_conflicts():
    client = DryRunClusterClient([make_object("a")])
    current = ManagedObject(client.get("a", "test"))
    client.inject_conflicts(2)
    for _ in range(2):
        with pytest.raises(ConflictError):
            client.update_finalizers(current, ["f"], current.resource_version)
    assert client.update_finalizers(current, ["f"], current.resource_version)


def test_update_finalizers_missing_object():
    client = DryRunClusterClient()
    with pytest.raises(ObjectNotFoundError):
        client.update_finalizers(ManagedObject(make_object("a")), [], None)
    assert client.get_object(ManagedObject(make_object("a"))) is None


def test_removing_last_finalizer_completes_deletion():
    client = DryRunClusterClient([make_object("a", finalizers=["f"])])
    client.delete("a", "test")
    current = ManagedObject(client.get("a", "test"))
    assert client.update_finalizers(current, [], current.resource_version) is None
    assert client.get("a", "test") is None
