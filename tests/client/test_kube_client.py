"""
Tests for the kubernetes client adapters using a mocked dynamic client
"""

# Standard
from unittest import mock

# Third Party
from kubernetes.client.exceptions import ApiException
from openshift.dynamic.exceptions import ConflictError as KubeConflictError
from openshift.dynamic.exceptions import NotFoundError
import pytest
import urllib3

# Local
from reconkit.client import KubeFinalizerClient, KubeListerWatcher
from reconkit.exceptions import (
    ConflictError,
    InvalidEventError,
    ObjectNotFoundError,
    ResourceVersionExpiredError,
)
from reconkit.managed_object import ManagedObject
from reconkit.test_helpers.helpers import TEST_API_VERSION, TEST_KIND, make_object

## Helpers #####################################################################


def to_dict_result(value):
    result = mock.MagicMock()
    result.to_dict.return_value = value
    return result


@pytest.fixture
def dynamic_client():
    return mock.MagicMock()


@pytest.fixture
def handle(dynamic_client):
    return dynamic_client.resources.get.return_value


@pytest.fixture
def watch_mock():
    with mock.patch("reconkit.client.kube_client.Watch") as watch_class:
        yield watch_class.return_value


def make_lister_watcher(dynamic_client, **kwargs):
    return KubeListerWatcher(
        dynamic_client, TEST_KIND, TEST_API_VERSION, namespace="test", **kwargs
    )


## KubeListerWatcher ###########################################################


def test_list(dynamic_client, handle, watch_mock):
    handle.get.return_value = to_dict_result(
        {"items": [make_object("a")], "metadata": {"resourceVersion": "7"}}
    )
    lister_watcher = make_lister_watcher(dynamic_client, label_selector="app=x")
    listed = lister_watcher.list()
    assert listed.resource_version == "7"
    assert listed.items[0]["metadata"]["name"] == "a"
    dynamic_client.resources.get.assert_called_with(
        api_version=TEST_API_VERSION, kind=TEST_KIND
    )
    handle.get.assert_called_with(
        namespace="test", label_selector="app=x", field_selector=None
    )


def test_watch_events(dynamic_client, handle, watch_mock):
    watch_mock.stream.return_value = iter(
        [
            {"type": "ADDED", "object": make_object("a")},
            {"type": "MODIFIED", "object": make_object("a")},
        ]
    )
    events = list(make_lister_watcher(dynamic_client).watch("3"))
    assert [event["type"] for event in events] == ["ADDED", "MODIFIED"]
    kwargs = watch_mock.stream.call_args.kwargs
    assert kwargs["resource_version"] == "3"
    assert kwargs["serialize"] is False


def test_watch_gone(dynamic_client, handle, watch_mock):
    watch_mock.stream.side_effect = ApiException(status=410, reason="Gone")
    with pytest.raises(ResourceVersionExpiredError):
        list(make_lister_watcher(dynamic_client).watch("3"))


def test_watch_other_api_error(dynamic_client, handle, watch_mock):
    watch_mock.stream.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ApiException):
        list(make_lister_watcher(dynamic_client).watch("3"))


@pytest.mark.parametrize(
    ["code", "error"],
    [(410, ResourceVersionExpiredError), (500, InvalidEventError)],
)
def test_watch_error_event(dynamic_client, handle, watch_mock, code, error):
    watch_mock.stream.return_value = iter(
        [{"type": "ERROR", "object": {"code": code, "message": "nope"}}]
    )
    with pytest.raises(error):
        list(make_lister_watcher(dynamic_client).watch("3"))


def test_watch_read_timeout_ends_stream(dynamic_client, handle, watch_mock):
    watch_mock.stream.side_effect = urllib3.exceptions.ReadTimeoutError(
        None, None, "timed out"
    )
    assert list(make_lister_watcher(dynamic_client).watch("3")) == []


def test_stop(dynamic_client, handle, watch_mock):
    make_lister_watcher(dynamic_client).stop()
    watch_mock.stop.assert_called_once()


## KubeFinalizerClient #########################################################


def test_get_object(dynamic_client, handle):
    handle.get.return_value = to_dict_result(make_object("a"))
    client = KubeFinalizerClient(dynamic_client, TEST_KIND, TEST_API_VERSION)
    assert client.get_object(ManagedObject(make_object("a")))["metadata"]["name"] == "a"
    handle.get.assert_called_with(name="a", namespace="test")


def test_get_object_missing(dynamic_client, handle):
    handle.get.side_effect = NotFoundError(ApiException(status=404, reason="NotFound"))
    client = KubeFinalizerClient(dynamic_client, TEST_KIND, TEST_API_VERSION)
    assert client.get_object(ManagedObject(make_object("a"))) is None


def test_update_finalizers_patch(dynamic_client, handle):
    handle.patch.return_value = to_dict_result(make_object("a", finalizers=["f"]))
    client = KubeFinalizerClient(dynamic_client, TEST_KIND, TEST_API_VERSION)
    updated = client.update_finalizers(ManagedObject(make_object("a")), ["f"], "4")
    assert updated["metadata"]["finalizers"] == ["f"]
    kwargs = handle.patch.call_args.kwargs
    assert kwargs["content_type"] == "application/json-patch+json"
    assert kwargs["body"] == [
        {"op": "test", "path": "/metadata/resourceVersion", "value": "4"},
        {"op": "add", "path": "/metadata/finalizers", "value": ["f"]},
    ]


@pytest.mark.parametrize(
    ["raised", "expected"],
    [
        (KubeConflictError(ApiException(status=409, reason="Conflict")), ConflictError),
        (NotFoundError(ApiException(status=404, reason="NotFound")), ObjectNotFoundError),
    ],
)
def test_update_finalizers_errors(dynamic_client, handle, raised, expected):
    handle.patch.side_effect = raised
    client = KubeFinalizerClient(dynamic_client, TEST_KIND, TEST_API_VERSION)
    with pytest.raises(expected):
        client.update_finalizers(ManagedObject(make_object("a")), ["f"], "4")
