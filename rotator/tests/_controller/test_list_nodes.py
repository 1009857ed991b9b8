from unittest.mock import MagicMock
from unittest.mock import patch

from rotator import _configs
from rotator import _controller
from rotator.tests import _utils


@patch("rotator._controller._nodes.core_v1.Node.get_resource_api")
def test_list_nodes(get_resource_api: MagicMock):
    """Should list nodes of the role in the order returned by kubernetes."""
    api = MagicMock()
    api.list_node.return_value = MagicMock(
        items=[
            _utils.make_kube_node("b", {_configs.MARKER_LABEL: "old"}),
            _utils.make_kube_node("a", is_ready=False, unschedulable=True),
        ]
    )
    get_resource_api.return_value = api

    configs = _utils.make_configs()
    nodes = _controller.list_nodes(configs, _configs.WORKER_ROLE)

    api.list_node.assert_called_once_with(
        label_selector="node-role.kubernetes.io/node"
    )
    assert [n.name for n in nodes] == ["b", "a"]
    assert nodes[0].marker == "old"
    assert nodes[0].is_ready
    assert nodes[0].is_schedulable
    assert nodes[1].marker is None
    assert not nodes[1].is_ready
    assert not nodes[1].is_schedulable
    assert all(n.role == _configs.WORKER_ROLE for n in nodes)


@patch("rotator._controller._nodes.core_v1.Node.get_resource_api")
def test_list_nodes_marked(get_resource_api: MagicMock):
    """Should narrow the selector down to the nodes carrying the marker."""
    api = MagicMock()
    api.list_node.return_value = MagicMock(items=[])
    get_resource_api.return_value = api

    configs = _utils.make_configs()
    nodes = _controller.list_nodes(configs, _configs.CONTROL_PLANE_ROLE, "M")

    assert nodes == []
    api.list_node.assert_called_once_with(
        label_selector=(
            "node-role.kubernetes.io/control-plane,node-rotator/retire-at=M"
        )
    )


@patch("time.sleep")
@patch("rotator._controller._nodes.core_v1.Node.get_resource_api")
def test_list_nodes_retried(get_resource_api: MagicMock, time_sleep: MagicMock):
    """Should retry listing nodes after a transient failure."""
    api = MagicMock()
    api.list_node.side_effect = [
        ConnectionError("FAKE"),
        MagicMock(items=[_utils.make_kube_node("a")]),
    ]
    get_resource_api.return_value = api

    nodes = _controller.list_nodes(_utils.make_configs(), _configs.WORKER_ROLE)
    assert [n.name for n in nodes] == ["a"]
    assert time_sleep.call_count == 1
