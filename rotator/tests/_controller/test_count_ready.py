from unittest.mock import MagicMock
from unittest.mock import patch

from rotator import _configs
from rotator import _controller
from rotator.tests import _utils


@patch("rotator._controller._nodes.core_v1.Node.get_resource_api")
def test_count_ready(get_resource_api: MagicMock):
    """Should only count healthy nodes that are not in the marker's cohort."""
    api = MagicMock()
    api.list_node.return_value = MagicMock(
        items=[
            # Marked by this rotation and so never replacement capacity.
            _utils.make_kube_node("a", {_configs.MARKER_LABEL: "M"}),
            _utils.make_kube_node("b", {_configs.MARKER_LABEL: "M"}),
            # Replacement nodes, one of which is not ready yet.
            _utils.make_kube_node("c"),
            _utils.make_kube_node("d", is_ready=False),
            # Marked by an earlier rotation.
            _utils.make_kube_node("e", {_configs.MARKER_LABEL: "OLD"}),
        ]
    )
    get_resource_api.return_value = api

    configs = _utils.make_configs()
    assert _controller.count_ready(configs, _configs.WORKER_ROLE, "M") == 2
    api.list_node.assert_called_once_with(
        label_selector="node-role.kubernetes.io/node"
    )
