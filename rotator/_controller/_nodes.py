import dataclasses
import typing

from kuber.latest import core_v1

from rotator import _retry
from rotator import _types


def _is_ready(node: core_v1.Node) -> bool:
    """Determine whether the node reports a healthy Ready condition."""
    conditions = node.status.conditions or []
    return any(c.type_ == "Ready" and c.status == "True" for c in conditions)


def _to_rotation_node(
    configs: "_types.RotatorConfigs",
    role: str,
    node: core_v1.Node,
) -> "_types.RotationNode":
    """
    Convert a kuber node resource into a RotationNode data structure.

    This simplifies the information from the raw node for use elsewhere
    within this application.
    """
    labels = node.metadata.labels or {}
    return _types.RotationNode(
        name=node.metadata.name,
        role=role,
        marker=labels.get(configs.marker_label) or None,
        is_schedulable=not node.spec.unschedulable,
        is_ready=_is_ready(node),
        resource=node,
    )


@_retry.retried("list nodes")
def list_nodes(
    configs: "_types.RotatorConfigs",
    role: str,
    marker: str = None,
) -> typing.List["_types.RotationNode"]:
    """
    Fetch the nodes of the given role in the order returned by kubernetes.

    :param configs:
        Configuration for the current rotation run.
    :param role:
        Node role to select by the label selector configured for it.
    :param marker:
        When specified, only nodes labeled with this retirement marker will
        be returned.
    """
    api = core_v1.Node.get_resource_api()
    response = api.list_node(label_selector=configs.get_role_selector(role, marker))
    return [
        _to_rotation_node(configs, role, core_v1.Node().from_dict(item.to_dict()))
        for item in response.items
    ]


@_retry.retried("label node")
def label_node(
    configs: "_types.RotatorConfigs",
    node: "_types.RotationNode",
    marker: str,
) -> "_types.RotationNode":
    """
    Label the node with the retirement marker.

    Any existing marker is overwritten so that nodes left behind by an earlier
    rotation can be picked up again by a new one.
    """
    node_patch = core_v1.Node()
    node_patch.metadata.name = node.name
    node_patch.metadata.labels[configs.marker_label] = marker
    node_patch.patch_resource()
    return dataclasses.replace(node, marker=marker)


@_retry.retried("cordon node")
def cordon_node(
    configs: "_types.RotatorConfigs",
    node: "_types.RotationNode",
) -> "_types.RotationNode":
    """Mark the node as unschedulable."""
    node_patch = core_v1.Node()
    node_patch.metadata.name = node.name
    node_patch.spec.unschedulable = True
    node_patch.patch_resource()
    return dataclasses.replace(node, is_schedulable=False)


def count_ready(
    configs: "_types.RotatorConfigs",
    role: str,
    marker: str,
) -> int:
    """
    Count the healthy nodes of the role that are not part of the marker's cohort.

    This is the measure of replacement capacity. Nodes labeled for retirement
    by the current rotation never count, even while they are still healthy.
    """
    return len(
        [
            n
            for n in list_nodes(configs, role)
            if n.is_ready and not n.is_marked_by(marker)
        ]
    )
