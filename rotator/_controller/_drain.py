import math
import time
import typing

from kuber.latest import core_v1
from kubernetes.client.rest import ApiException

from rotator import _controller
from rotator import _retry
from rotator import _types

MIRROR_ANNOTATION = "kubernetes.io/config.mirror"


def _is_evictable_pod(pod: core_v1.Pod) -> bool:
    """
    Determine whether the pod has to leave the node for the drain to complete.

    DaemonSet pods run on every node and mirror pods are managed by the kubelet
    itself, so neither can be evicted. Completed pods no longer hold anything.
    """
    owner_kinds = [ref.kind for ref in (pod.metadata.owner_references or [])]
    annotations = pod.metadata.annotations or {}
    return (
        "DaemonSet" not in owner_kinds
        and MIRROR_ANNOTATION not in annotations
        and (pod.status.phase or "").lower() not in ("succeeded", "failed")
    )


@_retry.retried("list node pods")
def _get_evictable_pods(
    configs: "_types.RotatorConfigs",
    node_name: str,
) -> typing.List[core_v1.Pod]:
    """List the pods on the node that still need to be evicted."""
    api = core_v1.Pod.get_resource_api()
    response = api.list_pod_for_all_namespaces(
        field_selector=f"spec.nodeName={node_name}"
    )
    pods = [core_v1.Pod().from_dict(item.to_dict()) for item in response.items]
    return [p for p in pods if _is_evictable_pod(p)]


@_retry.retried("evict pod")
def _evict_pod(configs: "_types.RotatorConfigs", pod: core_v1.Pod) -> bool:
    """
    Request the eviction of the pod through the eviction API.

    Evictions honor pod disruption budgets. When a budget does not currently
    allow the disruption the request is refused with a 429 and has to be tried
    again later.

    :return:
        Whether the eviction was accepted or the pod was already gone.
    """
    api = core_v1.Pod.get_resource_api()
    name = pod.metadata.name
    namespace = pod.metadata.namespace
    body = {
        "apiVersion": "policy/v1",
        "kind": "Eviction",
        "metadata": {"name": name, "namespace": namespace},
    }
    try:
        api.create_namespaced_pod_eviction(name=name, namespace=namespace, body=body)
    except ApiException as error:
        if error.status == 429:
            return False
        if error.status == 404:
            return True
        raise
    return True


def drain_node(
    configs: "_types.RotatorConfigs",
    node: "_types.RotationNode",
    timeout: int = None,
) -> "_types.DrainOutcome":
    """
    Evict the workloads on the node ahead of the termination of its instance.

    Draining is best effort. Its remote calls go through the retry executor
    like any other, but a drain that times out or keeps failing past the
    retries is logged and reported through the returned outcome instead of being
    raised, because the node is removed by terminating its instance regardless.

    :param configs:
        Configuration for the current rotation run.
    :param node:
        Node to be drained.
    :param timeout:
        Number of seconds to wait for the pods to leave the node. Defaults to
        the configured drain timeout.
    """
    limit = configs.drain_timeout if timeout is None else timeout
    interval = configs.drain_poll_interval
    rounds = max(1, math.ceil(limit / interval))

    try:
        _controller.cordon_node(configs, node)
        for _ in range(rounds):
            pods = _get_evictable_pods(configs, node.name)
            if not pods:
                break

            refused = [
                f"{p.metadata.namespace}:{p.metadata.name}"
                for p in pods
                if not p.metadata.deletion_timestamp and not _evict_pod(configs, p)
            ]
            if refused:
                configs.log(
                    "eviction_refused",
                    {"node": node.name, "pods": refused},
                )
            time.sleep(interval)
        else:
            pods = _get_evictable_pods(configs, node.name)
    except Exception as error:
        configs.log(
            "drain_failed",
            {
                "node": node.name,
                "outcome": _types.DrainOutcome.ERROR.value,
                "error": f"{type(error).__name__}: {error}",
            },
        )
        return _types.DrainOutcome.ERROR

    if pods:
        configs.log(
            "drain_timed_out",
            {
                "node": node.name,
                "outcome": _types.DrainOutcome.TIMEOUT.value,
                "timeout": limit,
                "remaining_pods": [
                    f"{p.metadata.namespace}:{p.metadata.name}" for p in pods
                ],
            },
        )
        return _types.DrainOutcome.TIMEOUT

    configs.log(
        "drained_node",
        {"node": node.name, "outcome": _types.DrainOutcome.SUCCESS.value},
    )
    return _types.DrainOutcome.SUCCESS
