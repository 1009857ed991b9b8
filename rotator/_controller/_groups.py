import typing

from rotator import _configs
from rotator import _errors
from rotator import _retry
from rotator import _types


def _to_node_group(group_data: dict) -> "_types.NodeGroup":
    """
    Convert a boto3 describe auto scaling group object into a NodeGroup.

    Instances in one of the terminating lifecycle states are members of the
    group but are not counted as live instances.
    """
    instances = group_data.get("Instances") or []
    live_instances = [
        i
        for i in instances
        if not (i.get("LifecycleState") or "").startswith("Terminat")
    ]
    return _types.NodeGroup(
        name=group_data["AutoScalingGroupName"],
        desired_capacity=group_data["DesiredCapacity"],
        max_capacity=group_data["MaxSize"],
        suspended_processes=frozenset(
            p["ProcessName"] for p in (group_data.get("SuspendedProcesses") or [])
        ),
        live_instance_count=len(live_instances),
    )


def fetch_group(client: typing.Any, group_name: str) -> "_types.NodeGroup":
    """
    Fetch the named auto scaling group with the given boto3 autoscaling client.

    This performs the lookup without retries for use inside of operations that
    are already being retried.
    """
    response = client.describe_auto_scaling_groups(AutoScalingGroupNames=[group_name])
    groups = [_to_node_group(g) for g in (response.get("AutoScalingGroups") or [])]
    resolution = _types.Resolution.from_matches(group_name, groups, lambda g: g.name)
    return resolution.require()


@_retry.retried("describe auto scaling group")
def describe_group(
    configs: "_types.RotatorConfigs",
    group_name: str,
) -> "_types.NodeGroup":
    """
    Fetch the current state of the named auto scaling group.

    :param configs:
        Configuration for the current rotation run.
    :param group_name:
        Name of the auto scaling group to describe.
    """
    return fetch_group(configs.session.client("autoscaling"), group_name)


@_retry.retried("update auto scaling group capacity")
def set_capacity(
    configs: "_types.RotatorConfigs",
    group_name: str,
    desired_capacity: int,
    max_capacity: int,
):
    """
    Set the desired and max capacity of the auto scaling group together.

    Capacity is always updated as a pair so that the max capacity can never be
    observed below the desired capacity.

    :param configs:
        Configuration for the current rotation run.
    :param group_name:
        Name of the auto scaling group to update.
    :param desired_capacity:
        Number of instances the group should be running.
    :param max_capacity:
        Upper bound of the group's capacity.
    """
    if desired_capacity > max_capacity:
        raise _errors.PreconditionError(
            f"Desired capacity {desired_capacity} exceeds max capacity {max_capacity}."
        )

    client = configs.session.client("autoscaling")
    client.update_auto_scaling_group(
        AutoScalingGroupName=group_name,
        DesiredCapacity=desired_capacity,
        MaxSize=max_capacity,
    )


@_retry.retried("suspend auto scaling processes")
def suspend_processes(
    configs: "_types.RotatorConfigs",
    group_name: str,
) -> typing.Tuple[str, ...]:
    """Suspend the processes that would disrupt a rotation in flight."""
    client = configs.session.client("autoscaling")
    client.suspend_processes(
        AutoScalingGroupName=group_name,
        ScalingProcesses=list(_configs.SUSPENDED_PROCESSES),
    )
    return _configs.SUSPENDED_PROCESSES


@_retry.retried("resume auto scaling processes")
def resume_processes(
    configs: "_types.RotatorConfigs",
    group_name: str,
) -> typing.Tuple[str, ...]:
    """
    Resume the processes suspended by the rotation.

    Only the fixed set suspended by the rotation is resumed. Processes that an
    operator suspended by other means are left alone.
    """
    client = configs.session.client("autoscaling")
    client.resume_processes(
        AutoScalingGroupName=group_name,
        ScalingProcesses=list(_configs.SUSPENDED_PROCESSES),
    )
    return _configs.SUSPENDED_PROCESSES


def instance_count(configs: "_types.RotatorConfigs", group_name: str) -> int:
    """Count the live instances currently in the auto scaling group."""
    return describe_group(configs, group_name).live_instance_count
