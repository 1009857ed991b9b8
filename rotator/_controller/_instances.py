import typing

from rotator import _configs
from rotator import _controller
from rotator import _retry
from rotator import _types


def _to_instance(instance_data: dict) -> "_types.Instance":
    """Convert a boto3 describe instances object into an Instance."""
    return _types.Instance(
        instance_id=instance_data["InstanceId"],
        private_dns_name=instance_data.get("PrivateDnsName") or "",
        state=(instance_data.get("State") or {}).get("Name") or "unknown",
    )


def _find_instances(client: typing.Any, node_name: str) -> "_types.Resolution":
    """
    Look up the live EC2 instances with the private DNS name of the node.

    Instances are correlated with nodes by their private DNS name, which is
    the name the node is registered with in kubernetes. The correlation is
    looked up every time instead of being stored.
    """
    response = client.describe_instances(
        Filters=[
            {"Name": "private-dns-name", "Values": [node_name]},
            {
                "Name": "instance-state-name",
                "Values": list(_configs.LIVE_INSTANCE_STATES),
            },
        ]
    )
    instances = [
        _to_instance(instance)
        for reserve in (response.get("Reservations") or [])
        for instance in (reserve.get("Instances") or [])
    ]
    return _types.Resolution.from_matches(
        node_name, instances, lambda i: i.instance_id
    )


@_retry.retried("find node instance")
def find_instance(
    configs: "_types.RotatorConfigs",
    node: "_types.RotationNode",
) -> "_types.Resolution":
    """
    Look up the EC2 instance backing the node without requiring a match.

    Only failing API calls are retried. A node whose instance is already gone
    is reported through a not found resolution.
    """
    return _find_instances(configs.session.client("ec2"), node.name)


@_retry.retried("resolve node instance")
def resolve_instance(
    configs: "_types.RotatorConfigs",
    node: "_types.RotationNode",
) -> "_types.Instance":
    """
    Find the EC2 instance backing the node.

    :raises ResolutionError:
        When no instance or more than one instance matches the node.
    """
    return _find_instances(configs.session.client("ec2"), node.name).require()


@_retry.retried("resolve instance auto scaling group")
def resolve_group(
    configs: "_types.RotatorConfigs",
    instance: "_types.Instance",
) -> "_types.NodeGroup":
    """
    Find the auto scaling group that the instance is a member of.

    :raises ResolutionError:
        When the instance is not a member of any group or the membership
        cannot be attributed to a single group.
    """
    client = configs.session.client("autoscaling")
    response = client.describe_auto_scaling_instances(
        InstanceIds=[instance.instance_id]
    )
    group_names = sorted(
        {
            item["AutoScalingGroupName"]
            for item in (response.get("AutoScalingInstances") or [])
        }
    )
    resolution = _types.Resolution.from_matches(
        instance.instance_id, group_names, lambda name: name
    )
    return _controller.fetch_group(client, resolution.require())


@_retry.retried("terminate instance")
def terminate_instance(
    configs: "_types.RotatorConfigs",
    instance: "_types.Instance",
):
    """
    Terminate the instance directly without decrementing its group's capacity.

    The auto scaling group still accounts for the terminated instance as its
    Terminate and HealthCheck processes are never suspended by a rotation.
    """
    client = configs.session.client("ec2")
    client.terminate_instances(InstanceIds=[instance.instance_id])
    configs.log(
        "terminated_instance",
        {"instance_id": instance.instance_id, "node": instance.private_dns_name},
    )
