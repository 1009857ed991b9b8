import dataclasses
import typing

from rotator import _configs
from rotator import _controller
from rotator import _errors
from rotator import _rotation
from rotator import _types


def _find_live_cohort(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> typing.List[typing.Tuple["_types.RotationNode", "_types.Instance"]]:
    """
    Find the marked nodes whose instances have not been terminated yet.

    An interruption during the drain and terminate phase leaves terminated
    nodes registered in kubernetes for a while. Those are already rotated
    and are skipped.

    :raises ResolutionError:
        When no node carries the marker, none of them has a live instance or
        a node maps to more than one instance.
    """
    subject = f"{plan.role} nodes marked {plan.marker}"
    nodes = _controller.list_nodes(configs, plan.role, plan.marker)
    if not nodes:
        raise _errors.ResolutionError(_types.NOT_FOUND, subject)

    live = []
    for node in nodes:
        resolution = _controller.find_instance(configs, node)
        if resolution.status == _types.NOT_FOUND:
            configs.log("skipped_terminated_node", {"node": node.name})
            continue
        live.append((node, resolution.require()))

    if not live:
        raise _errors.ResolutionError(
            _types.NOT_FOUND, f"live instances of {subject}", [n.name for n in nodes]
        )
    return live


def _resolve_expanded_group(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """
    Rebuild the plan of the interrupted rotation from its role and marker.

    The interrupted rotation left the group expanded to twice its original
    capacity, which is how the original capacity is recovered. A group that is
    not in that state cannot be restored safely and is rejected.
    """
    live = _find_live_cohort(configs, plan)
    group = _controller.resolve_group(configs, live[0][1])
    if not group.is_expanded:
        raise _errors.PreconditionError(
            f'Group "{group.name}" is not expanded by a rotation '
            f"(desired {group.desired_capacity}, max {group.max_capacity})."
        )

    configs.log("resolved_group", {"role": plan.role, **group.to_dict()})
    return dataclasses.replace(
        plan,
        group_name=group.name,
        original_capacity=group.desired_capacity // 2,
        cohort=tuple(node.name for node, _ in live),
    )


def resume(
    configs: "_types.RotatorConfigs",
    role: str,
    marker: str,
) -> "_types.RotationPlan":
    """
    Continue an interrupted rotation at the drain and terminate phase.

    Labeling, expanding and waiting for replacement capacity are not repeated
    as an interrupted rotation is only resumed once those have completed. The
    cohort is selected by the role and the marker together, so both must be
    specified.

    :param configs:
        Configuration for the current rotation run.
    :param role:
        Role of the nodes in the interrupted rotation.
    :param marker:
        Retirement marker of the interrupted rotation.
    :return:
        The plan of the completed rotation.
    """
    if not marker:
        raise _errors.PreconditionError("A retirement marker is required to resume.")
    if not role:
        raise _errors.PreconditionError(
            "A node role must be specified along with the retirement marker."
        )

    plan = _types.RotationPlan(role=role, marker=marker)
    plan = _rotation.run_phases(
        configs,
        plan,
        [(_configs.RESOLVE_GROUP, _resolve_expanded_group)],
    )
    plan = _rotation.run_phases(
        configs, plan, _rotation.phases_from(_configs.DRAIN_AND_TERMINATE)
    )
    configs.log("rotation_complete", plan.to_dict())
    return plan
