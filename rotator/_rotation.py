import dataclasses
import time
import typing

from rotator import _configs
from rotator import _controller
from rotator import _errors
from rotator import _polling
from rotator import _types

Step = typing.Callable[
    ["_types.RotatorConfigs", "_types.RotationPlan"], "_types.RotationPlan"
]


def _select_and_label(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Label every node of the role with the retirement marker and cordon it."""
    if not plan.role:
        raise _errors.PreconditionError("A node role must be specified.")

    cohort = []
    for node in _controller.list_nodes(configs, plan.role):
        labeled = _controller.label_node(configs, node, plan.marker)
        cohort.append(_controller.cordon_node(configs, labeled))

    configs.log(
        "labeled_cohort",
        {
            "role": plan.role,
            "marker": plan.marker,
            "cohort_size": len(cohort),
            "nodes": [n.name for n in cohort],
        },
    )
    return dataclasses.replace(plan, cohort=tuple(n.name for n in cohort))


def _resolve_cohort_group(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.NodeGroup":
    """
    Find the auto scaling group backing the cohort of the plan.

    Any node of the cohort will do as all nodes of a role are expected to be
    backed by the same group.

    :raises ResolutionError:
        When no node carries the marker or the node cannot be mapped to exactly
        one instance and one group.
    """
    cohort = _controller.list_nodes(configs, plan.role, plan.marker)
    node = _types.Resolution.from_matches(
        f"{plan.role} nodes marked {plan.marker}",
        cohort[:1],
        lambda n: n.name,
    ).require()
    instance = _controller.resolve_instance(configs, node)
    return _controller.resolve_group(configs, instance)


def _resolve_group(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Record the group and its original desired capacity in the plan."""
    group = _resolve_cohort_group(configs, plan)
    configs.log("resolved_group", {"role": plan.role, **group.to_dict()})
    return dataclasses.replace(
        plan,
        group_name=group.name,
        original_capacity=group.desired_capacity,
    )


def _expand(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Double the capacity of the group so replacements can come up."""
    capacity = plan.expanded_capacity
    _controller.set_capacity(configs, plan.group_name, capacity, capacity)
    configs.log(
        "expanded_group",
        {"group": plan.group_name, "desired": capacity, "max": capacity},
    )
    return plan


def _await_replacements(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """
    Wait for the role to have as many healthy unmarked nodes as it started with.

    There is no timeout by default. Stalling here is preferable to draining
    nodes that have no replacement.
    """
    _polling.wait_until(
        configs,
        lambda: (
            _controller.count_ready(configs, plan.role, plan.marker)
            >= plan.original_capacity
        ),
        description=f"{plan.original_capacity} ready {plan.role} replacement nodes",
        timeout=configs.replacement_timeout,
    )
    return plan


def _suspend_processes(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Stop the group from launching or rebalancing while the cohort is removed."""
    processes = _controller.suspend_processes(configs, plan.group_name)
    configs.log(
        "suspended_processes",
        {"group": plan.group_name, "processes": list(processes)},
    )
    return plan


def _drain_and_terminate(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """
    Drain and terminate each node of the cohort, one node at a time.

    Nodes are processed in the order they are returned by kubernetes. The
    instance of a node is always terminated, even when its drain timed out
    or failed, as termination is what actually removes the node. The next node
    is not touched before the previous node's instance has been terminated.
    Only the marked nodes that are part of the cohort of the plan are rotated.
    """
    cohort = [
        node
        for node in _controller.list_nodes(configs, plan.role, plan.marker)
        if node.name in plan.cohort
    ]
    configs.log(
        "draining_cohort",
        {"role": plan.role, "marker": plan.marker, "cohort_size": len(cohort)},
    )

    for index, node in enumerate(cohort, start=1):
        outcome = _controller.drain_node(configs, node, configs.drain_timeout)
        instance = _controller.resolve_instance(configs, node)
        _controller.terminate_instance(configs, instance)
        configs.log(
            "rotated_node",
            {
                "node": node.name,
                "instance_id": instance.instance_id,
                "drain_outcome": outcome.value,
                "progress": f"{index}/{len(cohort)}",
            },
        )

    return dataclasses.replace(plan, cohort=tuple(n.name for n in cohort))


def _restore_capacity(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Set the capacity of the group back to its original size."""
    capacity = plan.original_capacity
    _controller.set_capacity(configs, plan.group_name, capacity, capacity)
    configs.log(
        "restored_group",
        {"group": plan.group_name, "desired": capacity, "max": capacity},
    )
    return plan


def _await_convergence(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Wait for the live instances of the group to match its restored capacity."""
    time.sleep(configs.settle_delay)
    _polling.wait_until(
        configs,
        lambda: (
            _controller.instance_count(configs, plan.group_name)
            == plan.original_capacity
        ),
        description=f"{plan.original_capacity} instances in {plan.group_name}",
        timeout=configs.convergence_timeout,
    )
    return plan


def _resume_processes(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
) -> "_types.RotationPlan":
    """Hand control of the group back to its auto scaling processes."""
    processes = _controller.resume_processes(configs, plan.group_name)
    configs.log(
        "resumed_processes",
        {"group": plan.group_name, "processes": list(processes)},
    )
    return plan


PHASES: typing.Tuple[typing.Tuple[str, Step], ...] = (
    (_configs.SELECT_AND_LABEL, _select_and_label),
    (_configs.RESOLVE_GROUP, _resolve_group),
    (_configs.EXPAND, _expand),
    (_configs.AWAIT_REPLACEMENTS, _await_replacements),
    (_configs.SUSPEND_PROCESSES, _suspend_processes),
    (_configs.DRAIN_AND_TERMINATE, _drain_and_terminate),
    (_configs.RESTORE_CAPACITY, _restore_capacity),
    (_configs.AWAIT_CONVERGENCE, _await_convergence),
    (_configs.RESUME_PROCESSES, _resume_processes),
)


def phases_from(phase: str) -> typing.Tuple[typing.Tuple[str, Step], ...]:
    """Get the phases of a rotation starting with the named phase."""
    names = [name for name, _ in PHASES]
    return PHASES[names.index(phase) :]


def run_phases(
    configs: "_types.RotatorConfigs",
    plan: "_types.RotationPlan",
    phases: typing.Iterable[typing.Tuple[str, Step]],
) -> "_types.RotationPlan":
    """
    Carry out the phases in order, threading the plan through each of them.

    :raises RotationError:
        When any phase fails. The error identifies the failed phase. Nothing
        done by earlier phases is rolled back.
    """
    for name, step in phases:
        configs.log("phase_started", {"phase": name, **plan.to_dict()})
        try:
            plan = step(configs, plan)
        except Exception as error:
            raise _errors.RotationError(name, plan.role, error) from error
    return plan


def rotate(
    configs: "_types.RotatorConfigs",
    role: str,
    marker: str = None,
) -> "_types.RotationPlan":
    """
    Replace every node of the role without dropping below the original capacity.

    :param configs:
        Configuration for the current rotation run.
    :param role:
        Role of the nodes to be rotated.
    :param marker:
        Retirement marker for the run. A new one is minted when not specified.
    :return:
        The plan of the completed rotation.
    """
    plan = _types.RotationPlan(role=role, marker=marker or configs.mint_marker())
    plan = run_phases(configs, plan, PHASES[:1])
    if not plan.cohort:
        configs.log("nothing_to_rotate", plan.to_dict())
        return plan

    plan = run_phases(configs, plan, PHASES[1:])
    configs.log("rotation_complete", plan.to_dict())
    return plan
