from unittest.mock import call

import pytest

from rotator import _configs
from rotator import _errors
from rotator import _rotation
from rotator import _types
from rotator.tests import _utils

GROUP = _types.NodeGroup(name="workers-asg", desired_capacity=3, max_capacity=3)


def test_rotate():
    """Should rotate a group of 3 nodes through expansion and restoration."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        controller.count_ready.side_effect = [0, 2, 3]
        controller.instance_count.side_effect = [6, 4, 3]
        plan = _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    assert plan.original_capacity == 3
    assert plan.group_name == "workers-asg"
    assert plan.cohort == ("a", "b", "c")

    assert controller.set_capacity.call_args_list == [
        call(configs, "workers-asg", 6, 6),
        call(configs, "workers-asg", 3, 3),
    ]
    assert controller.count_ready.call_args_list == [
        call(configs, _configs.WORKER_ROLE, "M")
    ] * 3
    assert controller.instance_count.call_count == 3

    labeled = [c.args[1] for c in controller.cordon_node.call_args_list]
    assert [n.marker for n in labeled] == ["M", "M", "M"]


def test_rotate_order():
    """Should carry out the phases in order and one node at a time."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    calls = [
        (name, getattr(argument, "name", None) or getattr(argument, "instance_id"))
        for name, argument in _utils.get_call_names(
            controller, "drain_node", "terminate_instance"
        )
    ]
    assert calls == [
        ("drain_node", "a"),
        ("terminate_instance", "i-a"),
        ("drain_node", "b"),
        ("terminate_instance", "i-b"),
        ("drain_node", "c"),
        ("terminate_instance", "i-c"),
    ]

    names = [name for name, _, _ in controller.mock_calls]
    assert names.index("set_capacity") < names.index("count_ready")
    assert names.index("count_ready") < names.index("suspend_processes")
    assert names.index("suspend_processes") < names.index("drain_node")
    assert names.index("resume_processes") == len(names) - 1

    # The capacity is restored only once every node has been terminated.
    last_terminate = len(names) - 1 - names[::-1].index("terminate_instance")
    restore = len(names) - 1 - names[::-1].index("set_capacity")
    assert last_terminate < restore


def test_rotate_process_symmetry():
    """Should resume the same processes that were suspended."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    controller.suspend_processes.assert_called_once_with(configs, "workers-asg")
    controller.resume_processes.assert_called_once_with(configs, "workers-asg")
    assert (
        controller.suspend_processes.return_value
        == controller.resume_processes.return_value
    )


def test_rotate_drain_tolerance():
    """Should terminate every node even when draining times out or fails."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        controller.drain_node.side_effect = [
            _types.DrainOutcome.TIMEOUT,
            _types.DrainOutcome.ERROR,
            _types.DrainOutcome.SUCCESS,
        ]
        plan = _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    assert controller.terminate_instance.call_count == 3
    assert controller.resume_processes.called
    assert plan.cohort == ("a", "b", "c")


def test_rotate_drain_timeout_override():
    """Should drain with the configured drain timeout."""
    configs = _utils.make_configs(drain_timeout=42)
    with _utils.patch_controller(GROUP, cohort=["a"]) as controller:
        _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    assert controller.drain_node.call_args.args[2] == 42


def test_rotate_ambiguous_instance():
    """Should abort before any capacity change when resolution is ambiguous."""
    configs = _utils.make_configs()
    ambiguous = _errors.ResolutionError(
        _types.AMBIGUOUS, "a", candidates=["i-1", "i-2"]
    )
    with _utils.patch_controller(GROUP) as controller:
        controller.resolve_instance.side_effect = _errors.RetriesExhausted(
            "resolve node instance", 12, ambiguous
        )
        with pytest.raises(_errors.RotationError) as exception_info:
            _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    assert exception_info.value.phase == _configs.RESOLVE_GROUP
    assert exception_info.value.cause.last_error is ambiguous
    assert not controller.set_capacity.called
    assert not controller.terminate_instance.called


def test_rotate_aborted():
    """Should abort without carrying out any later phase."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        controller.set_capacity.side_effect = _errors.RetriesExhausted(
            "update auto scaling group capacity", 12, ValueError("FAKE")
        )
        with pytest.raises(_errors.RotationError) as exception_info:
            _rotation.rotate(configs, _configs.WORKER_ROLE, "M")

    error = exception_info.value
    assert error.phase == _configs.EXPAND
    assert error.role == _configs.WORKER_ROLE
    assert error.to_dict()["cause"]["attempts"] == 12
    assert not controller.count_ready.called
    assert not controller.suspend_processes.called
    assert not controller.drain_node.called


def test_rotate_no_role():
    """Should reject a rotation without a role before any remote call."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP) as controller:
        with pytest.raises(_errors.RotationError) as exception_info:
            _rotation.rotate(configs, "", "M")

    assert exception_info.value.phase == _configs.SELECT_AND_LABEL
    assert isinstance(exception_info.value.cause, _errors.PreconditionError)
    assert not controller.mock_calls


def test_rotate_empty_cohort():
    """Should stop after labeling when the role has no nodes."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP, cohort=[]) as controller:
        plan = _rotation.rotate(configs, _configs.CONTROL_PLANE_ROLE, "M")

    assert plan.cohort == ()
    assert plan.group_name is None
    assert not controller.resolve_group.called
    assert not controller.set_capacity.called


def test_rotate_mints_marker():
    """Should mint a marker when none is specified."""
    configs = _utils.make_configs()
    with _utils.patch_controller(GROUP):
        plan = _rotation.rotate(configs, _configs.WORKER_ROLE)

    assert plan.marker
    assert plan.marker.endswith("Z")


def test_phases_from():
    """Should list the phases starting at the named phase."""
    phases = _rotation.phases_from(_configs.DRAIN_AND_TERMINATE)
    assert [name for name, _ in phases] == [
        _configs.DRAIN_AND_TERMINATE,
        _configs.RESTORE_CAPACITY,
        _configs.AWAIT_CONVERGENCE,
        _configs.RESUME_PROCESSES,
    ]
