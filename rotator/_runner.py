import pathlib
import traceback
import typing

import kuber
from kubernetes.config.config_exception import ConfigException

from rotator import _errors
from rotator import _resume
from rotator import _rotation
from rotator import _types


def _load_access_config(configs: "_types.RotatorConfigs"):
    """
    Load the kubernetes access configuration for the selected context.

    :raises PreconditionError:
        When no usable kubernetes access configuration could be loaded.
    """
    try:
        if configs.in_cluster or not configs.kube_context:
            kuber.load_access_config(in_cluster=configs.in_cluster)
        else:
            kuber.load_access_config(in_cluster=False, context=configs.kube_context)
    except (ConfigException, OSError) as error:
        raise _errors.PreconditionError(
            f"Failed to load the kubernetes access configuration: {error}"
        ) from error


def _execute(configs: "_types.RotatorConfigs") -> typing.List["_types.RotationPlan"]:
    """Carry out the requested rotation or the resumption of an interrupted one."""
    if configs.is_resuming:
        return [_resume.resume(configs, configs.resume_role, configs.resume_marker)]

    # A single marker is shared by the roles rotated in this run. Cohorts are
    # selected by role and marker together so they never overlap.
    marker = configs.mint_marker()
    configs.log("minted_marker", {"marker": marker, "roles": list(configs.roles)})
    return [_rotation.rotate(configs, role, marker) for role in configs.roles]


def main(
    args: typing.Dict[str, typing.Any],
    config_path_override: typing.Union[str, pathlib.Path] = None,
) -> int:
    """
    Rotate the nodes of the requested roles and report the outcome.

    :param args:
        Arguments parsed from the command line. These arguments will take precedence
        over arguments specified by other means during execution.
    :param config_path_override:
        An override for the config path that is only used during non-normal execution
        calls. Most commonly this will be for testing purposes, but alternative calling
        implementations of this code could utilize this as well.
    :return:
        Zero when every rotation completed and one when the run was aborted.
    """
    try:
        configs = _types.RotatorConfigs.load(args, config_path_override)
    except _errors.PreconditionError as error:
        print(f"[ERROR]: {error}")
        return 1

    configs.log("starting", configs.to_dict())

    try:
        _load_access_config(configs)
        plans = _execute(configs)
    except _errors.RotatorError as error:
        # The external state left by the aborted phase is kept as-is so that
        # it can be inspected or the rotation can be resumed.
        traceback.print_exc()
        configs.log("aborted", error.to_dict())
        return 1

    configs.log("finished", {"rotations": [p.to_dict() for p in plans]})
    return 0
