import datetime
import json
import pathlib

import lobotomy
import pytest
import yaml

from rotator import _configs
from rotator import _errors
from rotator import _types

MISSING_CONFIG = pathlib.Path(__file__).parent / "missing.yaml"


@lobotomy.patch()
def test_load_defaults(lobotomized: lobotomy.Lobotomy, monkeypatch):
    """Should use the default values when nothing is configured."""
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("KUBE_CONTEXT", raising=False)
    configs = _types.RotatorConfigs.load({}, MISSING_CONFIG)

    assert configs.roles == _configs.ROLES
    assert configs.drain_timeout == 300
    assert configs.retry_attempts == 12
    assert configs.retry_delay == 8
    assert configs.poll_interval == 32
    assert configs.replacement_timeout is None
    assert configs.convergence_timeout is None
    assert configs.aws_profile is None
    assert configs.kube_context is None
    assert not configs.is_resuming


@lobotomy.patch()
def test_load_config_file(
    lobotomized: lobotomy.Lobotomy,
    tmp_path: pathlib.Path,
):
    """Should load values from the config file with arguments taking precedence."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "aws_profile": "from-file",
                "kube_context": "file-context",
                "drain_timeout": 600,
                "retry_attempts": 3,
                "settle_delay": 5,
                "roles": [_configs.WORKER_ROLE],
                "role_selectors": {_configs.WORKER_ROLE: "kubernetes.io/role=node"},
            }
        )
    )
    args = {"aws_profile": "from-args", "drain_timeout": 120}
    configs = _types.RotatorConfigs.load(args, path)

    assert configs.aws_profile == "from-args"
    assert configs.kube_context == "file-context"
    assert configs.drain_timeout == 120
    assert configs.retry_attempts == 3
    assert configs.settle_delay == 5
    assert configs.roles == (_configs.WORKER_ROLE,)
    assert (
        configs.get_role_selector(_configs.WORKER_ROLE) == "kubernetes.io/role=node"
    )
    assert configs.get_role_selector(_configs.CONTROL_PLANE_ROLE) == (
        _configs.DEFAULT_ROLE_SELECTORS[_configs.CONTROL_PLANE_ROLE]
    )


@pytest.mark.parametrize(
    "args",
    [
        {"resume_marker": "M"},
        {"resume_role": _configs.WORKER_ROLE},
        {"resume_marker": "M", "resume_role": "database"},
        {"role": "database"},
    ],
)
def test_load_invalid(args: dict):
    """Should reject invalid rotation targets."""
    with pytest.raises(_errors.PreconditionError):
        _types.RotatorConfigs.load(args, MISSING_CONFIG)


@lobotomy.patch()
def test_load_resume(lobotomized: lobotomy.Lobotomy):
    """Should accept a resume marker together with its role."""
    args = {"resume_marker": "M", "resume_role": _configs.CONTROL_PLANE_ROLE}
    configs = _types.RotatorConfigs.load(args, MISSING_CONFIG)

    assert configs.is_resuming
    assert configs.resume_role == _configs.CONTROL_PLANE_ROLE
    assert configs.resume_marker == "M"


def test_get_role_selector():
    """Should narrow the role selector down by the marker."""
    configs = _types.RotatorConfigs()
    assert configs.get_role_selector(_configs.WORKER_ROLE, "M") == (
        "node-role.kubernetes.io/node,node-rotator/retire-at=M"
    )

    with pytest.raises(_errors.PreconditionError):
        configs.get_role_selector("")

    with pytest.raises(_errors.PreconditionError):
        configs.get_role_selector("database")


def test_mint_marker():
    """Should mint a marker that is a valid kubernetes label value."""
    configs = _types.RotatorConfigs()
    marker = configs.mint_marker(datetime.datetime(2021, 7, 19, 9, 30, 5))
    assert marker == "20210719T093005Z"


def test_to_dict():
    """Should be JSON serializable for logging."""
    configs = _types.RotatorConfigs()
    assert json.loads(json.dumps(configs.to_dict()))["retry_attempts"] == 12
