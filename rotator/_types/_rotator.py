import dataclasses
import datetime
import json
import os
import pathlib
import typing

import boto3
import yaml

from rotator import _configs
from rotator import _errors


def _or(*args: typing.Any, default: typing.Any = None) -> typing.Any:
    """
    Find the first non-None element in the args.

    If none of the values are not None, the default value will be returned instead.
    """
    return next((x for x in args if x is not None), default)


def _or_truthy(*args: typing.Any, default: typing.Any = None) -> typing.Any:
    """
    Find the first truthy element in the args.

    If none of the values are truthy, the default value will be returned instead.
    """
    return next((x for x in args if x), default)


def _load_configs(
    args: typing.Dict[str, typing.Any],
    config_path: typing.Union[str, pathlib.Path] = None,
) -> typing.Dict[str, typing.Any]:
    """
    Load configuration data from the config path.

    Config path lookup is prioritized in the following way:
    - config_path argument specified in this function signature.
    - `--config-path` command line argument.
    - ROTATOR_CONFIG_PATH environmental variable.
    - Default value of "~/.kluster-node-rotator.yaml"

    If the config file fails to load because the file is not found, a blank
    configuration will be used instead.
    """
    p = pathlib.Path(
        config_path
        or args.get("config_path")
        or os.environ.get("ROTATOR_CONFIG_PATH")
        or "~/.kluster-node-rotator.yaml"
    ).expanduser()
    try:
        return yaml.safe_load(p.resolve().read_text()) or {}
    except FileNotFoundError:
        return {}


def _to_roles(
    value: typing.Union[str, typing.Sequence[str], None],
) -> typing.Tuple[str, ...]:
    """Expand a role argument into the ordered roles to be rotated."""
    if not value or value == _configs.BOTH_ROLES:
        return _configs.ROLES

    requested = [value] if isinstance(value, str) else list(value)
    unknown = [r for r in requested if r not in _configs.ROLES]
    if unknown:
        raise _errors.PreconditionError(f"Unknown node roles: {', '.join(unknown)}.")
    return tuple(r for r in _configs.ROLES if r in requested)


@dataclasses.dataclass(frozen=True)
class RotatorConfigs:
    """Immutable configuration record for a single rotation run."""

    aws_profile: typing.Optional[str] = None
    kube_context: typing.Optional[str] = None
    in_cluster: bool = False
    pretty_print: bool = False
    #: Roles to rotate in the order they will be rotated.
    roles: typing.Tuple[str, ...] = _configs.ROLES
    #: Marker of an interrupted rotation to resume. Only valid together
    #: with a resume role, as the cohort is selected by role and marker.
    resume_marker: typing.Optional[str] = None
    resume_role: typing.Optional[str] = None
    marker_label: str = _configs.MARKER_LABEL
    role_selectors: typing.Dict[str, str] = dataclasses.field(
        hash=False,
        default_factory=lambda: dict(_configs.DEFAULT_ROLE_SELECTORS),
    )
    drain_timeout: int = 300
    drain_poll_interval: int = 5
    retry_attempts: int = 12
    retry_delay: float = 8
    poll_interval: float = 32
    settle_delay: float = 60
    #: Optional limits on the waits for replacement capacity and group
    #: convergence. Both wait indefinitely by default.
    replacement_timeout: typing.Optional[float] = None
    convergence_timeout: typing.Optional[float] = None
    session: boto3.Session = dataclasses.field(
        hash=False, compare=False, default_factory=lambda: boto3.Session()
    )

    @property
    def is_resuming(self) -> bool:
        """Whether this run resumes an interrupted rotation."""
        return self.resume_marker is not None

    def get_role_selector(self, role: str, marker: str = None) -> str:
        """
        Create the kubernetes label selector for nodes of the given role.

        When a marker is specified the selector is narrowed down to only the
        nodes labeled with that retirement marker.
        """
        if not role:
            raise _errors.PreconditionError("A node role must be specified.")

        try:
            selector = self.role_selectors[role]
        except KeyError as error:
            raise _errors.PreconditionError(
                f'No label selector is configured for the "{role}" role.'
            ) from error

        if marker is None:
            return selector
        return f"{selector},{self.marker_label}={marker}"

    def mint_marker(self, now: datetime.datetime = None) -> str:
        """Create the retirement marker for a rotation run starting now."""
        return (now or datetime.datetime.utcnow()).strftime(_configs.MARKER_FORMAT)

    @classmethod
    def load(
        cls,
        args: typing.Dict[str, typing.Any],
        config_path: typing.Union[str, pathlib.Path] = None,
    ) -> "RotatorConfigs":
        """
        Create rotator configs from command line arguments and a config file.

        Values are prioritized in the following way:
        - command line arguments.
        - environment variables (AWS_PROFILE, KUBE_CONTEXT).
        - values in the YAML config file.
        - defaults.

        A resume marker without a resume role is rejected here, before any
        remote call can be made.
        """
        raw = _load_configs(args, config_path)

        resume_marker = args.get("resume_marker") or None
        resume_role = args.get("resume_role") or None
        if resume_marker and not resume_role:
            raise _errors.PreconditionError(
                "A resume role must be specified along with the resume marker."
            )
        if resume_role and not resume_marker:
            raise _errors.PreconditionError(
                "A resume marker must be specified along with the resume role."
            )
        if resume_role and resume_role not in _configs.ROLES:
            raise _errors.PreconditionError(f'Unknown node role "{resume_role}".')

        aws_profile = _or_truthy(
            args.get("aws_profile"),
            os.environ.get("AWS_PROFILE"),
            raw.get("aws_profile"),
        )

        return cls(
            aws_profile=aws_profile,
            kube_context=_or_truthy(
                args.get("kube_context"),
                os.environ.get("KUBE_CONTEXT"),
                raw.get("kube_context"),
            ),
            in_cluster=_or_truthy(
                args.get("in_cluster"), raw.get("in_cluster"), default=False
            ),
            pretty_print=_or_truthy(
                args.get("pretty_print"), raw.get("pretty_print"), default=False
            ),
            roles=_to_roles(_or_truthy(args.get("role"), raw.get("roles"))),
            resume_marker=resume_marker,
            resume_role=resume_role,
            marker_label=_or(raw.get("marker_label"), default=_configs.MARKER_LABEL),
            role_selectors={
                **_configs.DEFAULT_ROLE_SELECTORS,
                **(raw.get("role_selectors") or {}),
            },
            drain_timeout=int(
                _or(args.get("drain_timeout"), raw.get("drain_timeout"), default=300)
            ),
            drain_poll_interval=_or(raw.get("drain_poll_interval"), default=5),
            retry_attempts=_or(raw.get("retry_attempts"), default=12),
            retry_delay=_or(raw.get("retry_delay"), default=8),
            poll_interval=_or(raw.get("poll_interval"), default=32),
            settle_delay=_or(raw.get("settle_delay"), default=60),
            replacement_timeout=raw.get("replacement_timeout"),
            convergence_timeout=raw.get("convergence_timeout"),
            session=boto3.Session(profile_name=aws_profile),
        )

    def log(self, message: str, data: dict):
        """Log the message and data for structured output."""
        print(
            json.dumps(
                {"message": message, "data": data},
                indent=2 if self.pretty_print else None,
            )
        )

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "aws_profile": self.aws_profile,
            "kube_context": self.kube_context,
            "in_cluster": self.in_cluster,
            "roles": list(self.roles),
            "resume_marker": self.resume_marker,
            "resume_role": self.resume_role,
            "marker_label": self.marker_label,
            "role_selectors": self.role_selectors,
            "drain_timeout": self.drain_timeout,
            "drain_poll_interval": self.drain_poll_interval,
            "retry_attempts": self.retry_attempts,
            "retry_delay": self.retry_delay,
            "poll_interval": self.poll_interval,
            "settle_delay": self.settle_delay,
            "replacement_timeout": self.replacement_timeout,
            "convergence_timeout": self.convergence_timeout,
        }
