import dataclasses
import enum
import typing

from kuber.latest import core_v1


class DrainOutcome(enum.Enum):
    """Result of draining a node ahead of terminating its instance."""

    #: All evictable pods left the node within the timeout.
    SUCCESS = "success"
    #: Pods remained on the node when the drain timeout was reached.
    TIMEOUT = "timeout"
    #: The drain failed for any other reason.
    ERROR = "error"


@dataclasses.dataclass(frozen=True)
class RotationNode:
    """
    Data structure that describes a cluster node taking part in a rotation.

    The name is the identity of the node as known to kubernetes, which is also
    the private DNS name of the EC2 instance backing the node.
    """

    name: str
    role: str
    #: Retirement marker the node is currently labeled with, if any.
    marker: typing.Optional[str]
    is_schedulable: bool
    is_ready: bool
    resource: typing.Optional[core_v1.Node] = dataclasses.field(
        default=None, compare=False, repr=False
    )

    def is_marked_by(self, marker: str) -> bool:
        """Whether the node belongs to the cohort of the given retirement marker."""
        return self.marker is not None and self.marker == marker

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "name": self.name,
            "role": self.role,
            "marker": self.marker,
            "is_schedulable": self.is_schedulable,
            "is_ready": self.is_ready,
        }
