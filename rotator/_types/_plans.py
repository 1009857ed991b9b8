import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class RotationPlan:
    """
    Data structure that carries the in-memory state of a rotation for one role.

    Nothing in the plan is persisted by the rotator. Everything in it can be
    derived again from the role and the retirement marker, which is how an
    interrupted rotation is resumed.
    """

    role: str
    marker: str
    #: Name of the auto scaling group that backs the nodes of the role.
    group_name: typing.Optional[str] = None
    #: Desired capacity of the group before the rotation expanded it.
    original_capacity: typing.Optional[int] = None
    #: Names of the nodes in the cohort in the order they were selected.
    cohort: typing.Tuple[str, ...] = ()

    @property
    def expanded_capacity(self) -> int:
        """Capacity of the group while both old and new nodes are running."""
        return 2 * (self.original_capacity or 0)

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "role": self.role,
            "marker": self.marker,
            "group": self.group_name,
            "original_capacity": self.original_capacity,
            "cohort": list(self.cohort),
        }
