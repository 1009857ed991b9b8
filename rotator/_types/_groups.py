import dataclasses
import typing

from rotator import _errors

FOUND = "found"
NOT_FOUND = "not_found"
AMBIGUOUS = "ambiguous"


@dataclasses.dataclass(frozen=True)
class Instance:
    """Data structure that describes the EC2 instance backing a node."""

    instance_id: str
    #: Network identity of the instance, which is what correlates it to a
    #: kubernetes node of the same name.
    private_dns_name: str
    state: str


@dataclasses.dataclass(frozen=True)
class NodeGroup:
    """Data structure that describes an auto scaling group backing a role."""

    name: str
    desired_capacity: int
    max_capacity: int
    suspended_processes: typing.FrozenSet[str] = frozenset()
    #: Number of member instances that are not on their way out of the group.
    live_instance_count: int = 0

    @property
    def is_expanded(self) -> bool:
        """
        Whether the group looks like it has been expanded by a rotation.

        Expansion sets both desired and max capacity to twice the original
        desired capacity, which will always be an even pair of equal values.
        """
        return (
            self.desired_capacity > 0
            and self.desired_capacity == self.max_capacity
            and self.desired_capacity % 2 == 0
        )

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "name": self.name,
            "desired_capacity": self.desired_capacity,
            "max_capacity": self.max_capacity,
            "suspended_processes": sorted(self.suspended_processes),
            "live_instance_count": self.live_instance_count,
        }


@dataclasses.dataclass(frozen=True)
class Resolution:
    """
    Result of looking up the single cloud resource that matches a subject.

    Lookups distinguish between finding exactly one match, finding nothing and
    finding more than one match. Only the first is usable by a rotation.
    """

    subject: str
    status: str
    value: typing.Any = None
    candidates: typing.Tuple[str, ...] = ()

    @classmethod
    def from_matches(
        cls,
        subject: str,
        matches: typing.Sequence[typing.Any],
        identify: typing.Callable[[typing.Any], str],
    ) -> "Resolution":
        """Create a resolution from all of the matches found for the subject."""
        candidates = tuple(identify(m) for m in matches)
        if len(matches) == 1:
            return cls(subject, FOUND, matches[0], candidates)
        if not matches:
            return cls(subject, NOT_FOUND, None, candidates)
        return cls(subject, AMBIGUOUS, None, candidates)

    @property
    def is_found(self) -> bool:
        """Whether exactly one match was found."""
        return self.status == FOUND

    def require(self) -> typing.Any:
        """Return the matched value or raise an error if there wasn't exactly one."""
        if not self.is_found:
            raise _errors.ResolutionError(self.status, self.subject, self.candidates)
        return self.value
