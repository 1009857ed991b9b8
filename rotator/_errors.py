import typing


class RotatorError(Exception):
    """Base error for all failures that abort a rotation."""

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {"error": type(self).__name__, "reason": str(self)}


class PreconditionError(RotatorError):
    """Raised when a rotation request is invalid before anything remote is touched."""


class ResolutionError(RotatorError):
    """
    Raised when a lookup does not map to exactly one cloud resource.

    The rotation never guesses between candidates, so both the not found
    and the ambiguous cases are failures.
    """

    def __init__(self, kind: str, subject: str, candidates: typing.Sequence[str] = ()):
        self.kind = kind
        self.subject = subject
        self.candidates = tuple(candidates)
        found = ", ".join(self.candidates) or "nothing"
        super().__init__(f'Resolution of "{subject}" was {kind} (found {found}).')

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            **super().to_dict(),
            "kind": self.kind,
            "subject": self.subject,
            "candidates": list(self.candidates),
        }


class RetriesExhausted(RotatorError):
    """Raised when a remote operation keeps failing past the attempt ceiling."""

    def __init__(self, description: str, attempts: int, last_error: BaseException):
        self.description = description
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f'Failed to {description} after {attempts} attempts: {last_error}'
        )

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            **super().to_dict(),
            "operation": self.description,
            "attempts": self.attempts,
            "last_error": type(self.last_error).__name__,
        }


class WaitTimeout(RotatorError):
    """Raised when a wait-until condition has an expired timeout."""


class RotationError(RotatorError):
    """Wraps any failure that escaped a rotation phase."""

    def __init__(self, phase: str, role: str, cause: BaseException):
        self.phase = phase
        self.role = role
        self.cause = cause
        super().__init__(f'Rotation of "{role}" nodes aborted in {phase}: {cause}')

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        cause = (
            self.cause.to_dict()
            if isinstance(self.cause, RotatorError)
            else {"error": type(self.cause).__name__, "reason": str(self.cause)}
        )
        return {
            **super().to_dict(),
            "phase": self.phase,
            "role": self.role,
            "cause": cause,
        }
