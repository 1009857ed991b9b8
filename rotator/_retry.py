import functools
import time
import typing

from rotator import _errors
from rotator import _types

T = typing.TypeVar("T")


def execute(
    configs: "_types.RotatorConfigs",
    operation: typing.Callable[[], T],
    description: str,
    attempts: int = None,
    delay: float = None,
) -> T:
    """
    Execute the operation until it succeeds or the attempt ceiling is reached.

    Failures are followed by a fixed delay before the next attempt. This is the
    only retry policy used by the rotator and it is applied to every remote call,
    which absorbs the eventual consistency of the cloud and kubernetes APIs.
    Precondition errors are never retried as repeating them cannot change the
    outcome.

    :param configs:
        Configuration for the current rotation run.
    :param operation:
        Callable taking no arguments that carries out the remote operation.
    :param description:
        Human readable description of the operation for logging.
    :param attempts:
        Attempt ceiling. Defaults to the configured retry attempts.
    :param delay:
        Seconds to wait between attempts. Defaults to the configured retry delay.
    :raises RetriesExhausted:
        When the operation failed on every attempt.
    """
    ceiling = max(1, attempts or configs.retry_attempts)
    wait = configs.retry_delay if delay is None else delay

    for attempt in range(1, ceiling + 1):
        try:
            return operation()
        except _errors.PreconditionError:
            raise
        except Exception as error:
            if attempt >= ceiling:
                raise _errors.RetriesExhausted(description, ceiling, error) from error

            configs.log(
                "retrying",
                {
                    "operation": description,
                    "attempt": attempt,
                    "attempts": ceiling,
                    "error": f"{type(error).__name__}: {error}",
                },
            )
            time.sleep(wait)

    # Unreachable as the final attempt either returns or raises.
    raise AssertionError("Retry loop exited without a result.")  # pragma: no cover


def retried(description: str):
    """
    Decorate a remote call so that every invocation goes through the executor.

    The decorated function must take the rotator configs as its first argument.
    """

    def decorator(function: typing.Callable[..., T]) -> typing.Callable[..., T]:
        @functools.wraps(function)
        def wrapper(configs: "_types.RotatorConfigs", *args, **kwargs) -> T:
            return execute(
                configs,
                lambda: function(configs, *args, **kwargs),
                description,
            )

        return wrapper

    return decorator
