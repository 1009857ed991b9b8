import time
import typing

from rotator import _errors
from rotator import _types


def wait_until(
    configs: "_types.RotatorConfigs",
    predicate: typing.Callable[[], bool],
    description: str,
    interval: float = None,
    timeout: float = None,
) -> int:
    """
    Block until the predicate is satisfied, checking it on a fixed interval.

    Used wherever the rotation has to wait for an external system to converge
    after a change was made to it. Without a timeout this will wait forever,
    which is intended where proceeding without the condition would be unsafe.

    :param configs:
        Configuration for the current rotation run.
    :param predicate:
        Callable returning whether the awaited condition is met.
    :param description:
        Human readable description of the condition for logging.
    :param interval:
        Seconds between checks. Defaults to the configured poll interval.
    :param timeout:
        Optional maximum number of seconds to wait before failing.
    :return:
        The number of times the predicate was checked.
    :raises WaitTimeout:
        When a timeout was given and the condition was not met in time.
    """
    step = configs.poll_interval if interval is None else interval
    waited = 0.0
    checks = 0
    while True:
        checks += 1
        if predicate():
            return checks

        if timeout is not None and waited >= timeout:
            raise _errors.WaitTimeout(
                f"Timed out after {waited:.0f} seconds waiting for {description}."
            )

        configs.log("waiting", {"condition": description, "waited": waited})
        time.sleep(step)
        waited += step
