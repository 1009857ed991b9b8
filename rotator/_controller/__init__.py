from rotator._controller._groups import describe_group  # noqa: F401
from rotator._controller._groups import fetch_group  # noqa: F401
from rotator._controller._groups import instance_count  # noqa: F401
from rotator._controller._groups import resume_processes  # noqa: F401
from rotator._controller._groups import set_capacity  # noqa: F401
from rotator._controller._groups import suspend_processes  # noqa: F401
from rotator._controller._nodes import cordon_node  # noqa: F401
from rotator._controller._nodes import count_ready  # noqa: F401
from rotator._controller._nodes import label_node  # noqa: F401
from rotator._controller._nodes import list_nodes  # noqa: F401
from rotator._controller._drain import drain_node  # noqa: F401
from rotator._controller._instances import find_instance  # noqa: F401
from rotator._controller._instances import resolve_group  # noqa: F401
from rotator._controller._instances import resolve_instance  # noqa: F401
from rotator._controller._instances import terminate_instance  # noqa: F401
