from rotator._types._groups import AMBIGUOUS  # noqa: F401
from rotator._types._groups import FOUND  # noqa: F401
from rotator._types._groups import NOT_FOUND  # noqa: F401
from rotator._types._groups import Instance  # noqa: F401
from rotator._types._groups import NodeGroup  # noqa: F401
from rotator._types._groups import Resolution  # noqa: F401
from rotator._types._nodes import DrainOutcome  # noqa: F401
from rotator._types._nodes import RotationNode  # noqa: F401
from rotator._types._plans import RotationPlan  # noqa: F401
from rotator._types._rotator import RotatorConfigs  # noqa: F401
