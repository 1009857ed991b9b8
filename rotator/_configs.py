#: Nodes selected for retirement are labeled with the marker of the rotation
#: run that selected them. The marker is the only link between a run and its
#: cohort, which is what allows an interrupted rotation to be resumed later
#: with nothing more than the role and the marker value.
MARKER_LABEL = "node-rotator/retire-at"
MARKER_FORMAT = "%Y%m%dT%H%M%SZ"

CONTROL_PLANE_ROLE = "control-plane"
WORKER_ROLE = "worker"
BOTH_ROLES = "both"

#: Roles are rotated in this order when both are requested.
ROLES = (CONTROL_PLANE_ROLE, WORKER_ROLE)

#: Label selectors identifying the nodes of each role.
DEFAULT_ROLE_SELECTORS = {
    CONTROL_PLANE_ROLE: "node-role.kubernetes.io/control-plane",
    WORKER_ROLE: "node-role.kubernetes.io/node",
}

#: Auto scaling processes suspended while the cohort is drained. Terminate and
#: HealthCheck are left running so that the group keeps accounting for the
#: instances terminated directly by the rotation, but it will never launch
#: replacements or rebalance on its own while the rotation is in flight.
SUSPENDED_PROCESSES = (
    "Launch",
    "ReplaceUnhealthy",
    "AZRebalance",
    "AlarmNotification",
    "ScheduledActions",
    "AddToLoadBalancer",
)

#: Phases of a rotation in the order they are carried out.
SELECT_AND_LABEL = "select_and_label"
RESOLVE_GROUP = "resolve_group"
EXPAND = "expand"
AWAIT_REPLACEMENTS = "await_replacements"
SUSPEND_PROCESSES = "suspend_processes"
DRAIN_AND_TERMINATE = "drain_and_terminate"
RESTORE_CAPACITY = "restore_capacity"
AWAIT_CONVERGENCE = "await_convergence"
RESUME_PROCESSES = "resume_processes"

#: Instance states that still count as a node's backing instance.
LIVE_INSTANCE_STATES = ("pending", "running", "stopping", "stopped")
