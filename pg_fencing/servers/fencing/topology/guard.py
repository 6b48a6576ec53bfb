from dataclasses import dataclass, field

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.errors import TopologyChangedError
from pg_fencing.servers.fencing.types import ClusterRoleAssignment, FENCING_STATES

logger = get_stdout_logger()


@dataclass
class TopologySnapshot:
    role_assignment: ClusterRoleAssignment
    fencing_states: dict = field(default_factory=dict)


class ClusterTopologyGuard:
    """
    Freezes the role assignment of instances that are fenced or being fenced.

    Primary election and switchover automation ask this guard before moving a role; the guard
    itself never changes the assignment, it only reads it through role_provider.
    """

    def __init__(self, cluster_name, state_provider, role_provider):
        self.cluster_name = cluster_name
        self.state_provider = state_provider
        self.role_provider = role_provider

    def is_role_change_allowed(self, instance_name):
        state = self.state_provider.get_state(instance_name)
        if state in FENCING_STATES:
            logger.info(messages.ROLE_CHANGE_SUPPRESSED.format(instance_name, state.value))
            return False
        return True

    def is_failover_allowed(self):
        primary = self.role_provider().primary
        if not primary:
            return True
        state = self.state_provider.get_state(primary)
        if state in FENCING_STATES:
            logger.info(messages.FAILOVER_SUPPRESSED.format(self.cluster_name, primary, state.value))
            return False
        return True

    def snapshot(self, role_assignment=None):
        if role_assignment is None:
            role_assignment = self.role_provider()
        return TopologySnapshot(role_assignment=role_assignment, fencing_states=self.state_provider.get_states())

    def verify_unchanged(self, previous_snapshot):
        current_role_assignment = self.role_provider()
        previous_primary = previous_snapshot.role_assignment.primary
        if not previous_primary or current_role_assignment.primary == previous_primary:
            return current_role_assignment
        if self._is_fencing_involved(previous_primary, previous_snapshot):
            logger.error(messages.ROLE_ASSIGNMENT_CHANGED.format(
                self.cluster_name, previous_snapshot.role_assignment, current_role_assignment))
            raise TopologyChangedError(self.cluster_name, previous_primary, current_role_assignment.primary)
        return current_role_assignment

    def _is_fencing_involved(self, instance_name, previous_snapshot):
        return previous_snapshot.fencing_states.get(instance_name) in FENCING_STATES or \
            self.state_provider.get_state(instance_name) in FENCING_STATES
