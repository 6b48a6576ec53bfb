from dataclasses import dataclass, field
from enum import Enum

import pg_fencing.common.settings as common_settings


class InstanceFencingState(Enum):
    UNFENCED = 'Unfenced'
    FENCING_REQUESTED = 'FencingRequested'
    FENCED = 'Fenced'
    UNFENCING_REQUESTED = 'UnfencingRequested'


FENCING_STATES = (InstanceFencingState.FENCING_REQUESTED, InstanceFencingState.FENCED)


@dataclass(frozen=True)
class FencingSet:
    instances: frozenset = frozenset()
    fence_all: bool = False

    @classmethod
    def explicit(cls, instances=()):
        return cls(instances=frozenset(instances))

    @classmethod
    def all_instances(cls):
        return cls(fence_all=True)

    def is_empty(self):
        return not self.fence_all and not self.instances

    def with_instance(self, instance_name):
        return FencingSet.explicit(self.instances | {instance_name})

    def without_instance(self, instance_name):
        if self.fence_all:
            return self
        return FencingSet.explicit(self.instances - {instance_name})

    def resolve(self, live_instance_names):
        """
        Resolves the declaration against the current inventory. The wildcard follows the inventory,
        so instances added after the declaration are fenced as well.
        """
        if self.fence_all:
            return frozenset(live_instance_names)
        return frozenset(name for name in live_instance_names if name in self.instances)

    def __str__(self):
        if self.fence_all:
            return common_settings.FENCE_ALL_INSTANCES
        return str(sorted(self.instances))


@dataclass
class InstanceInfo:
    name: str
    ready: bool = False
    role: str = common_settings.REPLICA_ROLE

    @property
    def is_primary(self):
        return self.role == common_settings.PRIMARY_ROLE


@dataclass(frozen=True)
class ClusterRoleAssignment:
    primary: str = ''
    replicas: frozenset = frozenset()

    def get_role(self, instance_name):
        if instance_name == self.primary:
            return common_settings.PRIMARY_ROLE
        return common_settings.REPLICA_ROLE


@dataclass
class ClusterInfo:
    name: str
    namespace: str
    resource_version: str = ''
    uid: str = ''
    current_primary: str = ''
    annotations: dict = field(default_factory=dict)


@dataclass
class InstanceFencingStatus:
    name: str
    role: str
    ready: bool
    declared_fenced: bool
    state: InstanceFencingState


@dataclass
class ReconcileResult:
    converged: bool = True
    states: dict = field(default_factory=dict)
    failed_instances: list = field(default_factory=list)
    topology_error: str = ''
