from retry.api import retry_call

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.common.settings as common_settings
import pg_fencing.servers.messages as server_messages
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.errors import ConflictError, InvalidFencingRequest
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.declaration.fencing_set import decode_fenced_instances
from pg_fencing.servers.fencing.declaration.store import FencingDeclarationStore
from pg_fencing.servers.fencing.k8s.manager import K8SManager
from pg_fencing.servers.fencing.types import FencingSet, InstanceFencingState, InstanceFencingStatus

logger = get_stdout_logger()


def add_fenced_instance(fencing_set, instance_name):
    if instance_name == common_settings.FENCE_ALL_INSTANCES:
        return FencingSet.all_instances()
    if fencing_set.fence_all:
        raise InvalidFencingRequest(server_messages.ALL_INSTANCES_ALREADY_FENCED_MESSAGE.format(instance_name))
    return fencing_set.with_instance(instance_name)


def remove_fenced_instance(fencing_set, instance_name):
    if instance_name == common_settings.FENCE_ALL_INSTANCES:
        return FencingSet.explicit()
    if fencing_set.fence_all:
        raise InvalidFencingRequest(server_messages.ALL_INSTANCES_STILL_FENCED_MESSAGE.format(
            instance_name, common_settings.FENCE_ALL_INSTANCES))
    return fencing_set.without_instance(instance_name)


def derive_observed_state(declared_fenced, ready):
    """
    Approximates the fencing state of an instance from the outside, using only the declaration
    and the readiness of its postgres container.
    """
    if declared_fenced:
        if ready:
            return InstanceFencingState.FENCING_REQUESTED
        return InstanceFencingState.FENCED
    if ready:
        return InstanceFencingState.UNFENCED
    return InstanceFencingState.UNFENCING_REQUESTED


class FencingCommand:
    def __init__(self, namespace, cluster_name, store=None, k8s_manager=None):
        self.namespace = namespace
        self.cluster_name = cluster_name
        self.store = store or FencingDeclarationStore(namespace, cluster_name)
        self.k8s_manager = k8s_manager or K8SManager()

    def annotate(self, raw_fenced_instances):
        fencing_set = decode_fenced_instances(raw_fenced_instances)
        return self._update_with_retries(lambda _: fencing_set)

    def fencing_on(self, instance_name):
        self._validate_instance_to_fence(instance_name)
        return self._update_with_retries(lambda current: add_fenced_instance(current, instance_name))

    def fencing_off(self, instance_name):
        if not instance_name:
            raise InvalidFencingRequest(server_messages.INSTANCE_NAME_IS_EMPTY_MESSAGE)
        return self._update_with_retries(lambda current: remove_fenced_instance(current, instance_name))

    def status(self):
        fencing_set = self.store.get()
        instances_info = self.k8s_manager.get_instances_info(self.namespace, self.cluster_name)
        fenced_instances = fencing_set.resolve(instance_info.name for instance_info in instances_info)
        instances_status = []
        for instance_info in instances_info:
            declared_fenced = instance_info.name in fenced_instances
            instances_status.append(InstanceFencingStatus(
                name=instance_info.name, role=instance_info.role, ready=instance_info.ready,
                declared_fenced=declared_fenced,
                state=derive_observed_state(declared_fenced, instance_info.ready)))
        return fencing_set, instances_status

    def _validate_instance_to_fence(self, instance_name):
        if not instance_name:
            raise InvalidFencingRequest(server_messages.INSTANCE_NAME_IS_EMPTY_MESSAGE)
        if instance_name == common_settings.FENCE_ALL_INSTANCES:
            return
        instances_info = self.k8s_manager.get_instances_info(self.namespace, self.cluster_name)
        if instance_name not in [instance_info.name for instance_info in instances_info]:
            raise InvalidFencingRequest(
                server_messages.INSTANCE_NOT_IN_CLUSTER_MESSAGE.format(instance_name, self.cluster_name))

    def _update_with_retries(self, compute_fencing_set):
        return retry_call(self._update, fargs=[compute_fencing_set], exceptions=ConflictError,
                          tries=settings.CONFLICT_RETRIES, delay=settings.CONFLICT_RETRY_DELAY_IN_SECONDS,
                          logger=logger)

    def _update(self, compute_fencing_set):
        current_fencing_set, resource_version = self.store.get_versioned()
        new_fencing_set = compute_fencing_set(current_fencing_set)
        if new_fencing_set == current_fencing_set:
            logger.info(messages.FENCED_INSTANCES_UNCHANGED.format(self.cluster_name, new_fencing_set))
            return new_fencing_set
        logger.info(messages.UPDATING_FENCED_INSTANCES.format(
            self.cluster_name, current_fencing_set, new_fencing_set))
        self.store.set(new_fencing_set, resource_version)
        return new_fencing_set
