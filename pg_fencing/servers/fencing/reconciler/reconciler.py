import threading
from concurrent.futures import ThreadPoolExecutor
from queue import Empty, Queue

from pg_fencing.common.pg_logger import get_stdout_logger
from pg_fencing.common import utils
from pg_fencing.instance_action.errors import ExecutionError
from pg_fencing.instance_action.postgres_fencer import PostgresInstanceFencer
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.errors import ObjectAlreadyProcessingError, TopologyChangedError
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.declaration.store import FencingDeclarationStore
from pg_fencing.servers.fencing.k8s.manager import K8SManager
from pg_fencing.servers.fencing.reconciler.decorators import instance_method, run_with_timeout
from pg_fencing.servers.fencing.topology.guard import ClusterTopologyGuard
from pg_fencing.servers.fencing.types import InstanceFencingState, ReconcileResult

logger = get_stdout_logger()

_STOP_RECONCILER = object()
DETECT_FENCING_ACTION = 'DetectFencing'


class FencingReconciler:
    """
    Drives the instances of one cluster toward the declared fencing set.

    Every pass is level triggered: it reads the declaration and the live inventory and acts on the
    difference, so repeating a pass with the same input does nothing. Instances are handled in
    parallel, and at most one operation runs on a given instance at a time.
    """

    def __init__(self, namespace, cluster_name, store=None, k8s_manager=None, fencer=None, workers=None):
        self.namespace = namespace
        self.cluster_name = cluster_name
        self.store = store or FencingDeclarationStore(namespace, cluster_name)
        self.k8s_manager = k8s_manager or K8SManager()
        self.fencer = fencer or PostgresInstanceFencer(namespace, cluster_name)
        self.topology_guard = ClusterTopologyGuard(cluster_name, self, self._get_role_assignment)
        self.workers = workers or settings.RECONCILER_WORKERS
        self.instance_lock_key = '{}/{}'.format(namespace, cluster_name)
        self.cluster_info = None
        self._states = {}
        self._states_lock = threading.Lock()
        self._triggers = Queue()
        self._retry_delay = settings.RETRY_DELAY_IN_SECONDS

    def get_state(self, instance_name):
        with self._states_lock:
            return self._states.get(instance_name, InstanceFencingState.UNFENCED)

    def get_states(self):
        with self._states_lock:
            return dict(self._states)

    def trigger(self, reason=''):
        logger.debug(messages.FENCING_TRIGGERED.format(self.cluster_name, reason))
        self._triggers.put(reason)

    def stop(self):
        self._triggers.put(_STOP_RECONCILER)

    def run_forever(self):
        utils.set_current_thread_name(self.cluster_name)
        while utils.loop_forever():
            if self._wait_for_triggers() is _STOP_RECONCILER:
                return
            result = self.reconcile_safely()
            self._schedule_retry_if_not_converged(result)

    def _wait_for_triggers(self):
        reason = self._triggers.get()
        while reason is not _STOP_RECONCILER:
            try:
                reason = self._triggers.get_nowait()
            except Empty:
                break
        return reason

    def _schedule_retry_if_not_converged(self, result):
        if result.converged:
            self._retry_delay = settings.RETRY_DELAY_IN_SECONDS
            return
        delay = self._retry_delay
        self._retry_delay = min(delay * settings.RETRY_EXPONENTIAL_BACKOFF, settings.RETRY_MAX_DELAY_IN_SECONDS)
        logger.info(messages.NOT_CONVERGED_RETRY.format(self.cluster_name, delay))
        retry_timer = threading.Timer(delay, self.trigger, args=(settings.RETRY_TRIGGER,))
        retry_timer.daemon = True
        retry_timer.start()

    def reconcile_safely(self):
        try:
            return self.reconcile()
        except Exception:
            logger.exception(messages.RECONCILE_LOOP_FAILED.format(self.cluster_name))
            return ReconcileResult(converged=False, states=self.get_states())

    def reconcile(self):
        fencing_set = self.store.get()
        self.cluster_info = self.k8s_manager.get_cluster_info(self.namespace, self.cluster_name)
        instances_info = self.k8s_manager.get_instances_info(self.namespace, self.cluster_name)
        live_instance_names = [instance_info.name for instance_info in instances_info]
        logger.info(messages.START_RECONCILE.format(self.cluster_name, fencing_set, live_instance_names))

        self._drop_removed_instances(live_instance_names)
        fenced_instances = fencing_set.resolve(live_instance_names)
        topology_snapshot = self.topology_guard.snapshot(
            self.k8s_manager.generate_role_assignment(self.cluster_info, instances_info))

        instances_results = self._reconcile_instances(instances_info, fenced_instances)

        result = ReconcileResult(states=self.get_states())
        result.failed_instances = sorted(name for name, succeeded in instances_results.items() if not succeeded)
        result.topology_error = self._verify_topology(topology_snapshot)
        result.converged = not result.failed_instances and \
            self._is_converged(result.states, live_instance_names, fenced_instances)
        logger.info(messages.FINISHED_RECONCILE.format(self.cluster_name, result.converged))
        return result

    def _reconcile_instances(self, instances_info, fenced_instances):
        if not instances_info:
            return {}
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                instance_info.name: executor.submit(
                    self._reconcile_instance_if_free, instance_info, instance_info.name in fenced_instances)
                for instance_info in instances_info}
            return {instance_name: future.result() for instance_name, future in futures.items()}

    def _reconcile_instance_if_free(self, instance_info, should_be_fenced):
        try:
            return self._reconcile_instance(instance_info, should_be_fenced)
        except ObjectAlreadyProcessingError:
            logger.info(messages.INSTANCE_IS_BUSY.format(instance_info.name))
            return False

    @instance_method()
    def _reconcile_instance(self, instance_info, should_be_fenced):
        state = self._get_or_detect_state(instance_info)
        if should_be_fenced:
            if state == InstanceFencingState.FENCED:
                if not instance_info.ready:
                    return True
                logger.warning(messages.INSTANCE_FENCING_LOST.format(instance_info.name))
            return self._run_transition(instance_info, InstanceFencingState.FENCING_REQUESTED,
                                        InstanceFencingState.FENCED, self.fencer.fence, settings.FENCE_ACTION)
        if state == InstanceFencingState.UNFENCED:
            return True
        return self._run_transition(instance_info, InstanceFencingState.UNFENCING_REQUESTED,
                                    InstanceFencingState.UNFENCED, self.fencer.unfence, settings.UNFENCE_ACTION)

    def _run_transition(self, instance_info, requested_state, target_state, action, action_name):
        instance_name = instance_info.name
        self._set_state(instance_name, requested_state)
        try:
            run_with_timeout(action, instance_info, action_name, lock_key=self.instance_lock_key)
        except ExecutionError as ex:
            logger.error(messages.FENCING_ACTION_FAILED.format(action_name, instance_name, ex))
            self._create_event(str(ex), action_name, settings.FAILED_MESSAGE_TYPE)
            return False
        except ObjectAlreadyProcessingError:
            raise
        except Exception:
            logger.exception(messages.UNEXPECTED_FENCING_ACTION_ERROR.format(action_name, instance_name))
            return False
        if self._advance_state(instance_name, target_state):
            self._create_event(self._get_success_message(instance_name, target_state), action_name,
                               settings.SUCCESSFUL_MESSAGE_TYPE)
        return True

    def _get_or_detect_state(self, instance_info):
        with self._states_lock:
            if instance_info.name in self._states:
                return self._states[instance_info.name]
        state = self._detect_initial_state(instance_info)
        logger.info(messages.INITIAL_INSTANCE_STATE.format(instance_info.name, state.value))
        self._set_state(instance_info.name, state)
        return state

    def _detect_initial_state(self, instance_info):
        try:
            if run_with_timeout(self.fencer.is_fenced, instance_info, DETECT_FENCING_ACTION,
                                lock_key=self.instance_lock_key):
                return InstanceFencingState.FENCED
        except ExecutionError as ex:
            logger.warning(messages.FAILED_TO_DETECT_INITIAL_STATE.format(instance_info.name, ex))
        except Exception:
            logger.exception(messages.FAILED_TO_DETECT_INITIAL_STATE.format(instance_info.name, 'unexpected error'))
        return InstanceFencingState.UNFENCED

    def _set_state(self, instance_name, state):
        with self._states_lock:
            previous_state = self._states.get(instance_name)
            self._states[instance_name] = state
        self._log_state_change(instance_name, previous_state, state)

    def _advance_state(self, instance_name, state):
        with self._states_lock:
            if instance_name not in self._states:
                return False
            previous_state = self._states[instance_name]
            self._states[instance_name] = state
        self._log_state_change(instance_name, previous_state, state)
        return True

    def _log_state_change(self, instance_name, previous_state, state):
        if previous_state != state:
            previous_state_value = previous_state.value if previous_state else None
            logger.info(messages.INSTANCE_STATE_CHANGED.format(instance_name, previous_state_value, state.value))

    def _drop_removed_instances(self, live_instance_names):
        with self._states_lock:
            removed_instances = {instance_name: state for instance_name, state in self._states.items()
                                 if instance_name not in live_instance_names}
            for instance_name in removed_instances:
                del self._states[instance_name]
        for instance_name, state in removed_instances.items():
            logger.info(messages.INSTANCE_REMOVED_FROM_INVENTORY.format(instance_name, self.cluster_name, state.value))

    def _is_converged(self, states, live_instance_names, fenced_instances):
        for instance_name in live_instance_names:
            expected_state = InstanceFencingState.FENCED if instance_name in fenced_instances \
                else InstanceFencingState.UNFENCED
            if states.get(instance_name, InstanceFencingState.UNFENCED) != expected_state:
                return False
        return True

    def _verify_topology(self, topology_snapshot):
        try:
            self.topology_guard.verify_unchanged(topology_snapshot)
        except TopologyChangedError as ex:
            self._create_event(str(ex), settings.FENCE_ACTION, settings.FAILED_MESSAGE_TYPE)
            return str(ex)
        return ''

    def _get_role_assignment(self):
        return self.k8s_manager.get_role_assignment(self.namespace, self.cluster_name)

    def _get_success_message(self, instance_name, state):
        if state == InstanceFencingState.FENCED:
            return messages.INSTANCE_FENCED_EVENT.format(instance_name)
        return messages.INSTANCE_UNFENCED_EVENT.format(instance_name)

    def _create_event(self, message, action, message_type):
        if self.cluster_info:
            self.k8s_manager.create_k8s_event_for_cluster(self.cluster_info, message, action, message_type)
