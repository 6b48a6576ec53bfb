import threading
from collections import defaultdict

from pg_fencing.common.pg_logger import get_stdout_logger
from pg_fencing.servers.errors import ObjectAlreadyProcessingError
import pg_fencing.servers.fencing.messages as messages

logger = get_stdout_logger()

instances_in_use = defaultdict(set)
running_operations = defaultdict(dict)
instances_lock = threading.Lock()


def get_running_operation(cluster_key, instance_name):
    with instances_lock:
        return running_operations[cluster_key].get(instance_name)


def track_operation(cluster_key, instance_name, action_name, action):
    """
    Marks the instance busy and returns a callable that runs action on an InstanceInfo and clears the mark
    when action returns, whether or not its caller is still waiting for it.
    Raises ObjectAlreadyProcessingError while an earlier operation on the instance is still running.
    """
    with instances_lock:
        running_action_name = running_operations[cluster_key].get(instance_name)
        if running_action_name:
            logger.info(messages.INSTANCE_OPERATION_STILL_RUNNING.format(running_action_name, instance_name))
            raise ObjectAlreadyProcessingError(instance_name)
        running_operations[cluster_key][instance_name] = action_name

    def run_tracked_operation(instance_info):
        try:
            return action(instance_info)
        finally:
            _finish_operation(cluster_key, instance_name, action_name)

    return run_tracked_operation


def _finish_operation(cluster_key, instance_name, action_name):
    with instances_lock:
        running_operations[cluster_key].pop(instance_name, None)
    logger.debug(messages.INSTANCE_OPERATION_FINISHED.format(action_name, instance_name))


class InstanceLock:
    """
    Holds one instance of a cluster while a reconcile step works on it.

    Entering fails while another step holds the instance, and also while an operation started through
    track_operation is still running on it. A step that stopped waiting for a timed out fence or unfence
    therefore does not let the next pass start another operation on the same instance.
    """

    def __init__(self, cluster_key, instance_name, method_name):
        self.cluster_key = cluster_key
        self.instance_name = instance_name
        self.method_name = method_name

    def __enter__(self):
        with instances_lock:
            running_action_name = running_operations[self.cluster_key].get(self.instance_name)
            if running_action_name:
                logger.info(messages.INSTANCE_OPERATION_STILL_RUNNING.format(running_action_name, self.instance_name))
                raise ObjectAlreadyProcessingError(self.instance_name)
            if self.instance_name in instances_in_use[self.cluster_key]:
                logger.debug(messages.INSTANCE_LOCK_IN_USE.format(self.instance_name, self.method_name))
                raise ObjectAlreadyProcessingError(self.instance_name)
            instances_in_use[self.cluster_key].add(self.instance_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        with instances_lock:
            instances_in_use[self.cluster_key].discard(self.instance_name)
