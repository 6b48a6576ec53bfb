from decorator import decorator
from func_timeout import func_timeout, FunctionTimedOut

from pg_fencing.common.pg_logger import get_stdout_logger
from pg_fencing.common.utils import set_current_thread_name
from pg_fencing.instance_action.errors import ExecutionTimedOutError
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.reconciler.sync_lock import InstanceLock, track_operation

logger = get_stdout_logger()


def instance_method(lock_key_attribute=settings.INSTANCE_LOCK_KEY_ATTRIBUTE):
    """
    Serializes calls per instance: the decorated method receives an InstanceInfo as its first argument
    and raises ObjectAlreadyProcessingError while another thread works on the same instance.
    The lock is scoped by the reconciler attribute named lock_key_attribute.
    """
    @decorator
    def call_instance_method(method, reconciler, instance_info, *args, **kwargs):
        set_current_thread_name(instance_info.name)
        lock_key = getattr(reconciler, lock_key_attribute, settings.DEFAULT_INSTANCE_LOCK_KEY)
        with InstanceLock(lock_key, instance_info.name, method.__name__):
            return method(reconciler, instance_info, *args, **kwargs)

    return call_instance_method


def run_with_timeout(action, instance_info, action_name, timeout=None, lock_key=None):
    """
    Runs action on the instance and stops waiting for it after timeout seconds.
    With a lock_key the instance stays busy until action really returns, even after a timeout.
    """
    timeout = timeout or settings.EXECUTOR_TIMEOUT_IN_SECONDS
    if lock_key:
        action = track_operation(lock_key, instance_info.name, action_name, action)
    try:
        return func_timeout(timeout, action, args=(instance_info,))
    except FunctionTimedOut:
        logger.error(messages.INSTANCE_OPERATION_TIMED_OUT.format(action_name, instance_info.name, timeout))
        raise ExecutionTimedOutError(instance_info.name, action_name, timeout)
