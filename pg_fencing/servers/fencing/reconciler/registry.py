import threading

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.fencing.reconciler.reconciler import FencingReconciler

logger = get_stdout_logger()


class ReconcilersRegistry:
    def __init__(self, namespace, reconciler_factory=FencingReconciler):
        self.namespace = namespace
        self.reconciler_factory = reconciler_factory
        self._reconcilers = {}
        self._reconcilers_lock = threading.Lock()

    def add(self, cluster_name):
        with self._reconcilers_lock:
            reconciler = self._reconcilers.get(cluster_name)
            if reconciler:
                return reconciler
            logger.info(messages.NEW_CLUSTER.format(cluster_name, self.namespace))
            reconciler = self.reconciler_factory(self.namespace, cluster_name)
            self._reconcilers[cluster_name] = reconciler
        reconciler_thread = threading.Thread(target=reconciler.run_forever, daemon=True)
        reconciler_thread.start()
        return reconciler

    def get(self, cluster_name):
        with self._reconcilers_lock:
            return self._reconcilers.get(cluster_name)

    def remove(self, cluster_name):
        with self._reconcilers_lock:
            reconciler = self._reconcilers.pop(cluster_name, None)
        if reconciler:
            logger.info(messages.CLUSTER_DELETED.format(cluster_name, self.namespace))
            reconciler.stop()

    def trigger_all(self, reason):
        with self._reconcilers_lock:
            reconcilers = list(self._reconcilers.values())
        for reconciler in reconcilers:
            reconciler.trigger(reason)
