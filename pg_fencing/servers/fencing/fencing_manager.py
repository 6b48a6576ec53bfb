from threading import Thread
from time import sleep

from pg_fencing.common.pg_logger import get_stdout_logger
from pg_fencing.common import utils
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.reconciler.registry import ReconcilersRegistry
from pg_fencing.servers.fencing.watcher.cluster_watcher import ClusterWatcher
from pg_fencing.servers.fencing.watcher.pod_watcher import PodWatcher

logger = get_stdout_logger()


class FencingManager:
    def __init__(self, namespace):
        self.namespace = namespace
        self.reconcilers = ReconcilersRegistry(namespace)
        self.cluster_watcher = ClusterWatcher(namespace, self.reconcilers)
        self.pod_watcher = PodWatcher(namespace, self.reconcilers)

    def start_fencing_controller(self):
        logger.info(messages.STARTING_FENCING_CONTROLLER.format(self.namespace))
        self.cluster_watcher.add_initial_clusters()
        self._start_watchers()

    def get_topology_guard(self, cluster_name):
        reconciler = self.reconcilers.get(cluster_name)
        if reconciler:
            return reconciler.topology_guard
        return None

    def _start_watchers(self):
        watchers = (
            self.cluster_watcher.watch_clusters_resources,
            self.pod_watcher.watch_pods_resources,
            self._resync_periodically)
        for watch_function in watchers:
            thread = Thread(target=watch_function,)
            thread.start()

    def _resync_periodically(self):
        while utils.loop_forever():
            sleep(settings.RESYNC_INTERVAL_IN_SECONDS)
            self.reconcilers.trigger_all(settings.RESYNC_TRIGGER)
