from pg_fencing.common import utils
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.watcher.watcher_helper import Watcher


class ClusterWatcher(Watcher):
    def add_initial_clusters(self):
        for cluster_info in self.k8s_manager.get_clusters_info(self.namespace):
            reconciler = self.reconcilers.add(cluster_info.name)
            reconciler.trigger(settings.CLUSTER_EVENT_TRIGGER.format(settings.ADDED_EVENT))

    def watch_clusters_resources(self):
        while utils.loop_forever():
            stream = self.k8s_api.get_cluster_stream(self.namespace)
            for watch_event in stream:
                watch_event = utils.munch(watch_event)
                self._handle_cluster_event(watch_event)

    def _handle_cluster_event(self, watch_event):
        cluster_name = watch_event.object.metadata.name
        if watch_event.type == settings.DELETED_EVENT:
            self.reconcilers.remove(cluster_name)
            return
        reconciler = self.reconcilers.add(cluster_name)
        reconciler.trigger(settings.CLUSTER_EVENT_TRIGGER.format(watch_event.type))
