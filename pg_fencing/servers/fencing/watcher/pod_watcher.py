from pg_fencing.common import utils
import pg_fencing.common.settings as common_settings
from pg_fencing.servers.fencing import settings
from pg_fencing.servers.fencing.watcher.watcher_helper import Watcher


class PodWatcher(Watcher):
    def watch_pods_resources(self):
        while utils.loop_forever():
            stream = self.k8s_api.get_pod_stream(self.namespace)
            for watch_event in stream:
                watch_event = utils.munch(watch_event)
                self._handle_pod_event(watch_event)

    def _handle_pod_event(self, watch_event):
        k8s_pod = watch_event.object
        labels = k8s_pod.metadata.labels or {}
        reconciler = self.reconcilers.get(labels.get(common_settings.CLUSTER_LABEL))
        if reconciler:
            reconciler.trigger(settings.POD_EVENT_TRIGGER.format(k8s_pod.metadata.name, watch_event.type))
