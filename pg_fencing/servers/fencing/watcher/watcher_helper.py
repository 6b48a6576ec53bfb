from pg_fencing.servers.fencing.k8s.api import K8SApi
from pg_fencing.servers.fencing.k8s.manager import K8SManager


class Watcher:
    def __init__(self, namespace, reconcilers):
        self.namespace = namespace
        self.reconcilers = reconcilers
        self.k8s_api = K8SApi()
        self.k8s_manager = K8SManager()
