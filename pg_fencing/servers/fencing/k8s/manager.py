import datetime

from kubernetes import client

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.common.settings as common_settings
from pg_fencing.common import utils
from pg_fencing.servers.fencing import settings
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.fencing.k8s.api import K8SApi
from pg_fencing.servers.fencing.types import ClusterInfo, ClusterRoleAssignment, InstanceInfo

logger = get_stdout_logger()


class K8SManager():
    def __init__(self):
        self.k8s_api = K8SApi()

    def get_cluster_info(self, namespace, cluster_name):
        k8s_cluster = self.k8s_api.get_cluster(namespace, cluster_name)
        if k8s_cluster:
            return self.generate_cluster_info(k8s_cluster)
        return None

    def get_clusters_info(self, namespace):
        clusters_info = []
        for k8s_cluster in self.k8s_api.list_clusters(namespace).get(common_settings.ITEMS_FIELD, []):
            clusters_info.append(self.generate_cluster_info(k8s_cluster))
        return clusters_info

    def generate_cluster_info(self, k8s_cluster):
        metadata = k8s_cluster[common_settings.METADATA_FIELD]
        status = k8s_cluster.get(common_settings.STATUS_FIELD) or {}
        return ClusterInfo(
            name=metadata[common_settings.NAME_FIELD],
            namespace=metadata.get(common_settings.NAMESPACE_FIELD, ''),
            resource_version=utils.get_k8s_object_resource_version(k8s_cluster),
            uid=metadata.get('uid', ''),
            current_primary=status.get(common_settings.CURRENT_PRIMARY_FIELD, ''),
            annotations=dict(metadata.get(common_settings.ANNOTATIONS_FIELD) or {}))

    def get_instances_info(self, namespace, cluster_name):
        instances_info = []
        k8s_pods = self.k8s_api.list_cluster_pods(namespace, cluster_name)
        if not k8s_pods:
            return instances_info
        for k8s_pod in k8s_pods.items:
            instances_info.append(self.generate_instance_info(k8s_pod))
        return sorted(instances_info, key=lambda instance_info: instance_info.name)

    def generate_instance_info(self, k8s_pod):
        labels = k8s_pod.metadata.labels or {}
        return InstanceInfo(name=k8s_pod.metadata.name,
                            ready=self._is_postgres_container_ready(k8s_pod),
                            role=labels.get(common_settings.ROLE_LABEL, common_settings.REPLICA_ROLE))

    def _is_postgres_container_ready(self, k8s_pod):
        if not k8s_pod.status or not k8s_pod.status.container_statuses:
            return False
        for container_status in k8s_pod.status.container_statuses:
            if container_status.name == common_settings.POSTGRES_CONTAINER_NAME:
                return bool(container_status.ready)
        return False

    def get_role_assignment(self, namespace, cluster_name):
        cluster_info = self.get_cluster_info(namespace, cluster_name)
        instances_info = self.get_instances_info(namespace, cluster_name)
        return self.generate_role_assignment(cluster_info, instances_info)

    def generate_role_assignment(self, cluster_info, instances_info):
        primary = cluster_info.current_primary if cluster_info else ''
        if not primary:
            primary = self._get_primary_from_role_label(instances_info)
        replicas = frozenset(instance_info.name for instance_info in instances_info
                             if instance_info.name != primary)
        return ClusterRoleAssignment(primary=primary, replicas=replicas)

    def _get_primary_from_role_label(self, instances_info):
        for instance_info in instances_info:
            if instance_info.is_primary:
                return instance_info.name
        return ''

    def create_k8s_event_for_cluster(self, cluster_info, message, action, message_type):
        logger.info(messages.CREATE_EVENT_FOR_CLUSTER.format(message, cluster_info.name))
        k8s_event = self.generate_k8s_event(cluster_info, message, action, message_type)
        self.k8s_api.create_event(cluster_info.namespace, k8s_event)

    def generate_k8s_event(self, cluster_info, message, action, message_type):
        return client.CoreV1Event(
            metadata=client.V1ObjectMeta(generate_name='{}.'.format(cluster_info.name), ),
            reporting_component=settings.FENCING_CONTROLLER, reporting_instance=settings.FENCING_CONTROLLER,
            action=action, type=self._get_event_type(message_type), reason=message_type + action,
            message=str(message),
            event_time=datetime.datetime.utcnow().isoformat(timespec='microseconds') + 'Z',
            involved_object=client.V1ObjectReference(
                api_version=common_settings.CLUSTER_API_VERSION, kind=common_settings.CLUSTER_KIND,
                name=cluster_info.name, namespace=cluster_info.namespace,
                resource_version=cluster_info.resource_version, uid=cluster_info.uid, ))

    def _get_event_type(self, message_type):
        if message_type != settings.SUCCESSFUL_MESSAGE_TYPE:
            return settings.WARNING_EVENT_TYPE
        return settings.NORMAL_EVENT_TYPE
