from kubernetes import client, config, watch
from kubernetes.config.config_exception import ConfigException
from kubernetes.client.rest import ApiException
from kubernetes.stream import stream

from pg_fencing.common.pg_logger import get_stdout_logger
from pg_fencing.common import utils
import pg_fencing.common.settings as common_settings
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.fencing import settings

logger = get_stdout_logger()


class K8SApi():
    def __init__(self):
        self._load_cluster_configuration()
        self.core_api = client.CoreV1Api()
        self.custom_object_api = client.CustomObjectsApi()

    def _load_cluster_configuration(self):
        try:
            config.load_incluster_config()
        except ConfigException:
            config.load_kube_config()

    def get_cluster(self, namespace, cluster_name):
        try:
            return self.custom_object_api.get_namespaced_custom_object(
                common_settings.CLUSTER_GROUP, common_settings.CLUSTER_VERSION, namespace,
                common_settings.CLUSTER_PLURAL, cluster_name)
        except ApiException as ex:
            if ex.status == 404:
                logger.error(messages.CLUSTER_DOES_NOT_EXIST.format(cluster_name, namespace))
            else:
                logger.error(messages.FAILED_TO_GET_CLUSTER.format(cluster_name, namespace, ex.body))
            return None

    def list_clusters(self, namespace):
        try:
            return self.custom_object_api.list_namespaced_custom_object(
                common_settings.CLUSTER_GROUP, common_settings.CLUSTER_VERSION, namespace,
                common_settings.CLUSTER_PLURAL)
        except ApiException as ex:
            logger.error(messages.FAILED_TO_LIST_CLUSTERS.format(namespace, ex.body))
            return self._get_empty_k8s_list()

    def replace_cluster(self, namespace, cluster_name, k8s_cluster):
        try:
            self.custom_object_api.replace_namespaced_custom_object(
                common_settings.CLUSTER_GROUP, common_settings.CLUSTER_VERSION, namespace,
                common_settings.CLUSTER_PLURAL, cluster_name, k8s_cluster)
            return 200
        except ApiException as ex:
            if ex.status == 404:
                logger.error(messages.CLUSTER_DOES_NOT_EXIST.format(cluster_name, namespace))
            elif ex.status == 409:
                logger.info(messages.CLUSTER_WAS_MODIFIED_CONCURRENTLY.format(
                    cluster_name, namespace, utils.get_k8s_object_resource_version(k8s_cluster)))
            else:
                logger.error(messages.FAILED_TO_REPLACE_CLUSTER.format(cluster_name, namespace, ex.body))
            return ex.status

    def list_cluster_pods(self, namespace, cluster_name):
        label_selector = '{}={}'.format(common_settings.CLUSTER_LABEL, cluster_name)
        try:
            return self.core_api.list_namespaced_pod(namespace, label_selector=label_selector)
        except ApiException as ex:
            logger.error(messages.FAILED_TO_LIST_PODS.format(cluster_name, namespace, ex.body))
            return None

    def create_event(self, namespace, k8s_event):
        try:
            self.core_api.create_namespaced_event(namespace, k8s_event)
        except ApiException as ex:
            logger.error(messages.FAILED_TO_CREATE_EVENT_FOR_CLUSTER.format(
                k8s_event.involved_object.name, ex.body))

    def exec_command(self, namespace, pod_name, container, command, timeout):
        """
        Runs a command inside a pod container.

        Returns:
            tuple of (exit code, stdout, stderr). The exit code is None when the command did not finish
            within the timeout.

        Raises:
            ApiException
        """
        logger.debug(messages.EXEC_COMMAND_ON_INSTANCE.format(command, pod_name))
        response = stream(self.core_api.connect_get_namespaced_pod_exec, pod_name, namespace,
                          container=container, command=command, stderr=True, stdin=False, stdout=True,
                          tty=False, _preload_content=False)
        try:
            response.run_forever(timeout=timeout)
            return response.returncode, response.read_stdout(), response.read_stderr()
        finally:
            response.close()

    def get_cluster_stream(self, namespace):
        list_function = self.custom_object_api.list_namespaced_custom_object
        list_args = (common_settings.CLUSTER_GROUP, common_settings.CLUSTER_VERSION, namespace,
                     common_settings.CLUSTER_PLURAL)
        resource_version = self._get_list_resource_version(self.list_clusters(namespace))
        return watch.Watch().stream(list_function, *list_args, resource_version=resource_version,
                                    timeout_seconds=settings.WATCH_TIMEOUT_IN_SECONDS)

    def get_pod_stream(self, namespace):
        return watch.Watch().stream(self.core_api.list_namespaced_pod, namespace,
                                    label_selector=common_settings.CLUSTER_LABEL,
                                    timeout_seconds=settings.WATCH_TIMEOUT_IN_SECONDS)

    def _get_list_resource_version(self, k8s_list):
        return k8s_list.get(common_settings.METADATA_FIELD, {}).get(
            common_settings.RESOURCE_VERSION_FIELD, '')

    def _get_empty_k8s_list(self):
        return {
            common_settings.ITEMS_FIELD: [],
            common_settings.METADATA_FIELD: {
                common_settings.RESOURCE_VERSION_FIELD: ''
            }
        }
