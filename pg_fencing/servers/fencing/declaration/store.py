from copy import deepcopy

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.common.settings as common_settings
from pg_fencing.common import utils
import pg_fencing.servers.fencing.messages as messages
from pg_fencing.servers.errors import ClusterNotFoundError, ConflictError, DeclarationStoreError
from pg_fencing.servers.fencing.declaration.fencing_set import decode_fenced_instances, encode_fenced_instances
from pg_fencing.servers.fencing.k8s.api import K8SApi

logger = get_stdout_logger()


class FencingDeclarationStore:
    """
    Keeps the declared fencing set in an annotation of the cluster resource.

    Writes are compare-and-swap on the resource version of the cluster: a concurrent modification
    fails with ConflictError instead of silently overwriting the other writer.
    """

    def __init__(self, namespace, cluster_name, k8s_api=None):
        self.namespace = namespace
        self.cluster_name = cluster_name
        self.k8s_api = k8s_api or K8SApi()

    def get(self):
        fencing_set, _ = self.get_versioned()
        return fencing_set

    def get_versioned(self):
        k8s_cluster = self._read_cluster()
        raw_value = self._get_annotations(k8s_cluster).get(common_settings.FENCED_INSTANCES_ANNOTATION)
        fencing_set = decode_fenced_instances(raw_value)
        logger.debug(messages.READ_FENCED_INSTANCES.format(self.cluster_name, fencing_set))
        return fencing_set, utils.get_k8s_object_resource_version(k8s_cluster)

    def set(self, fencing_set, resource_version=None):
        k8s_cluster = self._read_cluster()
        current_resource_version = utils.get_k8s_object_resource_version(k8s_cluster)
        if resource_version is not None and resource_version != current_resource_version:
            raise ConflictError(self.cluster_name, self.namespace)
        updated_k8s_cluster = self._set_fenced_instances_annotation(k8s_cluster, fencing_set)
        status_code = self.k8s_api.replace_cluster(self.namespace, self.cluster_name, updated_k8s_cluster)
        self._handle_replace_status_code(status_code)

    def _read_cluster(self):
        k8s_cluster = self.k8s_api.get_cluster(self.namespace, self.cluster_name)
        if not k8s_cluster:
            raise ClusterNotFoundError(self.cluster_name, self.namespace)
        return k8s_cluster

    def _get_annotations(self, k8s_cluster):
        return k8s_cluster[common_settings.METADATA_FIELD].get(common_settings.ANNOTATIONS_FIELD) or {}

    def _set_fenced_instances_annotation(self, k8s_cluster, fencing_set):
        updated_k8s_cluster = deepcopy(k8s_cluster)
        annotations = dict(self._get_annotations(updated_k8s_cluster))
        raw_value = encode_fenced_instances(fencing_set)
        if raw_value is None:
            annotations.pop(common_settings.FENCED_INSTANCES_ANNOTATION, None)
        else:
            annotations[common_settings.FENCED_INSTANCES_ANNOTATION] = raw_value
        updated_k8s_cluster[common_settings.METADATA_FIELD][common_settings.ANNOTATIONS_FIELD] = annotations
        return updated_k8s_cluster

    def _handle_replace_status_code(self, status_code):
        if status_code == 200:
            return
        if status_code == 409:
            raise ConflictError(self.cluster_name, self.namespace)
        if status_code == 404:
            raise ClusterNotFoundError(self.cluster_name, self.namespace)
        raise DeclarationStoreError(self.cluster_name, status_code)
