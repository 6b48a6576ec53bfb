from pg_fencing.common.config import config

NAME_FIELD = 'name'
NAMESPACE_FIELD = 'namespace'
METADATA_FIELD = 'metadata'
ANNOTATIONS_FIELD = 'annotations'
LABELS_FIELD = 'labels'
STATUS_FIELD = 'status'
SPEC_FIELD = 'spec'
ITEMS_FIELD = 'items'
RESOURCE_VERSION_FIELD = 'resourceVersion'
API_VERSION_FIELD = 'apiVersion'
KIND_FIELD = 'kind'

CLUSTER_GROUP = config.cluster.group
CLUSTER_VERSION = config.cluster.version
CLUSTER_PLURAL = config.cluster.plural
CLUSTER_KIND = config.cluster.kind
CLUSTER_API_VERSION = '{}/{}'.format(CLUSTER_GROUP, CLUSTER_VERSION)
CURRENT_PRIMARY_FIELD = 'currentPrimary'

FENCED_INSTANCES_ANNOTATION = '{}/fencedInstances'.format(config.cluster.annotation_prefix)
FENCE_ALL_INSTANCES = '*'

CLUSTER_LABEL = config.cluster.cluster_label
ROLE_LABEL = config.cluster.role_label
PRIMARY_ROLE = 'primary'
REPLICA_ROLE = 'replica'
POSTGRES_CONTAINER_NAME = config.cluster.postgres_container
READ_WRITE_SERVICE_SUFFIX = config.cluster.read_write_service_suffix

WATCH_NAMESPACE_ENV_VAR = 'WATCH_NAMESPACE'
DEFAULT_NAMESPACE = 'default'
