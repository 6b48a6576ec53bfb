CONFLICT_ERROR_MESSAGE = "Cluster {} in namespace {} was modified concurrently, fenced instances were not updated"
INVALID_FENCING_REQUEST_MESSAGE = "Invalid fencing request: {}"
CLUSTER_NOT_FOUND_MESSAGE = "Cluster {} does not exist in namespace {}"
DECLARATION_STORE_ERROR_MESSAGE = "Failed to access fenced instances of cluster {}, got: {}"
OBJECT_ALREADY_PROCESSING_MESSAGE = "An operation is already in progress for instance: {}"
TOPOLOGY_CHANGED_MESSAGE = "Primary of cluster {} changed from {} to {} while fencing was active"

WILDCARD_MIXED_WITH_NAMES_MESSAGE = "the wildcard {} cannot be combined with instance names"
MALFORMED_FENCED_INSTANCES_MESSAGE = "fenced instances must be a JSON array of strings, got: {}"
INSTANCE_NAME_IS_EMPTY_MESSAGE = "instance name must not be empty"
ALL_INSTANCES_ALREADY_FENCED_MESSAGE = "all instances are fenced, cannot fence the single instance {}"
ALL_INSTANCES_STILL_FENCED_MESSAGE = "all instances are fenced, cannot unfence the single instance {}, unfence {} instead"
INSTANCE_NOT_IN_CLUSTER_MESSAGE = "instance {} is not part of cluster {}"
