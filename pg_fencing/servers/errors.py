import pg_fencing.servers.messages as messages


class BaseFencingException(Exception):

    def __str__(self, *args, **kwargs):
        return self.message


class ConflictError(BaseFencingException):

    def __init__(self, cluster_name, namespace):
        super().__init__()
        self.message = messages.CONFLICT_ERROR_MESSAGE.format(cluster_name, namespace)


class InvalidFencingRequest(BaseFencingException):

    def __init__(self, msg):
        super().__init__()
        self.message = messages.INVALID_FENCING_REQUEST_MESSAGE.format(msg)


class ClusterNotFoundError(BaseFencingException):

    def __init__(self, cluster_name, namespace):
        super().__init__()
        self.message = messages.CLUSTER_NOT_FOUND_MESSAGE.format(cluster_name, namespace)


class DeclarationStoreError(BaseFencingException):

    def __init__(self, cluster_name, reason):
        super().__init__()
        self.message = messages.DECLARATION_STORE_ERROR_MESSAGE.format(cluster_name, reason)


class ObjectAlreadyProcessingError(BaseFencingException):
    def __init__(self, object_id_or_name):
        super().__init__()
        self.message = messages.OBJECT_ALREADY_PROCESSING_MESSAGE.format(object_id_or_name)


class TopologyChangedError(BaseFencingException):
    def __init__(self, cluster_name, previous_primary, current_primary):
        super().__init__()
        self.message = messages.TOPOLOGY_CHANGED_MESSAGE.format(cluster_name, previous_primary, current_primary)
