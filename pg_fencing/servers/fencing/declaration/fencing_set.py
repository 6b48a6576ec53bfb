import json

import pg_fencing.common.settings as common_settings
import pg_fencing.servers.messages as messages
from pg_fencing.servers.errors import InvalidFencingRequest
from pg_fencing.servers.fencing.types import FencingSet


def decode_fenced_instances(raw_value):
    if not raw_value:
        return FencingSet.explicit()
    try:
        instances = json.loads(raw_value)
    except json.decoder.JSONDecodeError:
        raise InvalidFencingRequest(messages.MALFORMED_FENCED_INSTANCES_MESSAGE.format(raw_value))
    return parse_instance_names(instances, raw_value)


def parse_instance_names(instances, raw_value=None):
    if not _is_list_of_strings(instances):
        raise InvalidFencingRequest(messages.MALFORMED_FENCED_INSTANCES_MESSAGE.format(
            raw_value if raw_value is not None else instances))
    if common_settings.FENCE_ALL_INSTANCES in instances:
        if set(instances) != {common_settings.FENCE_ALL_INSTANCES}:
            raise InvalidFencingRequest(
                messages.WILDCARD_MIXED_WITH_NAMES_MESSAGE.format(common_settings.FENCE_ALL_INSTANCES))
        return FencingSet.all_instances()
    if '' in instances:
        raise InvalidFencingRequest(messages.INSTANCE_NAME_IS_EMPTY_MESSAGE)
    return FencingSet.explicit(instances)


def _is_list_of_strings(instances):
    return isinstance(instances, list) and all(isinstance(instance, str) for instance in instances)


def encode_fenced_instances(fencing_set):
    """
    Returns the annotation value for the fencing set, or None when the annotation should be removed.
    """
    if fencing_set.fence_all:
        return json.dumps([common_settings.FENCE_ALL_INSTANCES])
    if not fencing_set.instances:
        return None
    return json.dumps(sorted(fencing_set.instances))
