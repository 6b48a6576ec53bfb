import os
import threading

from munch import Munch

from pg_fencing.common import settings


def set_current_thread_name(name):
    """
    Sets current thread name if name not None or empty string

    Args:
        name : name to set
    """
    if name:
        current_thread = threading.current_thread()
        current_thread.name = name


def munch(watch_event):
    return Munch.fromDict(watch_event)


def loop_forever():
    return True


def get_watch_namespace():
    return os.getenv(settings.WATCH_NAMESPACE_ENV_VAR, settings.DEFAULT_NAMESPACE)


def get_k8s_object_resource_version(k8s_object):
    metadata = k8s_object[settings.METADATA_FIELD]
    return metadata.get(settings.RESOURCE_VERSION_FIELD, '')
