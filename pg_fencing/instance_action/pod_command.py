from kubernetes.client.rest import ApiException
from websocket import WebSocketException

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.common.settings as common_settings
from pg_fencing.instance_action import settings
from pg_fencing.instance_action.errors import CommandFailedError, ExecutionTimedOutError, InstanceUnreachableError
from pg_fencing.instance_action.instance_action_types import CommandResult
from pg_fencing.servers.fencing.k8s.api import K8SApi

logger = get_stdout_logger()


class PodCommandRunner:
    def __init__(self, namespace, k8s_api=None):
        self.namespace = namespace
        self.k8s_api = k8s_api or K8SApi()

    def run(self, instance_name, command, check=True):
        try:
            exit_code, stdout, stderr = self.k8s_api.exec_command(
                self.namespace, instance_name, common_settings.POSTGRES_CONTAINER_NAME, command,
                settings.EXEC_TIMEOUT_IN_SECONDS)
        except ApiException as ex:
            raise InstanceUnreachableError(instance_name, ex.reason)
        except (WebSocketException, OSError) as ex:
            raise InstanceUnreachableError(instance_name, ex)
        if exit_code is None:
            raise ExecutionTimedOutError(instance_name, ' '.join(command), settings.EXEC_TIMEOUT_IN_SECONDS)
        result = CommandResult(exit_code=exit_code, stdout=stdout or '', stderr=stderr or '')
        logger.debug("command {} on instance {} returned {}".format(command, instance_name, exit_code))
        if check and not result.succeeded:
            raise CommandFailedError(instance_name, command, exit_code, result.stderr.strip())
        return result

    def run_query(self, instance_name, query, check=True):
        command = ['psql', '-h', settings.PG_SOCKET_DIRECTORY, '-p', str(settings.PG_PORT),
                   '-U', settings.PG_USER, '-d', 'postgres', '-tAc', query]
        return self.run(instance_name, command, check=check)
