from retry.api import retry_call

from pg_fencing.common.pg_logger import get_stdout_logger
import pg_fencing.common.settings as common_settings
from pg_fencing.instance_action import settings
from pg_fencing.instance_action.errors import (CommandFailedError, InvalidCommandOutputError,
                                               StreamingNotResumedError)
from pg_fencing.instance_action.fence_interface import FenceInterface
from pg_fencing.instance_action.pod_command import PodCommandRunner

logger = get_stdout_logger()


class PostgresInstanceFencer(FenceInterface):
    """
    Fences an instance by stopping its postgres server from inside the instance container.

    A stopped server refuses every client connection and fails the readiness probe of the
    container, while the data directory (including standby.signal on replicas) and the role
    labels stay as they are. The fencing signal file marks the server as intentionally stopped.
    """

    def __init__(self, namespace, cluster_name, command_runner=None):
        self.namespace = namespace
        self.cluster_name = cluster_name
        self.command_runner = command_runner or PodCommandRunner(namespace)

    def is_fenced(self, instance_info):
        result = self.command_runner.run(instance_info.name, ['test', '-f', settings.FENCING_SIGNAL_FILE],
                                         check=False)
        return result.succeeded

    def is_accepting_connections(self, instance_info):
        result = self.command_runner.run_query(instance_info.name, 'SELECT 1', check=False)
        return result.succeeded and result.stdout.strip() == '1'

    def fence(self, instance_info):
        instance_name = instance_info.name
        logger.info("fencing instance {} with role {}".format(instance_name, instance_info.role))
        self.command_runner.run(instance_name, ['touch', settings.FENCING_SIGNAL_FILE])
        if self._is_postgres_running(instance_name):
            self._stop_postgres(instance_name)
        else:
            logger.info("postgres is already stopped on instance {}".format(instance_name))

    def unfence(self, instance_info):
        instance_name = instance_info.name
        logger.info("unfencing instance {} with role {}".format(instance_name, instance_info.role))
        if self._is_postgres_running(instance_name):
            logger.info("postgres is already running on instance {}".format(instance_name))
        else:
            self._start_postgres(instance_name)
        if not instance_info.is_primary:
            self._ensure_streaming_from_primary(instance_name)
        self.command_runner.run(instance_name, ['rm', '-f', settings.FENCING_SIGNAL_FILE])

    def _is_postgres_running(self, instance_name):
        command = ['pg_ctl', 'status', '-D', settings.PGDATA]
        result = self.command_runner.run(instance_name, command, check=False)
        if result.succeeded:
            return True
        if result.exit_code == settings.PG_CTL_NOT_RUNNING_EXIT_CODE:
            return False
        raise CommandFailedError(instance_name, command, result.exit_code, result.stderr.strip())

    def _stop_postgres(self, instance_name):
        logger.debug("stopping postgres on instance {}".format(instance_name))
        self.command_runner.run(instance_name, ['pg_ctl', 'stop', '-D', settings.PGDATA,
                                                '-m', settings.PG_STOP_MODE, '-w'])

    def _start_postgres(self, instance_name):
        logger.debug("starting postgres on instance {}".format(instance_name))
        self.command_runner.run(instance_name, ['pg_ctl', 'start', '-D', settings.PGDATA, '-w',
                                                '-l', settings.PG_LOG_FILE])

    def _ensure_streaming_from_primary(self, instance_name):
        expected_primary_conninfo = self._get_expected_primary_conninfo(instance_name)
        current_primary_conninfo = self.command_runner.run_query(
            instance_name, 'SHOW {}'.format(settings.PRIMARY_CONNINFO_PARAMETER)).stdout.strip()
        if _get_conninfo_host(current_primary_conninfo) != self._get_primary_host():
            logger.info("pointing instance {} to primary host {}".format(instance_name, self._get_primary_host()))
            self.command_runner.run_query(instance_name, "ALTER SYSTEM SET {} = '{}'".format(
                settings.PRIMARY_CONNINFO_PARAMETER, expected_primary_conninfo))
            self.command_runner.run_query(instance_name, 'SELECT pg_reload_conf()')
        retry_call(self._verify_streaming, fargs=[instance_name], exceptions=StreamingNotResumedError,
                   tries=settings.STREAMING_CHECK_TRIES, delay=settings.STREAMING_CHECK_DELAY_IN_SECONDS,
                   logger=logger)

    def _verify_streaming(self, instance_name):
        query = 'SELECT count(*) FROM pg_stat_wal_receiver'
        output = self.command_runner.run_query(instance_name, query).stdout.strip()
        try:
            receivers_count = int(output)
        except ValueError:
            raise InvalidCommandOutputError(instance_name, [query], output)
        if receivers_count != settings.EXPECTED_WAL_RECEIVERS:
            raise StreamingNotResumedError(instance_name, receivers_count)
        logger.info("instance {} is streaming from the primary".format(instance_name))

    def _get_primary_host(self):
        return '{}{}'.format(self.cluster_name, common_settings.READ_WRITE_SERVICE_SUFFIX)

    def _get_expected_primary_conninfo(self, instance_name):
        return settings.PRIMARY_CONNINFO_TEMPLATE.format(
            host=self._get_primary_host(), port=settings.PG_PORT, user=settings.PG_REPLICATION_USER,
            application_name=instance_name)


def _get_conninfo_host(conninfo):
    for conninfo_option in conninfo.split():
        key, _, value = conninfo_option.partition('=')
        if key == 'host':
            return value.strip("'")
    return ''
