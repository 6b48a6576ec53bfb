import os

from pg_fencing.common.config import config

PGDATA = config.postgres.data_directory
PG_SOCKET_DIRECTORY = config.postgres.socket_directory
PG_PORT = config.postgres.port
PG_USER = config.postgres.user
PG_REPLICATION_USER = config.postgres.replication_user
PG_STOP_MODE = config.postgres.stop_mode
FENCING_SIGNAL_FILE = os.path.join(PGDATA, config.postgres.fencing_signal_file)
PG_LOG_FILE = config.postgres.log_file
EXEC_TIMEOUT_IN_SECONDS = config.postgres.exec_timeout_in_seconds
STREAMING_CHECK_TRIES = config.postgres.streaming_check_tries
STREAMING_CHECK_DELAY_IN_SECONDS = config.postgres.streaming_check_delay_in_seconds

PG_CTL_NOT_RUNNING_EXIT_CODE = 3
EXPECTED_WAL_RECEIVERS = 1

PRIMARY_CONNINFO_PARAMETER = 'primary_conninfo'
PRIMARY_CONNINFO_TEMPLATE = 'host={host} port={port} user={user} application_name={application_name} ' \
                            'sslmode=verify-ca'
