from pg_fencing.common.config import config

ADDED_EVENT = 'ADDED'
DELETED_EVENT = 'DELETED'

FENCE_ACTION = 'Fence'
UNFENCE_ACTION = 'Unfence'
SUCCESSFUL_MESSAGE_TYPE = 'Successful'
FAILED_MESSAGE_TYPE = 'Failed'
NORMAL_EVENT_TYPE = 'Normal'
WARNING_EVENT_TYPE = 'Warning'
FENCING_CONTROLLER = config.identity.name

INSTANCE_LOCK_KEY_ATTRIBUTE = 'instance_lock_key'
DEFAULT_INSTANCE_LOCK_KEY = 'instance_name'

RECONCILER_WORKERS = config.reconciler.workers
RESYNC_INTERVAL_IN_SECONDS = config.reconciler.resync_interval_in_seconds
WATCH_TIMEOUT_IN_SECONDS = config.reconciler.watch_timeout_in_seconds
EXECUTOR_TIMEOUT_IN_SECONDS = config.reconciler.executor_timeout_in_seconds

CONFLICT_RETRIES = config.fencing.conflict_retries
CONFLICT_RETRY_DELAY_IN_SECONDS = config.fencing.conflict_retry_delay_in_seconds
RETRY_DELAY_IN_SECONDS = config.reconciler.retry_delay_in_seconds
RETRY_EXPONENTIAL_BACKOFF = config.reconciler.retry_exponential_backoff
RETRY_MAX_DELAY_IN_SECONDS = config.reconciler.retry_max_delay_in_seconds
RETRY_TRIGGER = 'retry'
RESYNC_TRIGGER = 'resync'
CLUSTER_EVENT_TRIGGER = 'cluster {} event'
POD_EVENT_TRIGGER = 'instance {} {} event'
