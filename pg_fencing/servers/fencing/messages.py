FAILED_TO_GET_CLUSTER = 'Failed to get cluster {} in namespace {}, got: {}'
CLUSTER_DOES_NOT_EXIST = 'Cluster {} does not exist in namespace {}'
FAILED_TO_LIST_CLUSTERS = 'Failed to list clusters in namespace {}, got: {}'
FAILED_TO_REPLACE_CLUSTER = 'Failed to update cluster {} in namespace {}, got: {}'
CLUSTER_WAS_MODIFIED_CONCURRENTLY = 'Cluster {} in namespace {} was modified concurrently, resource version {}'
FAILED_TO_LIST_PODS = 'Failed to list instances of cluster {} in namespace {}, got: {}'
FAILED_TO_CREATE_EVENT_FOR_CLUSTER = 'Failed to create event for cluster {}, got: {}'
CREATE_EVENT_FOR_CLUSTER = 'Creating event : [{}] for cluster: {}'
EXEC_COMMAND_ON_INSTANCE = 'Running {} on instance {}'
UPDATING_FENCED_INSTANCES = 'Updating fenced instances of cluster {} from {} to {}'
FENCED_INSTANCES_UNCHANGED = 'Fenced instances of cluster {} are already {}'
READ_FENCED_INSTANCES = 'Cluster {} declares fenced instances: {}'

START_RECONCILE = 'Reconciling fencing of cluster {}, declared: {}, instances: {}'
FINISHED_RECONCILE = 'Finished reconciling fencing of cluster {}, converged: {}'
INSTANCE_STATE_CHANGED = 'Instance {} fencing state changed from {} to {}'
INSTANCE_REMOVED_FROM_INVENTORY = 'Instance {} is no longer part of cluster {}, dropping its fencing state {}'
INSTANCE_IS_BUSY = 'Instance {} is already being processed, skipping it in this pass'
FENCING_ACTION_FAILED = '{} of instance {} failed, will retry on the next trigger: {}'
UNEXPECTED_FENCING_ACTION_ERROR = 'Unexpected error during {} of instance {}, will retry on the next trigger'
INITIAL_INSTANCE_STATE = 'Instance {} observed for the first time, initial fencing state {}'
FAILED_TO_DETECT_INITIAL_STATE = 'Could not detect fencing state of instance {}, assuming unfenced: {}'
INSTANCE_FENCED_EVENT = 'Instance {} is fenced'
INSTANCE_UNFENCED_EVENT = 'Instance {} is unfenced'
FENCING_TRIGGERED = 'Fencing reconciliation of cluster {} triggered by {}'
RECONCILE_LOOP_FAILED = 'Fencing reconciliation of cluster {} failed, will retry on the next trigger'

ROLE_CHANGE_SUPPRESSED = 'Role change of instance {} is suppressed, its fencing state is {}'
FAILOVER_SUPPRESSED = 'Failover of cluster {} is suppressed, primary {} fencing state is {}'
ROLE_ASSIGNMENT_CHANGED = 'Role assignment of cluster {} changed during fencing: {} -> {}'

STARTING_FENCING_CONTROLLER = 'Starting fencing controller in namespace {}'
NEW_CLUSTER = 'Watching fencing of cluster {} in namespace {}'
CLUSTER_DELETED = 'Cluster {} in namespace {} was deleted, stop reconciling its fencing'
NOT_CONVERGED_RETRY = 'Fencing of cluster {} did not converge, retrying in {} seconds'
INSTANCE_LOCK_IN_USE = 'Instance {} is held by another step, cannot run {}'
INSTANCE_OPERATION_STILL_RUNNING = '{} of instance {} is still running, skipping it in this pass'
INSTANCE_OPERATION_FINISHED = '{} of instance {} finished running'
INSTANCE_OPERATION_TIMED_OUT = '{} of instance {} timed out after {} seconds, it stays busy until it returns'
INSTANCE_FENCING_LOST = 'Instance {} accepts connections again while fenced, fencing it again'
