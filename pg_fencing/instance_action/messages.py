INSTANCE_UNREACHABLE_MESSAGE = "Instance {} is unreachable, got: {}"
COMMAND_FAILED_MESSAGE = "Command {} failed on instance {} with exit code {}: {}"
STREAMING_NOT_RESUMED_MESSAGE = "Instance {} has {} wal receivers after unfencing, expected 1"
EXECUTION_TIMED_OUT_MESSAGE = "Action {} on instance {} did not finish in {} seconds"
INVALID_COMMAND_OUTPUT_MESSAGE = "Command {} on instance {} returned unexpected output: {}"
