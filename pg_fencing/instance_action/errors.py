import pg_fencing.instance_action.messages as messages


class BaseInstanceActionException(Exception):

    def __str__(self, *args, **kwargs):
        return self.message


class ExecutionError(BaseInstanceActionException):

    def __init__(self, instance_name, msg):
        super().__init__()
        self.instance_name = instance_name
        self.message = msg


class InstanceUnreachableError(ExecutionError):

    def __init__(self, instance_name, reason):
        super().__init__(instance_name, messages.INSTANCE_UNREACHABLE_MESSAGE.format(instance_name, reason))


class CommandFailedError(ExecutionError):

    def __init__(self, instance_name, command, exit_code, output):
        super().__init__(instance_name, messages.COMMAND_FAILED_MESSAGE.format(
            ' '.join(command), instance_name, exit_code, output))
        self.exit_code = exit_code


class InvalidCommandOutputError(ExecutionError):

    def __init__(self, instance_name, command, output):
        super().__init__(instance_name, messages.INVALID_COMMAND_OUTPUT_MESSAGE.format(
            ' '.join(command), instance_name, output))


class StreamingNotResumedError(ExecutionError):

    def __init__(self, instance_name, receivers_count):
        super().__init__(instance_name, messages.STREAMING_NOT_RESUMED_MESSAGE.format(instance_name, receivers_count))


class ExecutionTimedOutError(ExecutionError):

    def __init__(self, instance_name, action_name, timeout):
        super().__init__(instance_name, messages.EXECUTION_TIMED_OUT_MESSAGE.format(action_name, instance_name,
                                                                                    timeout))
