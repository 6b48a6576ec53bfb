from abc import ABC, abstractmethod


class FenceInterface(ABC):

    @abstractmethod
    def is_fenced(self, instance_info):
        """
        This function should check if the instance was fenced by a previous fence call

        Args:
            instance_info : InstanceInfo of the instance to check

        Returns:
            bool

        Raises:
            ExecutionError
        """
        raise NotImplementedError

    @abstractmethod
    def is_accepting_connections(self, instance_info):
        """
        This function should check if the instance accepts client connections

        Args:
            instance_info : InstanceInfo of the instance to check

        Returns:
            bool

        Raises:
            ExecutionError
        """
        raise NotImplementedError

    @abstractmethod
    def fence(self, instance_info):
        """
        This function should make the instance refuse client connections and report not ready,
        leaving its replication state and its role untouched.
        Calling it on an already fenced instance should do nothing.

        Args:
            instance_info : InstanceInfo of the instance that should be fenced

        Returns:
            None

        Raises:
            ExecutionError
        """
        raise NotImplementedError

    @abstractmethod
    def unfence(self, instance_info):
        """
        This function should make the instance accept client connections again. A replica should
        resume streaming from the current primary.
        Calling it on an instance which is not fenced should do nothing.

        Args:
            instance_info : InstanceInfo of the instance that should be unfenced

        Returns:
            None

        Raises:
            ExecutionError
        """
        raise NotImplementedError
