class MapReduceException(Exception):
    """
    Base error of a map phase job. The exit code is used by the CLI when the error
    terminates the driver process.
    """
    exit_code = 1

    def __init__(self, title: str, detail: str = None, *args, **kwargs) -> None:
        super().__init__(title, *args, **kwargs)
        self.title = title
        self.detail = detail

    def __str__(self):
        if self.detail:
            return f"{self.title}: {self.detail}"
        return self.title


class ConfigError(MapReduceException):
    exit_code = 2


class EmptyDatasetError(MapReduceException):
    exit_code = 3


class PackagingError(MapReduceException):
    exit_code = 4


class DeploymentError(MapReduceException):
    exit_code = 5


class PermissionGrantError(MapReduceException):
    """Object store could not be authorized to invoke a function."""
    exit_code = 6


class StorageError(MapReduceException):
    exit_code = 7


class InvocationError(MapReduceException):
    """Transport level failure, or the worker itself reported an error."""
    exit_code = 8


class DecodeError(MapReduceException):
    """Worker response does not match the invocation result format."""
    exit_code = 9


class JobStateError(MapReduceException):
    exit_code = 10
