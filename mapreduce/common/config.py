import json
import os
import typing

from mapreduce.common import constants
from mapreduce.common.exceptions import ConfigError


class FunctionConfig:
    """
    Source description of one Lambda function of the job.

    :param name: Path of the handler source file bundled into the artifact
    :param handler: Lambda entry point, e.g. "mapper.lambda_handler"
    :param zip_path: Optional path the packaged artifact is also written to
    :param extra_files: Shared utility modules bundled next to the handler source
    """
    def __init__(self, name: str, handler: str, zip_path: str = None, extra_files: typing.List[str] = None):
        self.name = name
        self.handler = handler
        self.zip_path = zip_path
        self.extra_files = list(extra_files or [])

    @property
    def source_paths(self) -> typing.List[str]:
        return [self.name] + self.extra_files

    @staticmethod
    def from_dict(field: str, data: typing.Any) -> "FunctionConfig":
        if not isinstance(data, dict):
            raise ConfigError("Invalid function descriptor", f"'{field}' must be an object")
        for key in ("name", "handler"):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ConfigError("Invalid function descriptor", f"'{field}.{key}' must be a non-empty string")
        extra_files = data.get("extraFiles", [])
        if not isinstance(extra_files, list) or not all(isinstance(f, str) for f in extra_files):
            raise ConfigError("Invalid function descriptor", f"'{field}.extraFiles' must be a list of paths")
        return FunctionConfig(data["name"], data["handler"], data.get("zip"), extra_files)


class DriverConfig:
    """
    Driver settings read from the job's configuration file.
    """
    REQUIRED_FIELDS = ["bucket", "jobBucket", "region", "lambdaMemory", "concurrentLambdas",
                       "mapper", "reducer", "reducerCoordinator"]

    def __init__(self, config: dict):
        missing = [field for field in DriverConfig.REQUIRED_FIELDS if field not in config]
        if missing:
            raise ConfigError("Missing configuration fields", ", ".join(missing))

        self.bucket = DriverConfig._string(config, "bucket")
        self.job_bucket = DriverConfig._string(config, "jobBucket")
        self.region = DriverConfig._string(config, "region")
        self.prefix = config.get("prefix", "")
        self.lambda_memory = DriverConfig._positive_int(config, "lambdaMemory")
        self.concurrent_lambdas = DriverConfig._positive_int(config, "concurrentLambdas")
        self.lambda_timeout = DriverConfig._positive_int(config, "lambdaTimeout", constants.DEFAULT_LAMBDA_TIMEOUT)
        self.max_keys = DriverConfig._positive_int(config, "maxKeys", constants.DEFAULT_MAX_KEYS)
        self.lambda_runtime = config.get("lambdaRuntime", constants.DEFAULT_LAMBDA_RUNTIME)
        self.lambda_prefix = config.get("lambdaPrefix", constants.DEFAULT_LAMBDA_PREFIX)
        self.cleanup_on_failure = bool(config.get("cleanupOnFailure", True))

        self.role = config.get("role") or os.getenv(constants.ROLE_ENV_VAR)
        if not self.role:
            raise ConfigError("Missing execution role",
                              f"set 'role' in the configuration or the {constants.ROLE_ENV_VAR} variable")

        self.functions = {
            constants.FunctionRole.MAPPER: FunctionConfig.from_dict("mapper", config["mapper"]),
            constants.FunctionRole.REDUCER: FunctionConfig.from_dict("reducer", config["reducer"]),
            constants.FunctionRole.REDUCER_COORDINATOR: FunctionConfig.from_dict("reducerCoordinator",
                                                                                 config["reducerCoordinator"]),
        }

    @property
    def mapper(self) -> FunctionConfig:
        return self.functions[constants.FunctionRole.MAPPER]

    @property
    def reducer(self) -> FunctionConfig:
        return self.functions[constants.FunctionRole.REDUCER]

    @property
    def reducer_coordinator(self) -> FunctionConfig:
        return self.functions[constants.FunctionRole.REDUCER_COORDINATOR]

    @staticmethod
    def from_file(path: str = constants.DRIVER_CONFIG_FILENAME) -> "DriverConfig":
        try:
            with open(path) as fh:
                config = json.load(fh)
        except OSError as e:
            raise ConfigError("Unable to read configuration file", f"{path}: {e}")
        except json.JSONDecodeError as e:
            raise ConfigError("Configuration file is not valid JSON", f"{path}: {e}")

        if not isinstance(config, dict):
            raise ConfigError("Configuration file must contain a JSON object", path)
        return DriverConfig(config)

    @staticmethod
    def _string(config: dict, field: str) -> str:
        value = config[field]
        if not isinstance(value, str) or not value:
            raise ConfigError("Invalid configuration field", f"'{field}' must be a non-empty string")
        return value

    @staticmethod
    def _positive_int(config: dict, field: str, default: int = None) -> int:
        value = config.get(field, default)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError("Invalid configuration field", f"'{field}' must be a positive integer")
        return value
