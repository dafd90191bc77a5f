import concurrent.futures
import typing

import botocore

from mapreduce.common import constants, packager
from mapreduce.common.aws.lambda_handler import LambdaHandler
from mapreduce.common.aws.s3_handler import S3Handler
from mapreduce.common.config import FunctionConfig
from mapreduce.common.constants import FunctionRole
from mapreduce.common.exceptions import DeploymentError, PermissionGrantError
from mapreduce.common.job.job_descriptor import JobDescriptor
from mapreduce.common.logging import Logging

logger = Logging.get_logger(__name__)


def _is_conflict(error: botocore.exceptions.ClientError) -> bool:
    return (error.response.get('Error', {}).get('Code') == "ResourceConflictException" or
            error.response.get('ResponseMetadata', {}).get('HTTPStatusCode') == 409)


class WorkerFunction:
    """
    A Lambda function of the job. arn is set once the function is deployed.
    """
    def __init__(self, role: FunctionRole, name: str, handler: str, code: bytes, memory: int, timeout: int,
                 execution_role: str, runtime: str = constants.DEFAULT_LAMBDA_RUNTIME):
        self.role = role
        self.name = name
        self.handler = handler
        self.code = code
        self.memory = memory
        self.timeout = timeout
        self.execution_role = execution_role
        self.runtime = runtime
        self.arn = None

    @property
    def is_deployed(self) -> bool:
        return self.arn is not None

    @staticmethod
    def function_name(lambda_prefix: str, role: FunctionRole, job_id: str) -> str:
        return f"{lambda_prefix}-{role.value}-{job_id}"


class DeploymentManager:
    """
    Packages and deploys the Lambda functions of a job. Deployment is idempotent: redeploying
    a job id updates the existing functions in place.
    """
    def __init__(self, lambda_handler: LambdaHandler, job_bucket_handler: S3Handler = None):
        self.lambda_handler = lambda_handler
        self.job_bucket_handler = job_bucket_handler

    def package_all(self,
                    function_configs: typing.Dict[FunctionRole, FunctionConfig],
                    job_descriptor: JobDescriptor) -> typing.Dict[FunctionRole, bytes]:
        """
        Packages every function concurrently.

        :return: Archive bytes keyed by function role
        """
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(function_configs)) as executor:
            future_to_role = {executor.submit(packager.package_artifact, cfg.source_paths, job_descriptor): role
                              for role, cfg in function_configs.items()}
            artifacts = {}
            for future in concurrent.futures.as_completed(future_to_role):
                role = future_to_role[future]
                artifacts[role] = future.result()

        for role, cfg in function_configs.items():
            if cfg.zip_path:
                packager.write_artifact(artifacts[role], cfg.zip_path)
        return artifacts

    def create_or_update(self, worker: WorkerFunction) -> WorkerFunction:
        """
        Creates the function, or updates its code and configuration if it already exists.

        :param worker: Function to deploy
        :return: The same function with its ARN set
        """
        try:
            arn = self.lambda_handler.create_function(worker.name, worker.handler, worker.runtime,
                                                      worker.memory, worker.timeout, worker.execution_role,
                                                      worker.code)
            logger.info(f"Created function {worker.name}")
        except botocore.exceptions.ClientError as e:
            if not _is_conflict(e):
                raise DeploymentError("Failed to create function", f"{worker.name}: {e}")
            logger.info(f"Function {worker.name} already exists, updating it")
            arn = self._update(worker)
        except botocore.exceptions.BotoCoreError as e:
            raise DeploymentError("Failed to create function", f"{worker.name}: {e}")

        try:
            self.lambda_handler.wait_until_ready(worker.name)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise DeploymentError("Failed to read function state", f"{worker.name}: {e}")

        worker.arn = arn
        logger.info(f"{worker.role.value} function ARN: {arn}")
        return worker

    def _update(self, worker: WorkerFunction) -> str:
        try:
            self.lambda_handler.update_function_code(worker.name, worker.code)
            self.lambda_handler.wait_until_ready(worker.name)
            return self.lambda_handler.update_function_configuration(worker.name, worker.handler, worker.runtime,
                                                                     worker.memory, worker.timeout,
                                                                     worker.execution_role)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise DeploymentError("Failed to update function", f"{worker.name}: {e}")

    def deploy_all(self, workers: typing.List[WorkerFunction]) -> typing.List[WorkerFunction]:
        """
        Deploys independent functions concurrently and waits for all of them.
        The first deployment error is raised once every pipeline has finished.
        """
        with concurrent.futures.ThreadPoolExecutor(max_workers=len(workers)) as executor:
            futures = [executor.submit(self.create_or_update, worker) for worker in workers]
            concurrent.futures.wait(futures)
        return [future.result() for future in futures]

    def authorize_trigger(self, function_arn: str, source_arn: str, statement_id: str,
                          principal: str = constants.S3_PRINCIPAL):
        """
        Allows a service principal to invoke a function for events of a source resource.
        A statement that already exists counts as granted.
        """
        try:
            self.lambda_handler.add_permission(function_arn, statement_id, principal, source_arn)
            logger.info(f"Granted {principal} permission to invoke {function_arn} from {source_arn}")
        except botocore.exceptions.ClientError as e:
            if not _is_conflict(e):
                raise PermissionGrantError("Failed to add invoke permission", f"{function_arn}: {e}")
            logger.info(f"Statement {statement_id} already exists on {function_arn}")
        except botocore.exceptions.BotoCoreError as e:
            raise PermissionGrantError("Failed to add invoke permission", f"{function_arn}: {e}")

    def configure_trigger_notification(self, function_arn: str, prefix: str, notification_id: str):
        """
        Invokes the function for every object created under prefix in the job bucket.
        """
        try:
            self.job_bucket_handler.put_lambda_notification(function_arn, prefix, notification_id)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise PermissionGrantError("Failed to configure bucket notification",
                                       f"s3://{self.job_bucket_handler.bucket_name}/{prefix}: {e}")
        logger.info(f"Objects under s3://{self.job_bucket_handler.bucket_name}/{prefix} now invoke {function_arn}")

    def delete(self, worker: WorkerFunction) -> bool:
        try:
            self.lambda_handler.delete_function(worker.name)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            logger.warning(f"Failed to delete function {worker.name}: {e}")
            return False
        logger.info(f"Deleted function {worker.name}")
        worker.arn = None
        return True

    def delete_all(self, workers: typing.List[WorkerFunction]):
        """
        Deletes the functions of a job. Failures are logged so every function gets a deletion attempt.
        """
        for worker in workers:
            self.delete(worker)
