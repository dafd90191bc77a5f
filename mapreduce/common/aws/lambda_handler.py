import json
import typing

import boto3
from botocore.config import Config
from tenacity import retry, retry_if_result, stop_after_attempt, wait_fixed

from mapreduce.common import constants
from mapreduce.common.exceptions import DeploymentError


def _is_settling(status: typing.Tuple[str, str]) -> bool:
    state, last_update_status = status
    return state == "Pending" or last_update_status == "InProgress"


def _last_status(retry_state):
    return retry_state.outcome.result()


class LambdaHandler:
    """
    Thin wrapper over the Lambda API. botocore errors are left to the caller.

    Invocations are synchronous, so read_timeout must outlast the invoked function's timeout.
    SDK retries are disabled: a retried invoke would run a mapper twice on the same batch.
    """
    def __init__(self, region_name: str = None,
                 function_timeout: int = constants.DEFAULT_LAMBDA_TIMEOUT,
                 max_pool_connections: int = constants.DEFAULT_MAX_POOL_CONNECTIONS):
        config = Config(read_timeout=function_timeout + constants.INVOKE_READ_TIMEOUT_MARGIN,
                        retries={'max_attempts': 0},
                        max_pool_connections=max_pool_connections)
        self._client = boto3.client("lambda", region_name=region_name, config=config)

    def create_function(self, name: str, handler: str, runtime: str, memory: int, timeout: int,
                        role: str, code: bytes) -> str:
        """
        Creates a Lambda function from a zip archive.

        :return: ARN of the new function
        """
        response = self._client.create_function(
            FunctionName=name,
            Runtime=runtime,
            Role=role,
            Handler=handler,
            Code={'ZipFile': code},
            Timeout=timeout,
            MemorySize=memory,
            Publish=False,
        )
        return response['FunctionArn']

    def update_function_code(self, name: str, code: bytes) -> str:
        response = self._client.update_function_code(FunctionName=name, ZipFile=code)
        return response['FunctionArn']

    def update_function_configuration(self, name: str, handler: str, runtime: str, memory: int,
                                      timeout: int, role: str) -> str:
        response = self._client.update_function_configuration(
            FunctionName=name,
            Runtime=runtime,
            Role=role,
            Handler=handler,
            Timeout=timeout,
            MemorySize=memory,
        )
        return response['FunctionArn']

    @retry(retry=retry_if_result(_is_settling), retry_error_callback=_last_status,
           wait=wait_fixed(2), stop=stop_after_attempt(30))
    def _function_status(self, name: str) -> typing.Tuple[str, str]:
        response = self._client.get_function_configuration(FunctionName=name)
        return response.get('State', "Active"), response.get('LastUpdateStatus', "Successful")

    def wait_until_ready(self, name: str):
        """
        Blocks until a function is active and its last code or configuration update has settled.
        Lambda rejects invocations of pending functions and updates while another is in progress.
        """
        state, last_update_status = self._function_status(name)
        if state != "Active" or last_update_status != "Successful":
            raise DeploymentError("Function is not ready",
                                  f"{name} state is {state}, last update {last_update_status}")

    def invoke(self, name: str, payload: dict) -> typing.Tuple[bytes, typing.Optional[str]]:
        """
        Invokes a Lambda function synchronously and waits for its execution to finish.

        :param name: Function name or ARN
        :param payload: Data passed to the invoked function
        :return: Raw response payload and the FunctionError marker, None if the function succeeded
        """
        response = self._client.invoke(
            FunctionName=name,
            InvocationType="RequestResponse",
            Payload=json.dumps(payload).encode(),
        )
        return response['Payload'].read(), response.get('FunctionError')

    def add_permission(self, name: str, statement_id: str, principal: str, source_arn: str):
        self._client.add_permission(
            FunctionName=name,
            StatementId=statement_id,
            Action="lambda:InvokeFunction",
            Principal=principal,
            SourceArn=source_arn,
        )

    def delete_function(self, name: str):
        self._client.delete_function(FunctionName=name)
