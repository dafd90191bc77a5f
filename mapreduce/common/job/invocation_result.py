"""
Outcome of a single mapper invocation and the decoding of mapper responses.

Mappers answer with a tagged object:
    {"version": 1, "status": "success", "s3ReadOperations": 3, "linesProcessed": 1000, "elapsedSeconds": 2.5}
    {"version": 1, "status": "failure", "error": "..."}
The positional form ["3", "1000", "2.5"] written by older mappers is still accepted.
"""
import json
import typing

from mapreduce.common import constants
from mapreduce.common.exceptions import DecodeError, InvocationError, MapReduceException


class InvocationResult:

    def __init__(self, mapper_id: int, s3_read_operations: int = 0, lines_processed: int = 0,
                 elapsed_seconds: float = 0.0, error: MapReduceException = None):
        self.mapper_id = mapper_id
        self.s3_read_operations = s3_read_operations
        self.lines_processed = lines_processed
        self.elapsed_seconds = elapsed_seconds
        self.error = error

    @property
    def is_success(self) -> bool:
        return self.error is None

    @staticmethod
    def failure(mapper_id: int, error: MapReduceException) -> "InvocationResult":
        return InvocationResult(mapper_id, error=error)

    @staticmethod
    def from_payload(mapper_id: int, payload: bytes, function_error: str = None) -> "InvocationResult":
        """
        Decodes the response of a mapper invocation.

        :param mapper_id: Index of the batch the mapper processed
        :param payload: Raw response payload
        :param function_error: FunctionError marker returned by Lambda when the mapper raised
        """
        if function_error:
            raise InvocationError("Mapper execution failed",
                                  f"mapper {mapper_id} ({function_error}): {_error_message(payload)}")

        try:
            body = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise DecodeError("Mapper response is not JSON", f"mapper {mapper_id}: {e}")

        if isinstance(body, dict):
            return InvocationResult._from_tagged(mapper_id, body)
        if isinstance(body, list):
            return InvocationResult._from_positional(mapper_id, body)
        raise DecodeError("Unexpected mapper response", f"mapper {mapper_id}: {body!r}")

    @staticmethod
    def _from_tagged(mapper_id: int, body: dict) -> "InvocationResult":
        if body.get('version') != constants.INVOCATION_RESULT_VERSION:
            raise DecodeError("Unsupported mapper response version", f"mapper {mapper_id}: {body.get('version')!r}")

        status = body.get('status')
        if status == "failure":
            raise InvocationError("Mapper reported a failure", f"mapper {mapper_id}: {body.get('error')}")
        if status != "success":
            raise DecodeError("Unknown mapper response status", f"mapper {mapper_id}: {status!r}")

        try:
            return InvocationResult(mapper_id,
                                    s3_read_operations=_to_int(body['s3ReadOperations']),
                                    lines_processed=_to_int(body['linesProcessed']),
                                    elapsed_seconds=_to_float(body['elapsedSeconds']))
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError("Malformed mapper response", f"mapper {mapper_id}: {e!r}")

    @staticmethod
    def _from_positional(mapper_id: int, body: list) -> "InvocationResult":
        if len(body) != 3:
            raise DecodeError("Malformed mapper response",
                              f"mapper {mapper_id}: expected 3 fields, got {len(body)}")
        try:
            s3_ops, lines, seconds = body
            return InvocationResult(mapper_id,
                                    s3_read_operations=_to_int(s3_ops),
                                    lines_processed=_to_int(lines),
                                    elapsed_seconds=_to_float(seconds))
        except (TypeError, ValueError) as e:
            raise DecodeError("Malformed mapper response", f"mapper {mapper_id}: {e}")

    def __repr__(self):
        if self.error:
            return f"InvocationResult(mapper_id={self.mapper_id}, error={self.error})"
        return (f"InvocationResult(mapper_id={self.mapper_id}, s3_read_operations={self.s3_read_operations}, "
                f"lines_processed={self.lines_processed}, elapsed_seconds={self.elapsed_seconds})")


def _to_int(value: typing.Union[str, int]) -> int:
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"not an integer: {value!r}")
    return int(value)


def _to_float(value: typing.Union[str, int, float]) -> float:
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    return float(value)


def _error_message(payload: bytes) -> str:
    """errorMessage of a Lambda error payload, or the raw payload when it is not a JSON object."""
    try:
        body = json.loads(payload)
    except (TypeError, ValueError):
        return payload.decode(errors='replace') if isinstance(payload, bytes) else repr(payload)
    if isinstance(body, dict) and body.get('errorMessage'):
        return body['errorMessage']
    return repr(body)
