import io
import json
import unittest
from unittest import mock

from botocore.response import StreamingBody
from botocore.stub import Stubber

from mapreduce.common.aws.lambda_handler import LambdaHandler
from mapreduce.common.exceptions import DeploymentError

TEST_ROLE = "arn:aws:iam::123456789012:role/test_mapreduce_role"
TEST_FUNCTION_ARN = "arn:aws:lambda:us-east-1:123456789012:function:BL-mapper-job"


class TestLambdaHandler(unittest.TestCase):
    """
    Environment variables are set in tests/unit/__init__.py
    """
    def setUp(self):
        self.handler = LambdaHandler()
        self.mock_lambda_client = Stubber(self.handler._client)

    def test_client_config(self):
        handler = LambdaHandler(region_name="us-east-1", function_timeout=900, max_pool_connections=50)

        config = handler._client.meta.config
        self.assertGreaterEqual(config.read_timeout, 900)
        self.assertEqual(config.max_pool_connections, 50)

    @mock.patch("boto3.client")
    def test_client_retries_disabled(self, mock_client):
        LambdaHandler(region_name="us-east-1")

        config = mock_client.call_args[1]['config']
        self.assertEqual(config.retries, {'max_attempts': 0})
        self.assertGreaterEqual(config.read_timeout, 300)

    def test_create_function(self):
        expected_params = {'FunctionName': "BL-mapper-job",
                           'Runtime': "python3.12",
                           'Role': TEST_ROLE,
                           'Handler': "mapper.lambda_handler",
                           'Code': {'ZipFile': b"code"},
                           'Timeout': 300,
                           'MemorySize': 1536,
                           'Publish': False}
        self.mock_lambda_client.add_response('create_function', {'FunctionArn': TEST_FUNCTION_ARN}, expected_params)
        self.mock_lambda_client.activate()

        arn = self.handler.create_function("BL-mapper-job", "mapper.lambda_handler", "python3.12", 1536, 300,
                                           TEST_ROLE, b"code")

        self.assertEqual(arn, TEST_FUNCTION_ARN)
        self.mock_lambda_client.assert_no_pending_responses()

    def test_update_function_code(self):
        expected_params = {'FunctionName': "BL-mapper-job", 'ZipFile': b"code"}
        self.mock_lambda_client.add_response('update_function_code', {'FunctionArn': TEST_FUNCTION_ARN},
                                             expected_params)
        self.mock_lambda_client.activate()

        self.assertEqual(self.handler.update_function_code("BL-mapper-job", b"code"), TEST_FUNCTION_ARN)

    def test_update_function_configuration(self):
        expected_params = {'FunctionName': "BL-mapper-job",
                           'Runtime': "python3.12",
                           'Role': TEST_ROLE,
                           'Handler': "mapper.lambda_handler",
                           'Timeout': 300,
                           'MemorySize': 1536}
        self.mock_lambda_client.add_response('update_function_configuration', {'FunctionArn': TEST_FUNCTION_ARN},
                                             expected_params)
        self.mock_lambda_client.activate()

        arn = self.handler.update_function_configuration("BL-mapper-job", "mapper.lambda_handler", "python3.12",
                                                         1536, 300, TEST_ROLE)

        self.assertEqual(arn, TEST_FUNCTION_ARN)

    def test_wait_until_ready(self):
        self.mock_lambda_client.add_response('get_function_configuration',
                                             {'State': "Active", 'LastUpdateStatus': "Successful"},
                                             {'FunctionName': "BL-mapper-job"})
        self.mock_lambda_client.activate()

        self.handler.wait_until_ready("BL-mapper-job")

        self.mock_lambda_client.assert_no_pending_responses()

    @mock.patch("time.sleep")
    def test_wait_until_ready_polls_while_settling(self, mock_sleep):
        self.mock_lambda_client.add_response('get_function_configuration', {'State': "Pending"})
        self.mock_lambda_client.add_response('get_function_configuration',
                                             {'State': "Active", 'LastUpdateStatus': "InProgress"})
        self.mock_lambda_client.add_response('get_function_configuration',
                                             {'State': "Active", 'LastUpdateStatus': "Successful"})
        self.mock_lambda_client.activate()

        self.handler.wait_until_ready("BL-mapper-job")

        self.mock_lambda_client.assert_no_pending_responses()
        self.assertEqual(mock_sleep.call_count, 2)

    def test_wait_until_ready_failed_function(self):
        self.mock_lambda_client.add_response('get_function_configuration',
                                             {'State': "Failed", 'LastUpdateStatus': "Failed"})
        self.mock_lambda_client.activate()

        with self.assertRaises(DeploymentError):
            self.handler.wait_until_ready("BL-mapper-job")

    def test_invoke(self):
        payload = {'bucket': "source", 'keys': ["a"], 'jobBucket': "job", 'jobId': "job", 'mapperId': 0}
        response_payload = b'["1", "10", "0.5"]'
        expected_params = {'FunctionName': TEST_FUNCTION_ARN,
                           'InvocationType': "RequestResponse",
                           'Payload': json.dumps(payload).encode()}
        response = {'StatusCode': 200,
                    'Payload': StreamingBody(io.BytesIO(response_payload), len(response_payload))}
        self.mock_lambda_client.add_response('invoke', response, expected_params)
        self.mock_lambda_client.activate()

        body, function_error = self.handler.invoke(TEST_FUNCTION_ARN, payload)

        self.assertEqual(body, response_payload)
        self.assertIsNone(function_error)

    def test_invoke_function_error(self):
        response_payload = b'{"errorMessage": "boom"}'
        response = {'StatusCode': 200,
                    'FunctionError': "Unhandled",
                    'Payload': StreamingBody(io.BytesIO(response_payload), len(response_payload))}
        self.mock_lambda_client.add_response('invoke', response)
        self.mock_lambda_client.activate()

        body, function_error = self.handler.invoke(TEST_FUNCTION_ARN, {})

        self.assertEqual(body, response_payload)
        self.assertEqual(function_error, "Unhandled")

    def test_add_permission(self):
        expected_params = {'FunctionName': TEST_FUNCTION_ARN,
                           'StatementId': "job-s3-invoke",
                           'Action': "lambda:InvokeFunction",
                           'Principal': "s3.amazonaws.com",
                           'SourceArn': "arn:aws:s3:::test-job-bucket"}
        self.mock_lambda_client.add_response('add_permission', {'Statement': "{}"}, expected_params)
        self.mock_lambda_client.activate()

        self.handler.add_permission(TEST_FUNCTION_ARN, "job-s3-invoke", "s3.amazonaws.com",
                                    "arn:aws:s3:::test-job-bucket")

        self.mock_lambda_client.assert_no_pending_responses()

    def test_delete_function(self):
        self.mock_lambda_client.add_response('delete_function', {}, {'FunctionName': "BL-mapper-job"})
        self.mock_lambda_client.activate()

        self.handler.delete_function("BL-mapper-job")

        self.mock_lambda_client.assert_no_pending_responses()
