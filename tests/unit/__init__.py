import os
import unittest

import boto3
from moto import mock_aws

os.environ['AWS_DEFAULT_REGION'] = "us-east-1"
os.environ['AWS_ACCESS_KEY_ID'] = "test_ak"
os.environ['AWS_SECRET_ACCESS_KEY'] = "test_sk"
os.environ['LOG_LEVEL'] = "WARNING"
os.environ['TEST_SOURCE_BUCKET'] = "test-source-bucket"
os.environ['TEST_JOB_BUCKET'] = "test-job-bucket"
os.environ['serverless_mapreduce_role'] = "arn:aws:iam::123456789012:role/test_mapreduce_role"

TEST_DRIVER_CONFIG = {
    'bucket': os.environ['TEST_SOURCE_BUCKET'],
    'prefix': "input/",
    'jobBucket': os.environ['TEST_JOB_BUCKET'],
    'region': "us-east-1",
    'lambdaMemory': 1536,
    'concurrentLambdas': 4,
    'mapper': {'name': "mapper.py", 'handler': "mapper.lambda_handler", 'zip': "mapper.zip"},
    'reducer': {'name': "reducer.py", 'handler': "reducer.lambda_handler", 'zip': "reducer.zip"},
    'reducerCoordinator': {'name': "reducerCoordinator.py", 'handler': "reducerCoordinator.lambda_handler",
                           'zip': "reducerCoordinator.zip"},
}


class MapReduceTestCaseUsingMockAWS(unittest.TestCase):

    def setUp(self):
        self.aws_mock = mock_aws()
        self.aws_mock.start()

    def tearDown(self):
        self.aws_mock.stop()

    @staticmethod
    def create_s3_source_bucket():
        boto3.resource("s3", region_name=os.environ['AWS_DEFAULT_REGION']) \
             .create_bucket(Bucket=os.environ['TEST_SOURCE_BUCKET'])

    @staticmethod
    def create_s3_job_bucket():
        boto3.resource("s3", region_name=os.environ['AWS_DEFAULT_REGION']) \
             .create_bucket(Bucket=os.environ['TEST_JOB_BUCKET'])

    @staticmethod
    def put_source_objects(keys_to_sizes: dict):
        bucket = boto3.resource("s3", region_name=os.environ['AWS_DEFAULT_REGION']) \
                      .Bucket(os.environ['TEST_SOURCE_BUCKET'])
        for key, size in keys_to_sizes.items():
            bucket.put_object(Key=key, Body=b"x" * size)
