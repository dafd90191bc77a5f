import os
import uuid
from unittest import mock

import boto3
from botocore.exceptions import EndpointConnectionError

from mapreduce.common.aws.s3_handler import S3Handler
from mapreduce.common.exceptions import StorageError
from mapreduce.common.partitioner import StoredObject
from tests.unit import MapReduceTestCaseUsingMockAWS


class TestS3Handler(MapReduceTestCaseUsingMockAWS):

    def setUp(self):
        super(TestS3Handler, self).setUp()
        self.create_s3_source_bucket()
        self.s3_handler = S3Handler(os.environ['TEST_SOURCE_BUCKET'])
        self.job_id = str(uuid.uuid4())

    def test_store_content_in_s3(self):
        obj_key = f"{self.job_id}/jobdata"
        test_content = "test_content"

        s3_key = self.s3_handler.store_content_in_s3(obj_key, test_content)

        obj = self.s3_handler.s3_bucket.Object(obj_key)
        content = obj.get()['Body'].read()
        self.assertEqual(content, b'test_content')
        self.assertEqual(s3_key, f"{self.job_id}/jobdata")

    def test_store_content_in_missing_bucket(self):
        s3_handler = S3Handler("missing-bucket")

        with self.assertRaises(StorageError):
            s3_handler.store_content_in_s3("key", "content")

    def test_ls(self):
        obj_key = "test_key"

        self.assertFalse(self.s3_handler.ls(obj_key))

        self.s3_handler.store_content_in_s3(obj_key, "test_content")
        results = self.s3_handler.ls(obj_key)
        self.assertEqual(len(results), 1)

    def test_ls_follows_pages(self):
        keys = [f"input/part-{i:03d}" for i in range(7)]
        for key in keys:
            self.s3_handler.store_content_in_s3(key, "x")

        results = self.s3_handler.ls("input/", max_keys=2)

        self.assertEqual([obj['Key'] for obj in results], keys)

    def test_list_objects(self):
        self.put_source_objects({"input/a": 10, "input/b": 20, "other/c": 30})

        objects = self.s3_handler.list_objects("input/")

        self.assertEqual(objects, [StoredObject("input/a", 10), StoredObject("input/b", 20)])

    def test_list_objects_missing_bucket(self):
        s3_handler = S3Handler("missing-bucket")

        with self.assertRaises(StorageError):
            s3_handler.list_objects("input/")

    def test_bucket_arn(self):
        self.assertEqual(self.s3_handler.bucket_arn, f"arn:aws:s3:::{os.environ['TEST_SOURCE_BUCKET']}")

    def test_put_lambda_notification(self):
        function_arn = "arn:aws:lambda:us-east-1:123456789012:function:BL-reducerCoordinator-job"

        self.s3_handler.put_lambda_notification(function_arn, "job/task/mapper/", "job-s3-invoke")

        configuration = boto3.client("s3").get_bucket_notification_configuration(
            Bucket=os.environ['TEST_SOURCE_BUCKET'])
        lambda_configurations = configuration['LambdaFunctionConfigurations']
        self.assertEqual(len(lambda_configurations), 1)
        self.assertEqual(lambda_configurations[0]['LambdaFunctionArn'], function_arn)
        self.assertEqual(lambda_configurations[0]['Id'], "job-s3-invoke")
        filter_rule = lambda_configurations[0]['Filter']['Key']['FilterRules'][0]
        self.assertEqual(filter_rule['Name'].lower(), "prefix")
        self.assertEqual(filter_rule['Value'], "job/task/mapper/")

    def test_put_lambda_notification_keeps_other_jobs(self):
        first_arn = "arn:aws:lambda:us-east-1:123456789012:function:BL-reducerCoordinator-jobA"
        second_arn = "arn:aws:lambda:us-east-1:123456789012:function:BL-reducerCoordinator-jobB"

        self.s3_handler.put_lambda_notification(first_arn, "jobA/task/mapper/", "jobA-s3-invoke")
        self.s3_handler.put_lambda_notification(second_arn, "jobB/task/mapper/", "jobB-s3-invoke")
        self.s3_handler.put_lambda_notification(first_arn, "jobA/task/mapper/", "jobA-s3-invoke")

        configuration = boto3.client("s3").get_bucket_notification_configuration(
            Bucket=os.environ['TEST_SOURCE_BUCKET'])
        arns_by_id = {entry['Id']: entry['LambdaFunctionArn']
                      for entry in configuration['LambdaFunctionConfigurations']}
        self.assertEqual(arns_by_id, {"jobA-s3-invoke": first_arn, "jobB-s3-invoke": second_arn})
        self.assertEqual(len(configuration['LambdaFunctionConfigurations']), 2)

    def test_store_content_connection_error(self):
        with mock.patch.object(self.s3_handler.s3_bucket, "Object") as mock_object:
            mock_object.return_value.put.side_effect = EndpointConnectionError(endpoint_url="https://s3.amazonaws.com")

            with self.assertRaises(StorageError):
                self.s3_handler.store_content_in_s3("key", "content")
