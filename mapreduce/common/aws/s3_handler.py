import typing

import boto3
import botocore

from mapreduce.common.exceptions import StorageError
from mapreduce.common.partitioner import StoredObject


class S3Handler:
    """
    Interface for interacting with an S3 Bucket.
    """

    def __init__(self, bucket: str, region_name: str = None):
        self.s3 = boto3.resource('s3', region_name=region_name)
        self.s3_client = boto3.client('s3', region_name=region_name)
        self.s3_bucket = self.s3.Bucket(bucket)

    @property
    def bucket_name(self) -> str:
        return self.s3_bucket.name

    @property
    def bucket_arn(self) -> str:
        return f"arn:aws:s3:::{self.s3_bucket.name}"

    def store_content_in_s3(self, obj_key: str, content: typing.Union[str, bytes]):
        s3_obj = self._s3_object(obj_key)
        try:
            s3_obj.put(Body=content)
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise StorageError("Failed to write object", f"s3://{self.bucket_name}/{obj_key}: {e}")
        return s3_obj.key

    def _s3_object(self, obj_key: str):
        return self.s3_bucket.Object(obj_key)

    def ls(self, key, max_keys: int = 1000) -> typing.List[dict]:
        """
        Lists every object under a prefix, following continuation tokens.

        :param key: Key prefix to list
        :param max_keys: Page size of each ListObjectsV2 request
        """
        paginator = self.s3_client.get_paginator('list_objects_v2')
        contents = []
        for page in paginator.paginate(Bucket=self.bucket_name, Prefix=key,
                                       PaginationConfig={'PageSize': max_keys}):
            contents.extend(page.get('Contents', []))
        return contents

    def list_objects(self, prefix: str, max_keys: int = 1000) -> typing.List[StoredObject]:
        try:
            return [StoredObject.from_s3_listing(entry) for entry in self.ls(prefix, max_keys)]
        except (botocore.exceptions.BotoCoreError, botocore.exceptions.ClientError) as e:
            raise StorageError("Failed to list objects", f"s3://{self.bucket_name}/{prefix}: {e}")

    def put_lambda_notification(self, function_arn: str, prefix: str, notification_id: str):
        """
        Configures the bucket to invoke a Lambda function on objects created under a prefix.
        Other notifications of the bucket are kept. One with the same id is replaced.
        """
        configuration = self.s3_client.get_bucket_notification_configuration(Bucket=self.bucket_name)
        configuration.pop('ResponseMetadata', None)
        lambda_configurations = [entry for entry in configuration.get('LambdaFunctionConfigurations', [])
                                 if entry.get('Id') != notification_id]
        lambda_configurations.append({
            'Id': notification_id,
            'LambdaFunctionArn': function_arn,
            'Events': ['s3:ObjectCreated:*'],
            'Filter': {
                'Key': {
                    'FilterRules': [{'Name': 'prefix', 'Value': prefix}]
                }
            }
        })
        configuration['LambdaFunctionConfigurations'] = lambda_configurations
        self.s3_client.put_bucket_notification_configuration(Bucket=self.bucket_name,
                                                             NotificationConfiguration=configuration)
