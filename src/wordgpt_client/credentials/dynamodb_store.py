"""DynamoDB-backed secret store."""

import asyncio

from wordgpt_client.credentials.store import SecretStore


class DynamoDBSecretStore(SecretStore):
    """Stores blobs in a DynamoDB table keyed on ``record_key``."""

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    def _get_item(self, key: str) -> str | None:
        resp = self._get_table().get_item(Key={"record_key": key})
        item = resp.get("Item")
        if not item:
            return None
        return item.get("blob")

    def _put_item(self, key: str, blob: str) -> None:
        self._get_table().put_item(Item={"record_key": key, "blob": blob})

    async def read(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_item, key)

    async def write(self, key: str, blob: str) -> None:
        await asyncio.to_thread(self._put_item, key, blob)
