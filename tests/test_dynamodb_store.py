"""Tests for wordgpt_client/credentials/dynamodb_store.py — DynamoDB secret store."""

from unittest.mock import MagicMock

import pytest

from wordgpt_client.credentials.dynamodb_store import DynamoDBSecretStore


@pytest.fixture
def mock_table():
    """Mock boto3 DynamoDB Table."""
    return MagicMock()


@pytest.fixture
def store(mock_table):
    """DynamoDBSecretStore with pre-injected mock table."""
    s = DynamoDBSecretStore(table_name="test-table", region="us-east-1")
    s._table = mock_table
    return s


class TestRead:

    async def test_found(self, store, mock_table):
        mock_table.get_item.return_value = {"Item": {"record_key": "cfg", "blob": '{"keys": {}}'}}

        assert await store.read("cfg") == '{"keys": {}}'
        mock_table.get_item.assert_called_once_with(Key={"record_key": "cfg"})

    async def test_missing_item(self, store, mock_table):
        mock_table.get_item.return_value = {}
        assert await store.read("cfg") is None


class TestWrite:

    async def test_put_item(self, store, mock_table):
        await store.write("cfg", "blob")
        mock_table.put_item.assert_called_once_with(Item={"record_key": "cfg", "blob": "blob"})


class TestLazyInit:

    def test_table_created_once(self, monkeypatch):
        import boto3

        resource = MagicMock()
        monkeypatch.setattr(boto3, "resource", MagicMock(return_value=resource))

        s = DynamoDBSecretStore(table_name="t", region="eu-west-1")
        s._get_table()
        s._get_table()

        boto3.resource.assert_called_once_with("dynamodb", region_name="eu-west-1")
        resource.Table.assert_called_once_with("t")
