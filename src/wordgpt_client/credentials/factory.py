"""Factories for the secret store and encryption backends."""

from wordgpt_client.config.settings import get_settings
from wordgpt_client.credentials.encryption import Encryptor, KMSEncryptor
from wordgpt_client.credentials.store import JSONFileSecretStore, MemorySecretStore, SecretStore

_store: SecretStore | None = None


def get_secret_store() -> SecretStore:
    """Get the secret store singleton for the configured backend."""
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    backend = settings.secret_store_backend

    if backend == "json":
        _store = JSONFileSecretStore(settings.secret_store_path)
    elif backend == "dynamodb":
        # Lazy import to avoid boto3 dependency when not needed
        from wordgpt_client.credentials.dynamodb_store import DynamoDBSecretStore
        _store = DynamoDBSecretStore(
            table_name=settings.dynamodb_table_name,
            region=settings.aws_region,
        )
    elif backend == "memory":
        _store = MemorySecretStore()
    else:
        raise ValueError(f"Unknown secret store backend: {backend}")

    return _store


def get_encryptor() -> Encryptor | None:
    """KMS encryptor when a key id is configured, else None (plaintext keys)."""
    settings = get_settings()
    if not settings.kms_key_id:
        return None

    return KMSEncryptor(key_id=settings.kms_key_id, region=settings.aws_region)
