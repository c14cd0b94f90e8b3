"""Optional encryption capability for persisted API keys."""

import asyncio
import base64
from abc import ABC, abstractmethod


class Encryptor(ABC):
    """Encrypts and decrypts individual secrets within a named scope."""

    @abstractmethod
    async def encrypt(self, plaintext: str, scope: str) -> str:
        ...

    @abstractmethod
    async def decrypt(self, ciphertext: str, scope: str) -> str:
        ...


class KMSEncryptor(Encryptor):
    """AWS KMS encryption. Scope is bound as encryption context."""

    def __init__(self, key_id: str, region: str = "us-east-1"):
        self._key_id = key_id
        self._region = region
        self._client = None

    def _get_client(self):
        """Lazy-init boto3 KMS client."""
        if self._client is None:
            import boto3

            self._client = boto3.client("kms", region_name=self._region)
        return self._client

    def _encrypt(self, plaintext: str, scope: str) -> str:
        resp = self._get_client().encrypt(
            KeyId=self._key_id,
            Plaintext=plaintext.encode("utf-8"),
            EncryptionContext={"scope": scope},
        )
        return base64.b64encode(resp["CiphertextBlob"]).decode("ascii")

    def _decrypt(self, ciphertext: str, scope: str) -> str:
        resp = self._get_client().decrypt(
            CiphertextBlob=base64.b64decode(ciphertext, validate=True),
            EncryptionContext={"scope": scope},
        )
        return resp["Plaintext"].decode("utf-8")

    async def encrypt(self, plaintext: str, scope: str) -> str:
        return await asyncio.to_thread(self._encrypt, plaintext, scope)

    async def decrypt(self, ciphertext: str, scope: str) -> str:
        return await asyncio.to_thread(self._decrypt, ciphertext, scope)
