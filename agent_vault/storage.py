"""
Blob stores for serialized secure blocks.

The envelope code never talks to storage itself; callers pick a store at
construction time (MemoryBlobStore in tests, IPFS or Azure otherwise).
"""
import hashlib
import importlib
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from . import config
from .codec import SecureBlock, parse, serialize
from .errors import StorageError

logger = logging.getLogger(__name__)

IPFS_SCHEME = "ipfs://"
MEMORY_SCHEME = "memory://"


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class BlobStore(ABC):
    @abstractmethod
    def upload(self, data: bytes, name: Optional[str] = None) -> str:
        """Store ``data`` and return a URI it can be fetched from."""

    @abstractmethod
    def fetch(self, uri: str) -> bytes:
        ...


class MemoryBlobStore(BlobStore):
    """Content-addressed in-process store."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def upload(self, data: bytes, name: Optional[str] = None) -> str:
        uri = MEMORY_SCHEME + sha256_hex(data)
        self._blobs[uri] = bytes(data)
        return uri

    def fetch(self, uri: str) -> bytes:
        try:
            return self._blobs[uri]
        except KeyError:
            raise StorageError(f"No blob stored at {uri}") from None

    def __len__(self) -> int:
        return len(self._blobs)


class IpfsBlobStore(BlobStore):
    """IPFS node HTTP API (``/api/v0/add`` and ``/api/v0/cat``)."""

    def __init__(
        self,
        api_url: str = config.IPFS_API_URL,
        gateway_url: str = config.IPFS_GATEWAY_URL,
        timeout: float = config.STORAGE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def upload(self, data: bytes, name: Optional[str] = None) -> str:
        files = {"file": (name or "secure_block.json", data, "application/json")}
        try:
            resp = self.session.post(f"{self.api_url}/add", files=files, timeout=self.timeout)
            resp.raise_for_status()
            # The API streams one JSON object per line; the last one is the root
            last_line = resp.text.strip().split("\n")[-1]
            cid = json.loads(last_line).get("Hash")
        except (requests.RequestException, ValueError) as exc:
            raise StorageError(f"IPFS upload failed: {exc}") from exc
        if not isinstance(cid, str) or not cid:
            raise StorageError("IPFS upload returned no CID")
        logger.info(f"✅ Uploaded to IPFS: {cid}")
        return IPFS_SCHEME + cid

    def fetch(self, uri: str) -> bytes:
        try:
            if uri.startswith(IPFS_SCHEME):
                cid = uri[len(IPFS_SCHEME):]
                resp = self.session.post(f"{self.api_url}/cat", params={"arg": cid}, timeout=self.timeout)
            elif uri.startswith("https://") or uri.startswith("http://"):
                resp = self.session.get(uri, timeout=self.timeout)
            else:
                raise StorageError(f"Unsupported storage URI: {uri}")
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise StorageError(f"IPFS fetch failed for {uri}: {exc}") from exc
        return resp.content

    def gateway_link(self, uri: str) -> str:
        if not uri.startswith(IPFS_SCHEME):
            raise StorageError(f"Not an IPFS URI: {uri}")
        return f"{self.gateway_url}/{uri[len(IPFS_SCHEME):]}"


class AzureBlobStore(BlobStore):
    """Azure Blob Storage container; needs the ``azure`` extra installed."""

    def __init__(
        self,
        connection_string: Optional[str] = config.AZURE_CONNECTION_STRING,
        container_name: str = config.AZURE_CONTAINER_NAME,
    ):
        if not connection_string:
            raise StorageError("AZURE_CONNECTION_STRING not set")
        try:
            _blob = importlib.import_module("azure.storage.blob")
        except ImportError as exc:
            raise StorageError("azure-storage-blob is required for Azure uploads") from exc
        BlobServiceClient = getattr(_blob, "BlobServiceClient")
        self.service: Any = BlobServiceClient.from_connection_string(connection_string)
        self.container_name = container_name
        self.container: Any = self.service.get_container_client(container_name)

    def upload(self, data: bytes, name: Optional[str] = None) -> str:
        blob_name = name or f"{sha256_hex(data)}.json"
        try:
            blob_client = self.container.get_blob_client(blob_name)
            blob_client.upload_blob(data, overwrite=True)
        except Exception as exc:  # azure.core.exceptions are not importable without the extra
            raise StorageError(f"Azure upload failed: {exc}") from exc
        url = blob_client.url
        logger.info(f"✅ Uploaded to Azure Blob: {url}")
        return url

    def fetch(self, uri: str) -> bytes:
        prefix = f"/{self.container_name}/"
        if prefix not in uri:
            raise StorageError(f"URI {uri} is not in container {self.container_name}")
        blob_name = uri.split(prefix, 1)[1]
        try:
            return self.container.download_blob(blob_name).readall()
        except Exception as exc:
            raise StorageError(f"Azure fetch failed for {uri}: {exc}") from exc


def store_secure_block(store: BlobStore, block: SecureBlock, name: Optional[str] = None) -> str:
    data = serialize(block)
    uri = store.upload(data, name)
    logger.info(f"• Stored secure block for {block.associated_data} at {uri} (sha256 {sha256_hex(data)})")
    return uri


def fetch_secure_block(store: BlobStore, uri: str) -> SecureBlock:
    return parse(store.fetch(uri))
