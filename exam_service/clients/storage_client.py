import requests
from typing import Optional

from exam_service.config import Config

REQUEST_TIMEOUT = 60


class StorageClient:
    """Thin client for the hosted object store (Supabase-style storage REST API)."""

    def __init__(self, base_url: str, service_key: str, bucket: str, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        })

    def _object_url(self, *parts: str) -> str:
        return "/".join([f"{self.base_url}/storage/v1/object", *parts])

    def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> str:
        """Upload bytes to the bucket, overwriting any existing object. Returns the object path."""
        response = self.session.post(
            self._object_url(self.bucket, path),
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "true"},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        print(f"Archived {path} ({len(data)} bytes) to bucket {self.bucket}")
        return path

    def remove(self, path: str):
        response = self.session.delete(
            self._object_url(self.bucket),
            json={"prefixes": [path]},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()

    def create_signed_url(self, path: str, expires_in: int) -> Optional[str]:
        response = self.session.post(
            self._object_url("sign", self.bucket, path),
            json={"expiresIn": expires_in},
            timeout=REQUEST_TIMEOUT,
        )
        response.raise_for_status()
        signed = (response.json() or {}).get("signedURL")
        if not signed:
            return None
        if signed.startswith("http"):
            return signed
        return f"{self.base_url}/storage/v1{signed}"


def create_storage_client(config: Config) -> Optional[StorageClient]:
    """Return a storage client, or None when storage is not configured"""
    if not config.storage_enabled:
        print("STORAGE_URL/STORAGE_SERVICE_KEY not set, PDF archiving disabled")
        return None
    return StorageClient(config.STORAGE_URL, config.STORAGE_SERVICE_KEY, config.PDF_BUCKET)
