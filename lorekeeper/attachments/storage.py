"""
Storage-delete collaborators for Lorekeeper.

This module defines the interface the attachment reclaimer deletes through and
its implementations: the object-storage REST API, the application's own
delete endpoint, and an in-memory store. Every deletion settles into a
DeletionResult; only construction problems raise.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import quote, unquote, urlparse

import httpx

from ..config import ConfigManager, config
from ..models import DeletionResult


class StorageError(Exception):
    """Raised when a storage collaborator cannot be constructed."""


class BaseStorage(ABC):
    """
    Abstract base class for storage-delete collaborators.

    Implementations delete one object per call, identified by its public URL.
    Deleting an object that does not exist counts as success.
    """

    def __init__(self, domain: Optional[str] = None):
        """
        Args:
            domain: The owned storage domain (defaults to config value)
        """
        self.domain = (domain or config.storage_domain).lower().strip(".")

    def owns(self, url: str) -> bool:
        """
        Check whether a URL is hosted inside the owned storage domain.

        Args:
            url: Attachment URL

        Returns:
            True if the URL's host is the domain or one of its subdomains
        """
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host == self.domain or host.endswith("." + self.domain)

    @abstractmethod
    async def delete_object(self, url: str) -> DeletionResult:
        """
        Delete the object behind a URL.

        Args:
            url: Public URL of the stored object

        Returns:
            The settled result of the attempt
        """
        pass

    async def aclose(self) -> None:
        """Release any held connections."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def _is_not_found_body(response: httpx.Response) -> bool:
    # The storage API reports missing objects as 400 with a not-found body
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    if str(body.get("statusCode")) == "404" or body.get("error") == "not_found":
        return True
    return "not found" in str(body.get("message", "")).lower()


def result_from_response(url: str, response: httpx.Response) -> DeletionResult:
    """Map an HTTP response of a delete call onto a DeletionResult."""
    if response.is_success:
        return DeletionResult(url=url, success=True)
    if response.status_code == 404 or (response.status_code == 400 and _is_not_found_body(response)):
        return DeletionResult(url=url, success=True, already_absent=True)
    return DeletionResult(
        url=url,
        success=False,
        reason=f"HTTP {response.status_code}: {response.reason_phrase}",
    )


class _HttpStorage(BaseStorage):
    """Shared client handling for the HTTP-backed collaborators."""

    def __init__(self, domain: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.AsyncClient] = None):
        super().__init__(domain)
        self.timeout = timeout or config.storage_timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class SupabaseStorage(_HttpStorage):
    """
    Deletes objects through the object-storage REST API.

    Public object URLs look like
    ``https://<project>.supabase.co/storage/v1/object/public/<bucket>/<path>``.
    """

    def __init__(self, base_url: Optional[str] = None, service_key: Optional[str] = None,
                 domain: Optional[str] = None, public_prefix: Optional[str] = None,
                 timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the storage client.

        Args:
            base_url: Storage project URL (defaults to config value, then to the
                origin of each attachment URL)
            service_key: Credential sent as bearer token and apikey header
            domain: Owned storage domain
            public_prefix: Path prefix of public object URLs
            timeout: Per-request timeout in seconds
            client: Optional pre-built httpx.AsyncClient
        """
        super().__init__(domain, timeout, client)
        self.base_url = base_url or config.storage_url
        self.service_key = service_key or config.storage_service_key
        self.public_prefix = public_prefix or config.storage_public_prefix

    def object_path(self, url: str) -> Optional[Tuple[str, str]]:
        """
        Split a public object URL into bucket and object key.

        Returns:
            ``(bucket, key)`` with the key percent-decoded, or None if the URL
            does not follow the public object layout
        """
        try:
            path = urlparse(url).path
        except ValueError:
            return None
        if self.public_prefix not in path:
            return None
        remainder = path.split(self.public_prefix, 1)[1]
        bucket, _, key = remainder.partition("/")
        if not bucket or not key:
            return None
        return bucket, unquote(key)

    def delete_url(self, url: str, bucket: str, key: str) -> str:
        if self.base_url:
            base = self.base_url
        else:
            parsed = urlparse(url)
            base = f"{parsed.scheme}://{parsed.netloc}"
        return f"{base.rstrip('/')}/storage/v1/object/{bucket}/{quote(key)}"

    def _headers(self) -> Dict[str, str]:
        if not self.service_key:
            return {}
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    async def delete_object(self, url: str) -> DeletionResult:
        location = self.object_path(url)
        if location is None:
            logging.error(f"Invalid storage URL format: {url}")
            return DeletionResult(url=url, success=False, reason="Invalid storage URL format")

        bucket, key = location
        logging.debug(f"Deleting {key} from bucket {bucket}")
        try:
            response = await self.client.delete(self.delete_url(url, bucket, key), headers=self._headers())
        except httpx.HTTPError as e:
            return DeletionResult(url=url, success=False, reason=f"Request failed: {e}")
        return result_from_response(url, response)


class DeleteEndpointStorage(_HttpStorage):
    """
    Deletes objects through the application's delete endpoint.

    Sends ``DELETE <endpoint>`` with a JSON body ``{"url": ...}`` and the
    caller's bearer token; the server performs the actual storage call.
    """

    def __init__(self, endpoint: Optional[str] = None, token: Optional[str] = None,
                 base_url: Optional[str] = None, domain: Optional[str] = None,
                 timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__(domain, timeout, client)
        endpoint = endpoint or config.delete_endpoint
        if not endpoint.startswith(("http://", "https://")):
            if not base_url:
                raise StorageError(f"Relative delete endpoint {endpoint!r} needs a base URL")
            endpoint = f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        self.endpoint = endpoint
        self.token = token

    async def delete_object(self, url: str) -> DeletionResult:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self.client.request("DELETE", self.endpoint, json={"url": url}, headers=headers)
        except httpx.HTTPError as e:
            return DeletionResult(url=url, success=False, reason=f"Request failed: {e}")
        return result_from_response(url, response)


class InMemoryStorage(BaseStorage):
    """
    Dictionary-backed store used for dry runs and tests.

    Failures can be injected per URL, either as a reason string (settled
    failure) or as an exception instance (raised from delete_object).
    """

    def __init__(self, objects: Iterable[str] = (), domain: Optional[str] = None,
                 failures: Optional[Dict[str, Union[str, Exception]]] = None):
        super().__init__(domain)
        self.objects = set(objects)
        self.failures: Dict[str, Union[str, Exception]] = dict(failures or {})
        self.calls: List[str] = []

    async def delete_object(self, url: str) -> DeletionResult:
        self.calls.append(url)
        await asyncio.sleep(0)

        failure = self.failures.get(url)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return DeletionResult(url=url, success=False, reason=failure)

        if url not in self.objects:
            return DeletionResult(url=url, success=True, already_absent=True)
        self.objects.discard(url)
        return DeletionResult(url=url, success=True)


def create_storage(settings: Optional[ConfigManager] = None, token: Optional[str] = None) -> BaseStorage:
    """
    Build the storage collaborator selected by configuration.

    Args:
        settings: Configuration to read (defaults to the global config)
        token: Caller credential for the endpoint backend

    Returns:
        A BaseStorage implementation
    """
    settings = settings or config
    backend = settings.storage_backend

    if backend == "supabase":
        return SupabaseStorage(
            base_url=settings.storage_url,
            service_key=settings.storage_service_key,
            domain=settings.storage_domain,
            public_prefix=settings.storage_public_prefix,
            timeout=settings.storage_timeout,
        )
    if backend == "endpoint":
        return DeleteEndpointStorage(
            endpoint=settings.delete_endpoint,
            token=token,
            base_url=settings.app_url,
            domain=settings.storage_domain,
            timeout=settings.storage_timeout,
        )
    if backend == "memory":
        return InMemoryStorage(domain=settings.storage_domain)

    raise StorageError(f"Unknown storage backend: {backend}")
