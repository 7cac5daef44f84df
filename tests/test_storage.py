"""
Tests for the storage-delete collaborators.

HTTP traffic is served by httpx.MockTransport, so no network is required.
"""

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import httpx

from lorekeeper.attachments import (
    DeleteEndpointStorage,
    InMemoryStorage,
    StorageError,
    SupabaseStorage,
    create_storage,
)
from lorekeeper.config import ConfigManager

PUBLIC_URL = "https://abc.supabase.co/storage/v1/object/public/character-images/user%201/portrait.png"


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestOwnedDomain(unittest.TestCase):
    """Test the owned storage domain check."""

    def setUp(self):
        self.storage = InMemoryStorage(domain="supabase.co")

    def test_hosts_inside_domain_are_owned(self):
        self.assertTrue(self.storage.owns(PUBLIC_URL))
        self.assertTrue(self.storage.owns("https://supabase.co/x.png"))

    def test_other_hosts_are_not_owned(self):
        for url in ["https://images.example.com/a.png",
                    "https://evil.example.com/?next=supabase.co",
                    "https://notsupabase.co/a.png",
                    "not a url",
                    ""]:
            with self.subTest(url=url):
                self.assertFalse(self.storage.owns(url))


class TestSupabaseStorage(unittest.IsolatedAsyncioTestCase):
    """Test deleting through the object-storage REST API."""

    def setUp(self):
        env = patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("SUPABASE_URL", None)

    def test_object_path(self):
        storage = SupabaseStorage(service_key="k", domain="supabase.co")

        self.assertEqual(storage.object_path(PUBLIC_URL), ("character-images", "user 1/portrait.png"))
        self.assertIsNone(storage.object_path("https://abc.supabase.co/storage/v1/object/sign/x/y.png"))
        self.assertIsNone(storage.object_path("https://abc.supabase.co/storage/v1/object/public/bucket-only"))

    async def test_delete_sends_authenticated_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"message": "Successfully deleted"})

        async with SupabaseStorage(service_key="secret", domain="supabase.co",
                                   client=mock_client(handler)) as storage:
            result = await storage.delete_object(PUBLIC_URL)

        self.assertTrue(result.success)
        self.assertFalse(result.already_absent)
        self.assertEqual(len(requests), 1)
        request = requests[0]
        self.assertEqual(request.method, "DELETE")
        self.assertEqual(
            str(request.url),
            "https://abc.supabase.co/storage/v1/object/character-images/user%201/portrait.png",
        )
        self.assertEqual(request.headers["Authorization"], "Bearer secret")
        self.assertEqual(request.headers["apikey"], "secret")

    async def test_configured_base_url_is_used(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200)

        storage = SupabaseStorage(base_url="https://storage.internal/", service_key="k",
                                  domain="supabase.co", client=mock_client(handler))
        await storage.delete_object(PUBLIC_URL)

        self.assertTrue(seen[0].startswith("https://storage.internal/storage/v1/object/character-images/"))

    async def test_missing_object_counts_as_deleted(self):
        responses = [
            httpx.Response(404),
            httpx.Response(400, json={"statusCode": "404", "error": "not_found", "message": "Object not found"}),
        ]
        for response in responses:
            with self.subTest(status=response.status_code):
                storage = SupabaseStorage(service_key="k", domain="supabase.co",
                                          client=mock_client(lambda request, r=response: r))
                result = await storage.delete_object(PUBLIC_URL)

                self.assertTrue(result.success)
                self.assertTrue(result.already_absent)

    async def test_server_error_is_a_failure(self):
        storage = SupabaseStorage(service_key="k", domain="supabase.co",
                                  client=mock_client(lambda request: httpx.Response(500)))
        result = await storage.delete_object(PUBLIC_URL)

        self.assertFalse(result.success)
        self.assertEqual(result.reason, "HTTP 500: Internal Server Error")

    async def test_unauthorized_is_a_failure(self):
        storage = SupabaseStorage(service_key="bad", domain="supabase.co",
                                  client=mock_client(lambda request: httpx.Response(401, json={"message": "Invalid JWT"})))
        result = await storage.delete_object(PUBLIC_URL)

        self.assertFalse(result.success)
        self.assertIn("401", result.reason)

    async def test_transport_error_is_a_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        storage = SupabaseStorage(service_key="k", domain="supabase.co", client=mock_client(handler))
        result = await storage.delete_object(PUBLIC_URL)

        self.assertFalse(result.success)
        self.assertTrue(result.reason.startswith("Request failed"))

    async def test_invalid_url_format_is_not_requested(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        storage = SupabaseStorage(service_key="k", domain="supabase.co", client=mock_client(handler))
        result = await storage.delete_object("https://abc.supabase.co/images/loose.png")

        self.assertFalse(result.success)
        self.assertEqual(result.reason, "Invalid storage URL format")
        self.assertEqual(requests, [])


class TestDeleteEndpointStorage(unittest.IsolatedAsyncioTestCase):
    """Test deleting through the application delete endpoint."""

    async def test_delete_posts_url_with_token(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"success": True})

        storage = DeleteEndpointStorage(
            endpoint="/api/delete-image",
            base_url="https://app.example.com",
            token="user-token",
            domain="supabase.co",
            client=mock_client(handler),
        )
        result = await storage.delete_object(PUBLIC_URL)

        self.assertTrue(result.success)
        request = requests[0]
        self.assertEqual(request.method, "DELETE")
        self.assertEqual(str(request.url), "https://app.example.com/api/delete-image")
        self.assertEqual(json.loads(request.content), {"url": PUBLIC_URL})
        self.assertEqual(request.headers["Authorization"], "Bearer user-token")

    async def test_endpoint_failure_is_reported(self):
        storage = DeleteEndpointStorage(
            endpoint="https://app.example.com/api/delete-image",
            domain="supabase.co",
            client=mock_client(lambda request: httpx.Response(401)),
        )
        result = await storage.delete_object(PUBLIC_URL)

        self.assertFalse(result.success)
        self.assertEqual(result.reason, "HTTP 401: Unauthorized")

    def test_relative_endpoint_needs_base_url(self):
        with self.assertRaises(StorageError):
            DeleteEndpointStorage(endpoint="/api/delete-image", domain="supabase.co")


class TestCreateStorage(unittest.TestCase):
    """Test building the configured storage backend."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "test_config.yaml"
        env = patch.dict(os.environ)
        env.start()
        self.addCleanup(env.stop)
        os.environ.pop("SUPABASE_URL", None)
        os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

    def tearDown(self):
        if self.config_path.exists():
            self.config_path.unlink()
        os.rmdir(self.temp_dir)

    def write_config(self, body):
        with open(self.config_path, 'w') as f:
            f.write(body)
        return ConfigManager(str(self.config_path))

    def test_memory_backend(self):
        settings = self.write_config('storage:\n  backend: "memory"\n  domain: "cdn.example.org"\n')
        storage = create_storage(settings)

        self.assertIsInstance(storage, InMemoryStorage)
        self.assertTrue(storage.owns("https://img.cdn.example.org/a.png"))

    def test_supabase_backend(self):
        settings = self.write_config(
            'storage:\n  backend: "supabase"\n  url: "https://abc.supabase.co"\n  service_key: "file-key"\n'
        )
        storage = create_storage(settings)

        self.assertIsInstance(storage, SupabaseStorage)
        self.assertEqual(storage.base_url, "https://abc.supabase.co")

    def test_endpoint_backend(self):
        settings = self.write_config(
            'storage:\n  backend: "endpoint"\n  app_url: "https://app.example.com"\n'
        )
        storage = create_storage(settings, token="t")

        self.assertIsInstance(storage, DeleteEndpointStorage)
        self.assertEqual(storage.endpoint, "https://app.example.com/api/delete-image")

    def test_unknown_backend(self):
        settings = self.write_config('storage:\n  backend: "ftp"\n')
        with self.assertRaises(StorageError):
            create_storage(settings)


if __name__ == '__main__':
    unittest.main()
