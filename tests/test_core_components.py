"""
Unit tests for Lorekeeper core components.

Tests configuration management and the command line operations.
"""

import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

import main
from lorekeeper.config import ConfigManager

BUCKET = "https://abc.supabase.co/storage/v1/object/public/lore-images"


def image_document(*urls):
    return json.dumps({"blocks": [{"type": "image", "data": {"file": {"url": url}}} for url in urls]})


class TestConfigManager(unittest.TestCase):
    """Test configuration management functionality."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_path = Path(self.temp_dir) / "test_config.yaml"

    def tearDown(self):
        """Clean up test fixtures."""
        if self.config_path.exists():
            self.config_path.unlink()
        os.rmdir(self.temp_dir)

    def test_config_creation_with_defaults(self):
        """Test config manager falls back to defaults when file missing."""
        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.storage_backend, "supabase")
        self.assertEqual(config.storage_domain, "supabase.co")
        self.assertEqual(config.delete_endpoint, "/api/delete-image")
        self.assertEqual(config.max_concurrent_deletions, 8)
        self.assertTrue(config.reclaim_enabled)
        self.assertEqual(config.empty_message, "No content available")

    def test_config_loading_from_file(self):
        """Test loading configuration from YAML file."""
        test_config = """
storage:
  backend: "memory"
  domain: "cdn.example.org"
  timeout: 5.0

reclaim:
  max_concurrent: 0

rendering:
  empty_message: "Nothing written yet"
"""
        with open(self.config_path, 'w') as f:
            f.write(test_config)

        config = ConfigManager(str(self.config_path))

        self.assertEqual(config.storage_backend, "memory")
        self.assertEqual(config.storage_domain, "cdn.example.org")
        self.assertEqual(config.storage_timeout, 5.0)
        self.assertIsNone(config.max_concurrent_deletions)
        self.assertEqual(config.empty_message, "Nothing written yet")

    def test_dot_notation_access(self):
        """Test accessing config values with dot notation."""
        config = ConfigManager(str(self.config_path))  # Uses defaults

        self.assertEqual(config.get("storage.domain"), "supabase.co")
        self.assertEqual(config.get("reclaim.max_concurrent"), 8)
        self.assertEqual(config.get("nonexistent.key", "default"), "default")
        self.assertIsInstance(config.get_section("logging"), dict)

    def test_environment_overrides_credentials(self):
        """Test storage URL and service key come from the environment first."""
        with open(self.config_path, 'w') as f:
            f.write('storage:\n  url: "https://file.supabase.co"\n  service_key: "file-key"\n')
        config = ConfigManager(str(self.config_path))

        env = {"SUPABASE_URL": "https://env.supabase.co", "SUPABASE_SERVICE_ROLE_KEY": "env-key"}
        with patch.dict(os.environ, env):
            self.assertEqual(config.storage_url, "https://env.supabase.co")
            self.assertEqual(config.storage_service_key, "env-key")

        with patch.dict(os.environ):
            os.environ.pop("SUPABASE_URL", None)
            os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)
            self.assertEqual(config.storage_url, "https://file.supabase.co")
            self.assertEqual(config.storage_service_key, "file-key")


class TestCommandLine(unittest.TestCase):
    """Test the render, extract and reclaim commands."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config_path = self.temp_dir / "config.yaml"
        with open(self.config_path, 'w') as f:
            f.write('storage:\n  backend: "memory"\n  domain: "supabase.co"\n'
                    f'paths:\n  log_file: "{self.temp_dir / "test.log"}"\n')
        self.settings = ConfigManager(str(self.config_path))

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def write(self, name, content):
        path = self.temp_dir / name
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return str(path)

    def test_render_writes_html(self):
        source = self.write("lore.json", json.dumps({"blocks": [
            {"type": "header", "data": {"level": 2, "text": "The Ember Court"}},
        ]}))
        out = self.temp_dir / "out" / "lore.html"

        html = main.run_render(source, str(out), "lore-body", self.settings)

        self.assertTrue(out.exists())
        self.assertEqual(out.read_text(encoding='utf-8'), html)
        self.assertIn("The Ember Court</h2>", html)
        self.assertIn("lore-body", html)

    def test_render_missing_file_shows_empty_state(self):
        html = main.run_render(str(self.temp_dir / "missing.json"), settings=self.settings)
        self.assertIn("No content available", html)

    def test_extract_lists_sorted_urls(self):
        source = self.write("lore.json", image_document(f"{BUCKET}/b.png", f"{BUCKET}/a.png", f"{BUCKET}/b.png"))
        self.assertEqual(main.run_extract(source), [f"{BUCKET}/a.png", f"{BUCKET}/b.png"])

    def test_reclaim_dry_run_deletes_nothing(self):
        old = self.write("old.json", image_document(f"{BUCKET}/a.png", "https://images.example.com/x.png"))
        new = self.write("new.json", image_document())

        output = io.StringIO()
        with redirect_stdout(output):
            report = main.run_reclaim(old, new, dry_run=True, settings=self.settings)

        self.assertIsNone(report)
        self.assertIn(f"would delete: {BUCKET}/a.png", output.getvalue())
        self.assertIn("outside storage domain: https://images.example.com/x.png", output.getvalue())

    def test_reclaim_reports_deletions(self):
        old = self.write("old.json", image_document(f"{BUCKET}/a.png", f"{BUCKET}/b.png"))
        new = self.write("new.json", image_document(f"{BUCKET}/b.png"))

        with redirect_stdout(io.StringIO()):
            report = main.run_reclaim(old, new, settings=self.settings)

        self.assertEqual(report.removed, [f"{BUCKET}/a.png"])
        self.assertEqual(report.succeeded, 1)
        self.assertEqual(report.failed, 0)

    def test_main_exit_codes(self):
        source = self.write("lore.json", image_document(f"{BUCKET}/a.png"))

        with redirect_stdout(io.StringIO()) as output:
            status = main.main(["--config", str(self.config_path), "extract", source])

        self.assertEqual(status, 0)
        self.assertIn(f"{BUCKET}/a.png", output.getvalue())

        with patch.object(main, "run_extract", side_effect=RuntimeError("disk on fire")):
            with redirect_stdout(io.StringIO()):
                status = main.main(["--config", str(self.config_path), "extract", source])
        self.assertEqual(status, 1)


if __name__ == '__main__':
    unittest.main()
