"""Tests for the static and dynamic configuration templates."""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from ruamel.yaml import YAML

from tests.support import make_config
from traefik_setup.templates import ConfigTemplater, render_dynamic_config, render_static_config


class TestRender(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = make_config(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_static_document(self):
        doc = YAML(typ="safe").load(render_static_config(self.config))
        self.assertEqual(doc["entryPoints"]["web"]["address"], ":80")
        self.assertEqual(doc["entryPoints"]["websecure"]["address"], ":443")
        self.assertEqual(doc["providers"]["file"]["filename"], str(self.config.dynamic_config))
        self.assertTrue(doc["providers"]["file"]["watch"])
        self.assertEqual(doc["log"]["level"], "INFO")
        self.assertEqual(doc["log"]["filePath"], str(self.config.traefik_log))
        self.assertEqual(doc["accessLog"]["filePath"], str(self.config.access_log))
        acme = doc["certificatesResolvers"]["myresolver"]["acme"]
        self.assertEqual(acme["storage"], str(self.config.acme_file))
        self.assertEqual(acme["httpChallenge"]["entryPoint"], "web")
        self.assertNotIn("api", doc)

    def test_dynamic_document(self):
        doc = YAML(typ="safe").load(render_dynamic_config(self.config))
        routers = doc["http"]["routers"]
        self.assertEqual(list(routers), ["router-app1"])
        self.assertEqual(routers["router-app1"]["rule"], "Host(`sub1.yourdomain.com`)")
        self.assertEqual(routers["router-app1"]["service"], "service-app1")
        self.assertEqual(routers["router-app1"]["entryPoints"], ["web"])
        servers = doc["http"]["services"]["service-app1"]["loadBalancer"]["servers"]
        self.assertEqual(servers, [{"url": "http://10.0.0.2:8000"}])
        self.assertNotIn("middlewares", doc["http"])

    def test_dynamic_keeps_commented_examples(self):
        text = render_dynamic_config(self.config)
        self.assertIn("# router-app2:", text)
        self.assertIn("#     certResolver: myresolver", text)
        self.assertIn("# service-app2:", text)


class TestConfigTemplater(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.config = make_config(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @patch("traefik_setup.templates.chown_path")
    def test_create_all(self, mock_chown):
        ConfigTemplater(self.config).create_all()

        self.assertEqual(self.config.static_config.read_text(), render_static_config(self.config))
        self.assertEqual(self.config.dynamic_config.read_text(), render_dynamic_config(self.config))
        self.assertTrue(self.config.traefik_log.is_file())
        self.assertTrue(self.config.access_log.is_file())
        chowned = {c.args[0] for c in mock_chown.call_args_list}
        self.assertEqual(
            chowned,
            {
                self.config.static_config,
                self.config.dynamic_config,
                self.config.traefik_log,
                self.config.access_log,
            },
        )

    @patch("traefik_setup.templates.chown_path")
    def test_rewrites_existing_files(self, _chown):
        self.config.CONFIG_DIR.mkdir(parents=True)
        self.config.dynamic_config.write_text("stale: true\n")
        ConfigTemplater(self.config).create_dynamic_config()
        self.assertEqual(self.config.dynamic_config.read_text(), render_dynamic_config(self.config))


if __name__ == "__main__":
    unittest.main()
