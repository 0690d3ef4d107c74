"""
Tests for loading the phonebook configuration.
"""

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from ldap_phonebook.config import (
    DEFAULT_CONFIG,
    config_paths,
    load_config,
    server_config,
    server_url,
)
from ldap_phonebook.exceptions import ImproperlyConfigured


class TestServerConfig(unittest.TestCase):

    def test_server_url(self):
        self.assertEqual(server_url("abook:389"), "ldap://abook:389")
        self.assertEqual(server_url("ldaps://abook"), "ldaps://abook")
        self.assertEqual(server_url("ldapi:///"), "ldapi:///")

    def test_server_config(self):
        config = server_config(
            {
                "ldap_server": "ldap.example.com:389",
                "bind_dn": "cn=reader,dc=example,dc=com",
                "bind_password": "secret",
                "base_dn": "dc=example,dc=com",
                "use_starttls": True,
                "socket_file": "/tmp/ldap-phonebook.sock",
            }
        )
        self.assertEqual(config["basedn"], "dc=example,dc=com")
        read = config["read"]
        self.assertEqual(read["url"], "ldap://ldap.example.com:389")
        self.assertEqual(read["user"], "cn=reader,dc=example,dc=com")
        self.assertEqual(read["password"], "secret")
        self.assertTrue(read["use_starttls"])
        self.assertEqual(read["tls_verify"], "never")
        self.assertEqual(read["timeout"], 15.0)
        self.assertFalse(read["paged_search"])
        self.assertNotIn("socket_file", read)

    def test_anonymous_bind(self):
        config = server_config({"ldap_server": "abook", "base_dn": "dc=x"})
        self.assertEqual(config["read"]["user"], "")
        self.assertEqual(config["read"]["password"], "")

    def test_required_keys(self):
        for missing in ("ldap_server", "base_dn"):
            raw = dict(DEFAULT_CONFIG)
            raw[missing] = ""
            with self.subTest(missing=missing), self.assertRaises(ImproperlyConfigured):
                server_config(raw)

    def test_not_an_object(self):
        with self.assertRaises(ImproperlyConfigured):
            server_config(["ldap_server"])  # type: ignore[arg-type]


class TestLoadConfig(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        self.user_path = self.root / "home" / "ldap-phonebook.json"
        self.etc_path = self.root / "etc" / "ldap-phonebook.json"
        patchers = [
            patch("ldap_phonebook.config.config_paths", return_value=[self.etc_path, self.user_path]),
            patch("ldap_phonebook.config.user_config_path", return_value=self.user_path),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmpdir.cleanup()

    def write(self, path: Path, data) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(data if isinstance(data, str) else json.dumps(data))
        return path

    def test_explicit_path(self):
        path = self.write(
            self.root / "custom.json",
            {"ldap_server": "ldap://custom", "base_dn": "dc=custom"},
        )
        config = load_config(path)
        self.assertEqual(config["read"]["url"], "ldap://custom")
        self.assertEqual(config["basedn"], "dc=custom")

    def test_explicit_path_missing(self):
        with self.assertRaises(ImproperlyConfigured):
            load_config(self.root / "nope.json")

    def test_explicit_path_malformed(self):
        path = self.write(self.root / "bad.json", "{not json")
        with self.assertRaises(ImproperlyConfigured):
            load_config(path)

    def test_first_existing_file_wins(self):
        self.write(self.etc_path, {"ldap_server": "etc:389", "base_dn": "dc=etc"})
        self.write(self.user_path, {"ldap_server": "user:389", "base_dn": "dc=user"})
        self.assertEqual(load_config()["read"]["url"], "ldap://etc:389")

    def test_malformed_file_is_skipped(self):
        self.write(self.etc_path, "{not json")
        self.write(self.user_path, {"ldap_server": "user:389", "base_dn": "dc=user"})
        with self.assertLogs("ldap_phonebook.config", level="WARNING"):
            config = load_config()
        self.assertEqual(config["read"]["url"], "ldap://user:389")

    def test_incomplete_file_is_an_error(self):
        self.write(self.etc_path, {"ldap_server": "etc:389"})
        with self.assertRaises(ImproperlyConfigured):
            load_config()

    def test_default_written_when_missing(self):
        config = load_config()
        self.assertEqual(config["read"]["url"], "ldap://abook:389")
        self.assertEqual(config["basedn"], "dc=mail,dc=local")
        self.assertTrue(self.user_path.is_file())
        self.assertEqual(json.loads(self.user_path.read_text()), DEFAULT_CONFIG)

    def test_default_used_when_it_cannot_be_written(self):
        self.write(self.root / "home", "a file where the directory should be")
        with self.assertLogs("ldap_phonebook.config", level="WARNING"):
            config = load_config()
        self.assertEqual(config["read"]["url"], "ldap://abook:389")


class TestConfigPaths(unittest.TestCase):

    def test_search_order(self):
        paths = config_paths()
        self.assertEqual(len(paths), 3)
        self.assertEqual(paths[1], Path("/etc/ldap-phonebook/ldap-phonebook.json"))
        self.assertEqual(paths[2], Path.home() / ".config" / "ldap-phonebook" / "ldap-phonebook.json")
        self.assertTrue(all(path.name == "ldap-phonebook.json" for path in paths))
