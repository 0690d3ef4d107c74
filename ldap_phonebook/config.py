"""
Phonebook configuration.

The phonebook reads a JSON file, ``ldap-phonebook.json``, from the first of
these places that has one:

* the directory holding the executable
* ``/etc/ldap-phonebook/``
* ``~/.config/ldap-phonebook/``

If none exists, :data:`DEFAULT_CONFIG` is written to the last location and
used.  Example::

    {
      "ldap_server": "ldap.example.com:389",
      "bind_dn": "cn=reader,dc=example,dc=com",
      "bind_password": "secret",
      "base_dn": "dc=example,dc=com",
      "use_starttls": true,
      "tls_verify": "always"
    }

:func:`load_config` translates the file into the server dictionary that
:class:`~ldap_phonebook.directory.Directory` expects.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any

from .exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)

APP_NAME = "ldap-phonebook"
CONFIG_FILE = "ldap-phonebook.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "ldap_server": "abook:389",
    "bind_dn": "dc=mail,dc=local",
    "bind_password": "",
    "base_dn": "dc=mail,dc=local",
}

#: Optional keys passed through to the connection settings, with defaults.
CONNECTION_OPTIONS: dict[str, Any] = {
    "use_starttls": False,
    "tls_verify": "never",
    "tls_ca_certfile": None,
    "tls_certfile": None,
    "tls_keyfile": None,
    "timeout": 15.0,
    "sizelimit": None,
    "follow_referrals": False,
    "paged_search": False,
}


def user_config_path() -> Path:
    return Path.home() / ".config" / APP_NAME / CONFIG_FILE


def config_paths() -> list[Path]:
    """Return the places a configuration file is looked for, in order."""
    return [
        Path(sys.argv[0]).resolve().parent / CONFIG_FILE,
        Path("/etc") / APP_NAME / CONFIG_FILE,
        user_config_path(),
    ]


def server_url(server: str) -> str:
    """
    Turn an ``ldap_server`` value into an LDAP URL.  ``host:port`` values get
    an ``ldap://`` scheme; URLs are returned unchanged.
    """
    if "://" in server:
        return server
    return f"ldap://{server}"


def server_config(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Translate a parsed configuration file into a server dictionary.

    Args:
        raw: the parsed JSON object.

    Raises:
        ImproperlyConfigured: ``ldap_server`` or ``base_dn`` is missing or
            empty, or ``raw`` is not an object.

    Returns:
        ``{"basedn": ..., "read": {"url": ..., "user": ..., "password": ...,
        ...}}``

    """
    if not isinstance(raw, dict):
        msg = "The configuration must be a JSON object"
        raise ImproperlyConfigured(msg)
    for key in ("ldap_server", "base_dn"):
        if not raw.get(key):
            msg = f"The configuration has no '{key}' key"
            raise ImproperlyConfigured(msg)
    read: dict[str, Any] = {
        "url": server_url(raw["ldap_server"]),
        "user": raw.get("bind_dn") or "",
        "password": raw.get("bind_password") or "",
    }
    for key, default in CONNECTION_OPTIONS.items():
        read[key] = raw.get(key, default)
    return {"basedn": raw["base_dn"], "read": read}


def read_config_file(path: Path) -> dict[str, Any]:
    """
    Parse the configuration file at ``path``.

    Raises:
        ImproperlyConfigured: the file cannot be read or is not valid JSON.

    """
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        msg = f"Could not read config file {path}: {e}"
        raise ImproperlyConfigured(msg) from e
    except json.JSONDecodeError as e:
        msg = f"Could not parse config file {path}: {e}"
        raise ImproperlyConfigured(msg) from e


def write_default_config(path: Path) -> Path:
    """Write :data:`DEFAULT_CONFIG` to ``path``, creating its directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(DEFAULT_CONFIG, indent=2) + "\n", encoding="utf-8")
    logger.info("config.default_written path=%s", path)
    return path


def load_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load the phonebook configuration.

    Keyword Args:
        path: an explicit configuration file.  When given, no other location
            is tried and any problem with the file is an error.

    Raises:
        ImproperlyConfigured: the explicit file is unusable, or the file found
            lacks a required key.

    Returns:
        The server dictionary for :class:`~ldap_phonebook.directory.Directory`.

    """
    if path is not None:
        logger.debug("config.load path=%s", path)
        return server_config(read_config_file(path))
    for candidate in config_paths():
        if not candidate.is_file():
            continue
        try:
            raw = read_config_file(candidate)
        except ImproperlyConfigured as e:
            logger.warning("config.skipped path=%s error=%s", candidate, e)
            continue
        logger.debug("config.load path=%s", candidate)
        return server_config(raw)
    try:
        write_default_config(user_config_path())
    except OSError as e:
        logger.warning("config.default_not_written error=%s", e)
    return server_config(DEFAULT_CONFIG)
