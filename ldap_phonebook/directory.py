"""
Directory access.

This module provides :class:`Directory`, which connects to the LDAP server
described by the phonebook configuration, runs searches, and turns results
into :class:`~ldap_phonebook.records.DirectoryRecord` objects.  It also
implements the phonebook's two queries: loading the records the organization
tree is built from, and finding people (with the keyboard layout fallback for
free-text searches).
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any

from ldap.controls import SimplePagedResultsControl
from ldap_filter import Filter

from ldap_phonebook import ldap

from .filters import build_people_filter, text_criteria, transliterate
from .records import DirectoryRecord
from .typing import LDAPData

logger = logging.getLogger(__name__)

#: Attributes needed to build the organization tree.
TREE_ATTRIBUTES: list[str] = ["o", "ou"]


def atomic(func: Callable) -> Callable:
    """
    Decorator for :class:`Directory` methods that need to talk to the LDAP
    server.

    Opens a connection for the current thread if there isn't one yet, and
    closes it again when the outermost decorated call returns.
    """

    @wraps(func)
    def wrapper(self: "Directory", *args, **kwargs) -> Any:
        if self.has_connection():
            # Ensure we're not currently in a wrapped function
            return func(self, *args, **kwargs)
        self.connect()
        try:
            retval = func(self, *args, **kwargs)
        finally:
            # Release the connection even if ``func`` raised.
            self.disconnect()
        return retval

    return wrapper


@dataclass(frozen=True)
class SearchOutcome:
    """
    The result of a free-text people search.

    ``query`` is the text that produced ``records``: the text as typed, or its
    transliteration if only that found anybody, in which case
    ``transliterated`` is ``True``.
    """

    text: str
    query: str
    records: list[DirectoryRecord] = field(default_factory=list)

    @property
    def transliterated(self) -> bool:
        return self.query != self.text


class Directory:
    """
    Client for the phonebook's LDAP server.

    Each thread gets its own connection, because python-ldap connection
    objects must not be shared between threads; searches may therefore be run
    from background workers concurrently.

    Args:
        config: the server configuration, as returned by
            :func:`ldap_phonebook.config.load_config`: a ``basedn`` key and a
            ``read`` dictionary of connection settings.

    """

    def __init__(self, config: dict[str, Any]) -> None:
        self.logger = logger
        self.config = config
        self.basedn: str = config["basedn"]
        self.pagesize: int = int(config.get("pagesize", 500))
        # keys in this dictionary get manipulated by .connect() and .disconnect()
        self._ldap_objects: dict[threading.Thread, ldap.ldapobject.LDAPObject] = {}  # type: ignore[name-defined]

    @property
    def url(self) -> str:
        return self.config["read"]["url"]

    def has_connection(self) -> bool:
        """Return ``True`` if the current thread has an open connection."""
        return threading.current_thread() in self._ldap_objects

    @property
    def connection(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        """The current thread's connection."""
        return self._ldap_objects[threading.current_thread()]

    def connect(self) -> None:
        """Open the current thread's connection.  Used by :func:`atomic`."""
        self._ldap_objects[threading.current_thread()] = self._connect()

    def disconnect(self) -> None:
        """Unbind and forget the current thread's connection."""
        try:
            self.connection.unbind_s()
        finally:
            del self._ldap_objects[threading.current_thread()]

    def new_connection(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]
        """Return a new bound connection that the caller must unbind."""
        return self._connect()

    def _connect(self) -> ldap.ldapobject.LDAPObject:  # type: ignore[name-defined]  # noqa: PLR0912
        """
        Create, configure and bind a new LDAP connection.

        Raises:
            ValueError: ``tls_verify`` is neither ``"never"`` nor ``"always"``.
            OSError: a configured TLS certificate or key file does not exist
                or is not a file.
            ldap.LDAPError: the server could not be reached or refused the
                bind.

        Returns:
            A bound LDAPObject.

        """
        config = self.config["read"]
        ldap_object = ldap.initialize(config["url"])
        if config.get("follow_referrals", False):
            ldap_object.set_option(ldap.OPT_REFERRALS, 1)  # type: ignore[attr-defined]
        else:
            ldap_object.set_option(ldap.OPT_REFERRALS, 0)  # type: ignore[attr-defined]
        timeout = config.get("timeout", 15.0)
        ldap_object.set_option(ldap.OPT_NETWORK_TIMEOUT, float(timeout))  # type: ignore[attr-defined]
        sizelimit = config.get("sizelimit", None)
        if sizelimit:
            ldap_object.set_option(ldap.OPT_SIZELIMIT, int(sizelimit))  # type: ignore[attr-defined]
        tls_verify = config.get("tls_verify", "never")
        if tls_verify == "never":
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)  # type: ignore[attr-defined]
        elif tls_verify == "always":
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)  # type: ignore[attr-defined]
        else:
            msg = f"Invalid tls_verify value: {tls_verify}"
            raise ValueError(msg)
        for key, option, label in (
            ("tls_ca_certfile", "OPT_X_TLS_CACERTFILE", "CA Certificate file"),
            ("tls_certfile", "OPT_X_TLS_CERTFILE", "TLS Certificate file"),
            ("tls_keyfile", "OPT_X_TLS_KEYFILE", "TLS Key file"),
        ):
            if filename := config.get(key, None):
                path = Path(filename)
                if not path.exists():
                    msg = f"{label} does not exist: {filename}"
                    raise OSError(msg)
                if not path.is_file():
                    msg = f"{label} is not a file: {filename}"
                    raise OSError(msg)
                ldap_object.set_option(getattr(ldap, option), filename)
        ldap_object.set_option(ldap.OPT_X_TLS_NEWCTX, 0)  # type: ignore[attr-defined]
        if config.get("use_starttls", False):
            ldap_object.start_tls_s()
        ldap_object.simple_bind_s(config.get("user") or "", config.get("password") or "")
        self.logger.debug(
            "directory.connect url=%s user=%s", config["url"], config.get("user")
        )
        return ldap_object

    def _paged_search(
        self, basedn: str, searchfilter: str, attrlist: list[str], scope: int
    ) -> list[LDAPData]:
        """
        Search using the simple paged results control, for servers that cap
        the number of entries a single search may return.
        """
        paging = SimplePagedResultsControl(True, size=self.pagesize, cookie="")  # noqa: FBT003
        results: list[LDAPData] = []
        while True:
            msgid = self.connection.search_ext(
                basedn, scope, searchfilter, attrlist, serverctrls=[paging]
            )
            _, rdata, _, serverctrls = self.connection.result3(msgid)
            results.extend((dn, attrs) for dn, attrs in rdata if isinstance(attrs, dict))
            paged_controls = [
                c
                for c in serverctrls
                if c.controlType == SimplePagedResultsControl.controlType
            ]
            if not paged_controls or not paged_controls[0].cookie:
                break
            paging.cookie = paged_controls[0].cookie
        return results

    @atomic
    def search(
        self,
        searchfilter: str,
        attributes: list[str],
        basedn: str | None = None,
        scope: int = ldap.SCOPE_SUBTREE,  # type: ignore[attr-defined]
    ) -> list[LDAPData]:
        """
        Search the directory.

        Args:
            searchfilter: the LDAP search filter string.
            attributes: the attributes to retrieve.

        Keyword Args:
            basedn: where to search from; defaults to the configured base DN.
            scope: LDAP search scope.

        Returns:
            A list of ``(dn, attrs)`` tuples.  Search references (which Active
            Directory mixes into results) are dropped.

        """
        if basedn is None:
            basedn = self.basedn
        if self.config["read"].get("paged_search", False):
            data = self._paged_search(basedn, searchfilter, attributes, scope)
        else:
            data = self.connection.search_s(
                basedn, scope, filterstr=searchfilter, attrlist=attributes
            )
            data = [obj for obj in data if isinstance(obj[1], dict)]
        self.logger.info(
            "directory.search basedn=%s filter=%s results=%d",
            basedn,
            searchfilter,
            len(data),
        )
        return data

    def load_records(self) -> list[DirectoryRecord]:
        """
        Return every person in the directory with just ``o`` and ``ou`` set:
        the input of :func:`ldap_phonebook.tree.build_tree`.
        """
        searchfilter = Filter.attribute("objectClass").equal_to("inetOrgPerson")
        return DirectoryRecord.many_from_db(
            self.search(searchfilter.to_string(), TREE_ATTRIBUTES)
        )

    def find_people(self, criteria: Filter) -> list[DirectoryRecord]:
        """
        Return the people matching ``criteria``, sorted by common name.

        Args:
            criteria: a filter built by :mod:`ldap_phonebook.filters`.

        """
        records = DirectoryRecord.many_from_db(
            self.search(
                build_people_filter(criteria), DirectoryRecord.attribute_names()
            )
        )
        return sorted(records, key=lambda record: record.cn)

    @atomic
    def search_text(self, text: str) -> SearchOutcome:
        """
        Find people whose name, mail address or telephone number contains
        ``text``.

        If nothing matches, the search is retried once with ``text``
        re-read through the Russian keyboard layout, for users who typed a
        Cyrillic name with the Latin layout active.

        Args:
            text: the text as typed.  Blank text searches nothing.

        Returns:
            The records found and the query that found them.

        """
        text = text.strip()
        if not text:
            return SearchOutcome(text=text, query=text)
        records = self.find_people(text_criteria(text))
        if records:
            return SearchOutcome(text=text, query=text, records=records)
        alternate = transliterate(text)
        if not alternate:
            return SearchOutcome(text=text, query=text)
        records = self.find_people(text_criteria(alternate))
        if not records:
            return SearchOutcome(text=text, query=text)
        self.logger.info(
            "directory.search_text.transliterated text=%r as=%r results=%d",
            text,
            alternate,
            len(records),
        )
        return SearchOutcome(text=text, query=alternate, records=records)
