"""
Exceptions raised by ldap-phonebook.

Directory failures are not wrapped: they reach callers as the
``ldap.LDAPError`` subclasses raised by python-ldap.
"""


class PhonebookError(Exception):
    """Base class for ldap-phonebook errors."""


class ImproperlyConfigured(PhonebookError):
    """The phonebook configuration is missing, unreadable or incomplete."""


class InvalidPath(PhonebookError, ValueError):
    """A Logical Tree Path has an empty segment."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Invalid tree path: {path!r}")
