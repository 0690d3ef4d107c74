"""
Directory records.

This module provides :class:`DirectoryRecord`, the typed, read-only view of one
person entry returned by the directory, and the helpers that undo (and redo)
the HTML-entity escaping of quotes that some directories carry in their
organization attributes.
"""

from dataclasses import dataclass, fields
from typing import ClassVar

from .typing import LDAPAttributes, LDAPData

#: Entity sequences found in ``o``, ``ou`` and ``postalAddress`` values.
ENTITIES: tuple[tuple[str, str], ...] = (("&#039;", "'"), ("&quot;", '"'))


def decode_entities(text: str) -> str:
    """
    Replace ``&#039;`` and ``&quot;`` with the characters they stand for.

    Args:
        text: the raw attribute value.

    Returns:
        The value with quotes restored.

    """
    for entity, char in ENTITIES:
        text = text.replace(entity, char)
    return text


def encode_entities(text: str) -> str:
    """
    Inverse of :func:`decode_entities`, used on values sent back to the
    directory in search filters.
    """
    for entity, char in ENTITIES:
        text = text.replace(char, entity)
    return text


@dataclass(frozen=True)
class DirectoryRecord:
    """
    One person entry as retrieved from the directory.

    ``o`` may be a composite ``"organization, department"`` value; see
    :attr:`organization_parts`.
    """

    dn: str = ""
    cn: str = ""
    o: str = ""
    ou: str = ""
    title: str = ""
    mail: str = ""
    telephone_number: str = ""
    locality: str = ""
    postal_address: str = ""

    #: Map of record field name to LDAP attribute name.
    ATTRIBUTES: ClassVar[dict[str, str]] = {
        "cn": "cn",
        "o": "o",
        "ou": "ou",
        "title": "title",
        "mail": "mail",
        "telephone_number": "telephoneNumber",
        "locality": "l",
        "postal_address": "postalAddress",
    }
    #: Fields whose values arrive entity-escaped.
    ESCAPED: ClassVar[frozenset[str]] = frozenset({"o", "ou", "postal_address"})

    @classmethod
    def attribute_names(cls) -> list[str]:
        """Return the LDAP attributes needed to populate a full record."""
        return list(cls.ATTRIBUTES.values())

    @classmethod
    def from_db(cls, dn: str, attrs: LDAPAttributes) -> "DirectoryRecord":
        """
        Build a record from one python-ldap ``(dn, attrs)`` result.

        Only the first value of multi-valued attributes is kept.  Attribute
        names are matched case-insensitively, since servers are free to
        return them in any case.

        Args:
            dn: the entry's distinguished name.
            attrs: the attribute dictionary returned by python-ldap.

        Returns:
            A new record; missing attributes become empty strings.

        """
        lowered = {key.lower(): value for key, value in attrs.items()}
        kwargs: dict[str, str] = {"dn": dn}
        for field_name, attribute in cls.ATTRIBUTES.items():
            values = lowered.get(attribute.lower())
            value = values[0].decode("utf-8") if values else ""
            if field_name in cls.ESCAPED:
                value = decode_entities(value)
            kwargs[field_name] = value
        return cls(**kwargs)

    @classmethod
    def many_from_db(cls, data: list[LDAPData]) -> list["DirectoryRecord"]:
        return [cls.from_db(dn, attrs) for dn, attrs in data]

    @property
    def organization_parts(self) -> tuple[str, str]:
        """
        Split ``o`` on its first comma.

        Returns:
            ``(organization, department)``, both stripped.  ``department`` is
            ``""`` when ``o`` has no comma.

        """
        organization, _, department = self.o.partition(",")
        return organization.strip(), department.strip()

    @property
    def tree_path(self) -> str:
        """
        The Logical Tree Path leading to this record's place in the
        organization tree, e.g. ``"Acme:Sales:EMEA"``.  Empty levels are left
        out.
        """
        organization, department = self.organization_parts
        parts = [organization, department, self.ou.strip()]
        return ":".join(part for part in parts if part)

    def details(self) -> str:
        """Return the multi-line card shown for a selected person."""
        return "\n".join(
            [
                f"Name: {self.cn}",
                f"Email: {self.mail}",
                f"Phone: {self.telephone_number}",
                f"Title: {self.title}",
                f"Department: {self.ou}",
                f"Organization: {self.o}",
                f"City: {self.locality}",
                f"Address: {self.postal_address}",
            ]
        )

    def as_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
