"""
Type aliases for raw python-ldap data.
"""

LDAPAttributes = dict[str, list[bytes]]
LDAPData = tuple[str, LDAPAttributes]
