"""
An organizational phonebook backed by an LDAP directory.
"""

__version__ = "0.8.0"
