"""
Shared directory data for the tests that run against python-ldap-faker.
"""

import copy
from typing import Any

BASEDN = "dc=example,dc=com"

SERVER_CONFIG: dict[str, Any] = {
    "basedn": BASEDN,
    "read": {
        "url": "ldap://localhost:389",
        "user": "cn=admin,dc=example,dc=com",
        "password": "admin",
        "use_starttls": False,
        "tls_verify": "never",
        "timeout": 15.0,
        "sizelimit": None,
        "follow_referrals": False,
        "paged_search": False,
    },
}


def server_config(**read) -> dict[str, Any]:
    """Return a copy of SERVER_CONFIG with ``read`` settings overridden."""
    config = copy.deepcopy(SERVER_CONFIG)
    config["read"].update(read)
    return config


def person(uid: str, cn: str, o: str | None, ou: str | None = None, **attrs: str):
    data: dict[str, list[bytes]] = {
        "uid": [uid.encode()],
        "cn": [cn.encode()],
        "objectclass": [b"inetOrgPerson", b"organizationalPerson", b"person", b"top"],
    }
    if o is not None:
        data["o"] = [o.encode()]
    if ou is not None:
        data["ou"] = [ou.encode()]
    for key, value in attrs.items():
        data[key] = [value.encode()]
    return [f"uid={uid},ou=people,{BASEDN}", data]


ADMIN = [
    f"cn=admin,{BASEDN}",
    {
        "cn": [b"admin"],
        "userPassword": [b"admin"],
        "objectclass": [b"simpleSecurityObject", b"organizationalRole", b"top"],
    },
]

PEOPLE_OU = [
    f"ou=people,{BASEDN}",
    {"ou": [b"people"], "objectclass": [b"organizationalUnit", b"top"]},
]

PEOPLE = [
    person(
        "alice",
        "Alice Johnson",
        "Acme, Sales",
        "EMEA",
        mail="alice@acme.example",
        telephoneNumber="555-0101",
        title="Sales Manager",
        l="Berlin",
    ),
    person(
        "bob",
        "Bob Smith",
        "Acme, Sales",
        "APAC",
        mail="bob@acme.example",
        telephoneNumber="555-0102",
        title="Account Executive",
        l="Singapore",
    ),
    person(
        "carol",
        "Carol White",
        "Beta",
        mail="carol@beta.example",
        telephoneNumber="555-0201",
    ),
    person(
        "dave",
        "Dave Brown",
        "Beta",
        "Support",
        mail="dave@beta.example",
        telephoneNumber="555-0202",
    ),
    person(
        "erin",
        "Erin Moss",
        "O&#039;Reilly Media",
        "Editorial",
        mail="erin@oreilly.example",
        telephoneNumber="555-0301",
    ),
    person("frank", "Frank Nobody", None, "Loose ends", mail="frank@example.com"),
    person(
        "ivanov",
        "Иванов Иван",
        "Beta",
        mail="ivanov@beta.example",
        telephoneNumber="555-0401",
    ),
]

ENTRIES = [ADMIN, PEOPLE_OU, *PEOPLE]


def load_directory(testcase) -> None:
    """Reset the fake directory of an LDAPFakerMixin test case to ENTRIES."""
    store = testcase.server_factory.default
    store.raw_objects.clear()
    store.objects.clear()
    for dn, attrs in ENTRIES:
        store.register_object((dn, copy.deepcopy(attrs)))
