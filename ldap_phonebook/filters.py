"""
Search filter construction.

Filters are assembled with :mod:`ldap_filter` so that every value typed by a
user or taken from the tree is escaped before it reaches the directory.
Values are also entity-encoded first (``'`` becomes ``&#039;``), because that
is how the directory stores quotes in ``o`` and ``ou``.

The ``*_criteria`` functions return :class:`ldap_filter.Filter` objects that
can be combined further; the ``build_*`` functions render them to strings.
"""

from ldap_filter import Filter

from .records import encode_entities
from .tree import NodeKind, OrgTree

#: Object class of the entries the phonebook lists.
PERSON_OBJECTCLASS = "inetOrgPerson"
#: Attributes matched by a free-text search.
TEXT_SEARCH_ATTRIBUTES: tuple[str, ...] = ("cn", "mail", "telephoneNumber")

#: Latin key -> Cyrillic letter on the same key of a standard Russian layout.
KEYBOARD_LAYOUT: dict[str, str] = dict(
    zip(
        "qwertyuiop[]asdfghjkl;'zxcvbnm,."
        'QWERTYUIOP{}ASDFGHJKL:"ZXCVBNM<>',
        "йцукенгшщзхъфывапролджэячсмитьбю"
        "ЙЦУКЕНГШЩЗХЪФЫВАПРОЛДЖЭЯЧСМИТЬБЮ",
        strict=True,
    )
)


def transliterate(text: str) -> str:
    """
    Re-read ``text`` as if it had been typed with a Russian keyboard layout
    active, e.g. ``"ghbdtn"`` becomes ``"привет"``.

    Characters with no entry in :data:`KEYBOARD_LAYOUT` (digits, spaces,
    anything already Cyrillic) are dropped.  The result is stripped.
    """
    return "".join(KEYBOARD_LAYOUT[char] for char in text if char in KEYBOARD_LAYOUT).strip()


def text_criteria(text: str) -> Filter:
    value = encode_entities(text)
    return Filter.OR(
        [Filter.attribute(name).contains(value) for name in TEXT_SEARCH_ATTRIBUTES]
    )


def department_criteria(
    organization: str, department: str | None = None, unit: str | None = None
) -> Filter:
    """
    Return the criteria matching the people the tree builder placed below
    ``organization``, ``department`` and/or ``unit``.

    Args:
        organization: name of the organization.

    Keyword Args:
        department: name of the department, if the node is below one.
        unit: name of the unit, if one was chosen.

    Returns:
        * unit below a department: ``(&(o=org, dept)(ou=unit))``
        * unit directly below the organization: ``(&(o=org)(ou=unit))``
        * department without a unit: ``(o=org, dept)``
        * organization alone: ``(o=org)``

    """
    o = f"{organization}, {department}" if department else organization
    o_filter = Filter.attribute("o").equal_to(encode_entities(o))
    if not unit:
        return o_filter
    return Filter.AND(
        [o_filter, Filter.attribute("ou").equal_to(encode_entities(unit))]
    )


def node_criteria(
    organization: str, department: str | None = None, unit: str | None = None
) -> Filter:
    """
    Like :func:`department_criteria`, but for a node of a built tree.

    :func:`~ldap_phonebook.tree.build_tree` files both ``o=Acme, Sales`` and
    ``o=Acme,Sales`` under ``Acme -> Sales``, so the ``o`` clause of a
    department accepts either spelling.
    """
    if not department:
        return department_criteria(organization, unit=unit)
    o_filter = Filter.OR(
        [
            Filter.attribute("o").equal_to(
                encode_entities(f"{organization}{separator}{department}")
            )
            for separator in (", ", ",")
        ]
    )
    if not unit:
        return o_filter
    return Filter.AND(
        [o_filter, Filter.attribute("ou").equal_to(encode_entities(unit))]
    )


def selection_criteria(tree: OrgTree, index: int) -> Filter | None:
    """
    Return the criteria listing the people below the tree node ``index``.

    Only nodes below the organization level select anybody.  A node directly
    below an organization may be a department, a unit, or both (when the
    same name is used both ways); the criteria cover each use.

    Returns:
        The criteria, or ``None`` for the root, organization nodes and
        anything deeper than a unit.

    """
    node = tree[index]
    names = tree.names(index)
    if node.depth == 2:
        organization, name = names
        clauses = []
        if NodeKind.DEPARTMENT in node.kind:
            clauses.append(node_criteria(organization, department=name))
        if NodeKind.UNIT in node.kind:
            clauses.append(node_criteria(organization, unit=name))
        if len(clauses) == 1:
            return clauses[0]
        return Filter.OR(clauses)
    if node.depth == 3:
        organization, department, unit = names
        return node_criteria(organization, department=department, unit=unit)
    return None


def build_text_filter(text: str) -> str:
    """
    Return the filter for a free-text search: ``text`` anywhere in the common
    name, mail address or telephone number.
    """
    return text_criteria(text).to_string()


def build_department_filter(
    organization: str, department: str | None = None, unit: str | None = None
) -> str:
    """Render :func:`department_criteria` to a filter string."""
    return department_criteria(organization, department, unit).to_string()


def build_selection_filter(tree: OrgTree, index: int) -> str | None:
    """Render :func:`selection_criteria` to a filter string."""
    criteria = selection_criteria(tree, index)
    if criteria is None:
        return None
    return criteria.to_string()


def build_people_filter(criteria: Filter) -> str:
    """Restrict ``criteria`` to person entries and render the result."""
    return Filter.AND(
        [Filter.attribute("objectClass").equal_to(PERSON_OBJECTCLASS), criteria]
    ).to_string()
