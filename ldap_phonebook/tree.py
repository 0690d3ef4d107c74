"""
Organization tree construction.

The directory has no real hierarchy for people: every entry carries an ``o``
attribute (possibly ``"organization, department"``) and an ``ou`` attribute.
:func:`build_tree` groups a flat batch of :class:`~ldap_phonebook.records.DirectoryRecord`
objects into an :class:`OrgTree` of organizations, departments and units, and
:class:`TreeModel` lays that tree out in presentation order with colon
separated coordinates, the way a tree widget addresses its rows.
"""

import enum
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .records import DirectoryRecord, decode_entities

logger = logging.getLogger(__name__)

#: Display name of the root node.
ROOT_NAME = "Organizations and departments"
#: Coordinate of the root row in a :class:`TreeModel`.
ROOT_COORDINATE = "0"


class NodeKind(enum.Flag):
    """What a node was created as.  A name can be more than one of these."""

    ROOT = enum.auto()
    ORGANIZATION = enum.auto()
    DEPARTMENT = enum.auto()
    UNIT = enum.auto()


@dataclass
class TreeNode:
    name: str
    depth: int
    parent: int | None
    kind: NodeKind
    children: dict[str, int] = field(default_factory=dict)


class OrgTree:
    """
    An arena of :class:`TreeNode` objects addressed by integer index.

    Index ``0`` is the root.  Children are keyed by name (case-sensitive) and
    are unique per parent.  Nodes carry no reference to the records they were
    built from.

    Args:
        root_name: display name of the root node.

    """

    ROOT = 0

    def __init__(self, root_name: str = ROOT_NAME) -> None:
        self.nodes: list[TreeNode] = [
            TreeNode(name=root_name, depth=0, parent=None, kind=NodeKind.ROOT)
        ]

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> TreeNode:
        return self.nodes[index]

    def upsert(self, parent: int, name: str, kind: NodeKind) -> int:
        """
        Find or create the child of ``parent`` called ``name``.

        Args:
            parent: index of the parent node.
            name: display name of the child.
            kind: what the child is being used as; merged into the kind of an
                existing child.

        Returns:
            The index of the child.

        """
        node = self.nodes[parent]
        index = node.children.get(name)
        if index is None:
            index = len(self.nodes)
            self.nodes.append(
                TreeNode(name=name, depth=node.depth + 1, parent=parent, kind=kind)
            )
            node.children[name] = index
        else:
            self.nodes[index].kind |= kind
        return index

    def child(self, parent: int, name: str) -> int | None:
        return self.nodes[parent].children.get(name)

    def find(self, *names: str) -> int | None:
        """
        Follow ``names`` down from the root.

        Returns:
            The index of the node reached, or ``None`` if some name is missing.

        """
        index: int | None = self.ROOT
        for name in names:
            index = self.child(index, name)
            if index is None:
                return None
        return index

    def keys(self, index: int = ROOT) -> set[str]:
        """Return the names of the children of ``index``."""
        return set(self.nodes[index].children)

    def children(self, index: int = ROOT) -> list[int]:
        """
        Return the children of ``index`` in presentation order: a stable,
        case-insensitive sort on the display name.
        """
        return sorted(
            self.nodes[index].children.values(),
            key=lambda child: self.nodes[child].name.lower(),
        )

    def names(self, index: int) -> list[str]:
        """Return the names on the route from just below the root to ``index``."""
        route = []
        node = self.nodes[index]
        while node.parent is not None:
            route.append(node.name)
            node = self.nodes[node.parent]
        route.reverse()
        return route

    def logical_path(self, index: int) -> str:
        """Return the Logical Tree Path of ``index``, e.g. ``"Acme:Sales"``."""
        return ":".join(self.names(index))

    def walk(self, index: int = ROOT) -> Iterator[int]:
        """Iterate over ``index`` and its descendants, pre-order, sorted."""
        yield index
        for child in self.children(index):
            yield from self.walk(child)

    def shape(self, index: int = ROOT) -> dict[str, Any]:
        """
        Return the structure below ``index`` as nested dictionaries keyed by
        name, e.g. ``{"Acme": {"Sales": {"EMEA": {}}}}``.
        """
        return {
            self.nodes[child].name: self.shape(child)
            for child in self.nodes[index].children.values()
        }


def build_tree(
    records: Iterable[DirectoryRecord], root_name: str = ROOT_NAME
) -> OrgTree:
    """
    Group ``records`` into an organization tree.

    For each record the ``o`` value is entity-decoded and split on its first
    comma into organization and department; all three names, the unit from
    ``ou`` included, are trimmed.  Records then land at
    ``root -> organization -> department -> unit`` or, when there is no
    department, ``root -> organization -> unit``.  Records with an empty
    organization are skipped, and an empty ``ou`` just stops the descent one
    level early.

    Args:
        records: the records to group, in any order.

    Keyword Args:
        root_name: display name of the root node.

    Returns:
        A new :class:`OrgTree`.

    """
    tree = OrgTree(root_name=root_name)
    skipped = 0
    for record in records:
        organization, _, department = decode_entities(record.o).partition(",")
        organization = organization.strip()
        department = department.strip()
        if not organization:
            skipped += 1
            continue
        parent = tree.upsert(OrgTree.ROOT, organization, NodeKind.ORGANIZATION)
        if department:
            parent = tree.upsert(parent, department, NodeKind.DEPARTMENT)
        unit = decode_entities(record.ou).strip()
        if unit:
            tree.upsert(parent, unit, NodeKind.UNIT)
    logger.debug("tree.build nodes=%d skipped=%d", len(tree), skipped)
    return tree


@dataclass(frozen=True)
class TreeIter:
    """Position of a row among its siblings in a :class:`TreeModel`."""

    parent: str
    position: int


class TreeModel:
    """
    A materialized, ordered rendering of an :class:`OrgTree`.

    Rows are addressed by coordinates: ``"0"`` is the root row and
    ``"0:2:1"`` is the second child of the third child of the root, counting
    in presentation order.  This is the navigator consumed by
    :func:`ldap_phonebook.paths.resolve_path`.

    Args:
        tree: the tree to lay out.

    """

    def __init__(self, tree: OrgTree) -> None:
        self.tree = tree
        #: coordinate of a row -> node indexes of its children, in order
        self._children: dict[str, list[int]] = {}
        #: node index -> coordinate
        self._coordinates: dict[int, str] = {}
        self._layout(OrgTree.ROOT, ROOT_COORDINATE)

    def _layout(self, index: int, coordinate: str) -> None:
        self._coordinates[index] = coordinate
        children = self.tree.children(index)
        self._children[coordinate] = children
        for position, child in enumerate(children):
            self._layout(child, f"{coordinate}:{position}")

    def first_child(self, coordinate: str) -> TreeIter | None:
        if self._children.get(coordinate):
            return TreeIter(coordinate, 0)
        return None

    def next_sibling(self, it: TreeIter) -> TreeIter | None:
        if it.position + 1 < len(self._children[it.parent]):
            return TreeIter(it.parent, it.position + 1)
        return None

    def name_at(self, it: TreeIter) -> str:
        return self.tree[self._children[it.parent][it.position]].name

    def coordinate(self, it: TreeIter) -> str:
        return f"{it.parent}:{it.position}"

    def node_at(self, coordinate: str) -> int | None:
        """
        Return the node index of the row at ``coordinate``, or ``None`` if no
        such row exists.
        """
        parts = coordinate.split(":")
        if parts[0] != ROOT_COORDINATE:
            return None
        index = OrgTree.ROOT
        parent = ROOT_COORDINATE
        for part in parts[1:]:
            if not (part.isascii() and part.isdigit()):
                return None
            position = int(part)
            children = self._children[parent]
            if position >= len(children):
                return None
            index = children[position]
            parent = f"{parent}:{position}"
        return index

    def coordinate_of(self, index: int) -> str:
        return self._coordinates[index]

    def rows(self) -> Iterator[tuple[str, TreeNode]]:
        """Iterate over ``(coordinate, node)`` pairs in display order."""
        for index in self.tree.walk():
            yield self._coordinates[index], self.tree[index]
