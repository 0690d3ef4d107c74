"""
Logical Tree Path resolution.

A Logical Tree Path such as ``"Acme:Sales:EMEA"`` names a route through the
organization tree.  :func:`resolve_path` turns one into the coordinate of a
row in a rendered tree, so that the row for a person picked from search
results can be expanded, selected and scrolled into view.
"""

import logging
from typing import Any, Protocol

from .exceptions import InvalidPath
from .tree import ROOT_COORDINATE

logger = logging.getLogger(__name__)


class TreeNavigator(Protocol):
    """
    The traversal primitives of a rendered tree.

    :class:`ldap_phonebook.tree.TreeModel` implements this; a widget-backed
    tree store can too.
    """

    def first_child(self, coordinate: str) -> Any | None:
        """Return an iterator on the first child of ``coordinate``, or ``None``."""

    def next_sibling(self, it: Any) -> Any | None:
        """Return an iterator on the sibling after ``it``, or ``None``."""

    def name_at(self, it: Any) -> str:
        """Return the display name of the row at ``it``."""


def split_path(path: str) -> list[str]:
    """
    Split a Logical Tree Path into stripped segments.

    Raises:
        InvalidPath: a segment is empty after stripping (this includes ``""``).

    """
    segments = [segment.strip() for segment in path.split(":")]
    if not all(segments):
        raise InvalidPath(path)
    return segments


def find_on_level(navigator: TreeNavigator, coordinate: str, name: str) -> int | None:
    """
    Scan the children of ``coordinate`` for one called exactly ``name``.

    Returns:
        The 0-based position of the match among its siblings, or ``None``.

    """
    it = navigator.first_child(coordinate)
    position = 0
    while it is not None:
        if navigator.name_at(it) == name:
            return position
        it = navigator.next_sibling(it)
        position += 1
    return None


def resolve_path(
    path: str, navigator: TreeNavigator, root: str = ROOT_COORDINATE
) -> str:
    """
    Return the coordinate of the row that ``path`` leads to.

    Segments are matched one level at a time, case-sensitively.  A segment
    that matches no sibling is skipped and the next segment is tried against
    the same level, so a partly wrong path still yields the deepest row that
    could be matched; if nothing matches the result is ``root``.

    Args:
        path: a Logical Tree Path, e.g. ``"Acme:Sales:EMEA"``.
        navigator: the rendered tree to search.

    Keyword Args:
        root: coordinate of the root row.

    Raises:
        InvalidPath: ``path`` has an empty segment.  Nothing is searched.

    Returns:
        A coordinate such as ``"0:1:0:2"``.

    """
    coordinate = root
    for segment in split_path(path):
        position = find_on_level(navigator, coordinate, segment)
        if position is None:
            logger.debug(
                "paths.resolve.not_found segment=%r path=%r at=%s",
                segment,
                path,
                coordinate,
            )
            continue
        coordinate = f"{coordinate}:{position}"
    return coordinate
