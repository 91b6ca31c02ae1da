"""Action vocabulary for permissions.

Provides:
- ``Action``: well-known action tags plus the ``crud`` shorthand.
- ``expand_actions()``: resolve ``crud`` into the four base actions.
"""

from __future__ import annotations

from typing import Iterable


class Action:
    """Well-known action tags.

    Actions are plain strings. Callers are free to define their own tags
    (``"approve"``, ``"publish"``) next to these.

    ``CRUD`` is shorthand for create+read+update+delete and is never stored:
    it is expanded wherever it is accepted as input.

    ``NONE`` (the empty tag) is only meaningful as a query wildcard:
    "the permission exists, any action".
    """

    NONE = ""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    CRUD = "crud"
    DOWNLOAD = "download"
    UPLOAD = "upload"

    BASE = ("create", "read", "update", "delete")


def expand_actions(actions: Iterable[str]) -> tuple[str, ...]:
    """Expand ``crud`` and drop duplicates, keeping first-seen order.

    Example::

        >>> expand_actions(("crud", "approve", "read"))
        ('create', 'read', 'update', 'delete', 'approve')
    """
    expanded: list[str] = []
    for action in actions:
        parts = Action.BASE if action == Action.CRUD else (action,)
        for part in parts:
            if part not in expanded:
                expanded.append(part)
    return tuple(expanded)


__all__ = [
    "Action",
    "expand_actions",
]
