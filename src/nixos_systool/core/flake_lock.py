"""Pure interpretation of parsed ``flake.lock`` documents.

The lock file is JSON with a ``nodes`` table; the ``root`` node maps
input names to node names.  Reading the file is the infra layer's job;
everything here operates on the already-parsed mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from nixos_systool.core.generation import timestamp_from_epoch
from nixos_systool.core.models import InputChange, LockStatus
from nixos_systool.exceptions import NotFoundError


def _nodes(lock: Mapping[str, Any]) -> Mapping[str, Any]:
    nodes = lock.get("nodes")
    return nodes if isinstance(nodes, Mapping) else {}


def _root_inputs(lock: Mapping[str, Any]) -> dict[str, str]:
    """Map direct input names to node names, skipping ``follows`` entries."""
    root_name = lock.get("root", "root")
    root = _nodes(lock).get(root_name, {})
    inputs = root.get("inputs", {}) if isinstance(root, Mapping) else {}
    return {name: node for name, node in inputs.items() if isinstance(node, str)}


def find_input_node(lock: Mapping[str, Any], input_name: str) -> Mapping[str, Any] | None:
    """Return the node for *input_name*, or ``None`` when absent."""
    node_name = _root_inputs(lock).get(input_name, input_name)
    node = _nodes(lock).get(node_name)
    return node if isinstance(node, Mapping) else None


def last_modified(lock: Mapping[str, Any], input_name: str = "nixpkgs") -> datetime | None:
    """Return the locked ``lastModified`` time of *input_name*, if any."""
    node = find_input_node(lock, input_name)
    if node is None:
        return None
    locked = node.get("locked")
    if not isinstance(locked, Mapping):
        return None
    return timestamp_from_epoch(locked.get("lastModified"))


def lock_age_status(
    lock: Mapping[str, Any],
    *,
    allowed_age: int,
    now: datetime,
    input_name: str = "nixpkgs",
) -> LockStatus:
    """Evaluate how old the locked revision of *input_name* is.

    An input is outdated once its age reaches *allowed_age* days.

    Raises
    ------
    NotFoundError
        When the lock has no usable entry for *input_name*.
    """
    updated = last_modified(lock, input_name)
    if updated is None:
        raise NotFoundError(
            f"Cannot find a locked '{input_name}' input in the flake lock.",
        )
    age = now - updated
    return LockStatus(
        input_name=input_name,
        last_update=updated,
        age=age,
        outdated=age >= timedelta(days=allowed_age),
    )


def locked_revisions(lock: Mapping[str, Any]) -> dict[str, str | None]:
    """Return ``{input name: locked rev or narHash}`` for direct inputs."""
    revisions: dict[str, str | None] = {}
    for name in _root_inputs(lock):
        node = find_input_node(lock, name) or {}
        locked = node.get("locked")
        if isinstance(locked, Mapping):
            revisions[name] = locked.get("rev") or locked.get("narHash")
        else:
            revisions[name] = None
    return revisions


def diff_locks(old: Mapping[str, Any], new: Mapping[str, Any]) -> list[InputChange]:
    """List inputs added, removed, or re-locked between two lock files."""
    before = locked_revisions(old)
    after = locked_revisions(new)
    return [
        InputChange(name=name, old_rev=before.get(name), new_rev=after.get(name))
        for name in sorted(before.keys() | after.keys())
        if before.get(name) != after.get(name)
    ]
