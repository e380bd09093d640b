"""Key-path helpers for the document store.

A path is a "/"-separated list of keys: "polls/abc/options/0/voteCount".
Numeric segments index into lists. The helpers here operate on plain JSON
trees (dict / list / scalars) and are shared by every store backend, so the
memory and PostgreSQL stores apply writes with identical semantics.
"""

from typing import Any, Dict, List, Optional, Tuple

from exceptions import InvalidPathError, StoreError

FORBIDDEN_KEY_CHARS = frozenset(".#$[]")

# collection/document; anything deeper is a field inside a document
DOCUMENT_DEPTH = 2


def split_path(path: str) -> List[str]:
    """Split and validate a key path.

    Raises:
        InvalidPathError: empty path, empty segment or forbidden character
    """
    if not isinstance(path, str):
        raise InvalidPathError("Path must be a string", path=repr(path))

    trimmed = path.strip("/")
    if not trimmed:
        raise InvalidPathError("Path cannot be empty", path=path)

    segments = trimmed.split("/")
    for segment in segments:
        if not segment:
            raise InvalidPathError("Path contains an empty segment", path=path)
        if FORBIDDEN_KEY_CHARS.intersection(segment):
            raise InvalidPathError(
                f"Key '{segment}' contains a forbidden character", path=path
            )
    return segments


def join_path(*parts: str) -> str:
    """Join path parts, validating the result."""
    path = "/".join(str(part).strip("/") for part in parts if str(part).strip("/"))
    split_path(path)
    return path


def document_of(segments: List[str]) -> Optional[List[str]]:
    """collection/document prefix of a field path, None for shallower paths"""
    return segments[:DOCUMENT_DEPTH] if len(segments) > DOCUMENT_DEPTH else None


def is_related(a: List[str], b: List[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    return longer[: len(shorter)] == shorter


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment)
    if isinstance(node, list) and segment.isdigit():
        index = int(segment)
        return node[index] if index < len(node) else None
    return None


def _assign(node: Any, segment: str, value: Any) -> None:
    if isinstance(node, list):
        if not segment.isdigit():
            raise InvalidPathError(f"'{segment}' is not a list index")
        index = int(segment)
        if index < len(node):
            node[index] = value
        elif index == len(node):
            node.append(value)
        else:
            raise InvalidPathError(f"List index {index} out of range")
    else:
        node[segment] = value


def get_in(tree: Any, segments: List[str]) -> Any:
    """Value at segments, or None if any key is missing."""
    node = tree
    for segment in segments:
        node = _child(node, segment)
        if node is None:
            return None
    return node


def set_in(tree: Any, segments: List[str], value: Any) -> Any:
    """Write value at segments, creating intermediate maps.

    Returns the (possibly new) tree root. A None value removes the key.
    """
    if not segments:
        return value

    if value is None:
        remove_in(tree, segments)
        return tree

    if not isinstance(tree, (dict, list)):
        tree = {}

    node = tree
    for segment in segments[:-1]:
        child = _child(node, segment)
        if not isinstance(child, (dict, list)):
            child = {}
            _assign(node, segment, child)
        node = child
    _assign(node, segments[-1], value)
    return tree


def remove_in(tree: Any, segments: List[str]) -> bool:
    """Remove the key at segments. Returns True if something was removed."""
    if not segments:
        return False

    parent = get_in(tree, segments[:-1]) if len(segments) > 1 else tree
    last = segments[-1]

    if isinstance(parent, dict):
        return parent.pop(last, None) is not None
    if isinstance(parent, list) and last.isdigit() and int(last) < len(parent):
        del parent[int(last)]
        return True
    return False


def update_in(tree: Any, segments: List[str], fields: Dict[str, Any]) -> Any:
    """Merge fields (keys may be relative sub-paths) below segments."""
    for key, value in fields.items():
        tree = set_in(tree, segments + split_path(key), value)
    return tree


def increment_in(
    tree: Any,
    segments: List[str],
    deltas: Dict[str, int],
    floor: int = 0,
) -> Tuple[Any, Dict[str, int]]:
    """Apply numeric deltas below segments, flooring every result.

    Missing fields count as 0.

    Returns:
        (new tree root, {relative key: new value})

    Raises:
        StoreError: target field holds a non-numeric value
    """
    results: Dict[str, int] = {}
    for key, delta in deltas.items():
        target = segments + split_path(key)
        current = get_in(tree, target)
        if current is None:
            current = 0
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            raise StoreError(
                "Cannot increment a non-numeric field",
                {"path": "/".join(target), "value_type": type(current).__name__},
            )
        new_value = max(floor, int(current) + int(delta))
        tree = set_in(tree, target, new_value)
        results[key] = new_value
    return tree, results
