"""Captured visual subtree: cloning, force-expanding, and share-control stripping.

A client that has no structured analysis data sends the rendered analysis
view as a tree of nodes (tag, text, inline style, attributes, children).
The fallback renderer works on a deep clone so the caller's tree is never
mutated.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping

HIDING_STYLES = ("max-height", "-webkit-line-clamp", "line-clamp", "-webkit-box-orient")
HIDING_CLASSES = {"hidden", "collapsed", "truncate", "line-clamp"}
HIDING_CLASS_PREFIXES = ("line-clamp-", "max-h-")
SHARE_CLASSES = {"share-actions", "share-button", "share-controls", "share-menu"}


@dataclass
class ViewNode:
    tag: str = "div"
    text: str = ""
    style: Dict[str, str] = field(default_factory=dict)
    attrs: Dict[str, str] = field(default_factory=dict)
    children: List["ViewNode"] = field(default_factory=list)
    src: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ViewNode":
        return cls(
            tag=str(data.get("tag") or "div").lower(),
            text=str(data.get("text") or ""),
            style={str(k).lower(): str(v) for k, v in (data.get("style") or {}).items()},
            attrs={str(k).lower(): str(v) for k, v in (data.get("attrs") or {}).items()},
            children=[cls.from_dict(child) for child in data.get("children") or [] if isinstance(child, Mapping)],
            src=data.get("src"),
        )

    @property
    def classes(self) -> List[str]:
        return self.attrs.get("class", "").split()

    def walk(self) -> Iterator["ViewNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


def clone_tree(node: ViewNode) -> ViewNode:
    return copy.deepcopy(node)


def expand_tree(root: ViewNode) -> int:
    """Undo everything that hides or clips content; returns the number of edits."""

    edits = 0
    for node in root.walk():
        if node.style.get("display", "").strip().lower() == "none":
            del node.style["display"]
            edits += 1
        if node.style.get("overflow", "").strip().lower() in {"hidden", "clip"}:
            del node.style["overflow"]
            edits += 1
        for key in HIDING_STYLES:
            if node.style.pop(key, None) is not None:
                edits += 1

        if node.attrs.pop("hidden", None) is not None:
            edits += 1
        if node.attrs.get("data-state") == "closed":
            node.attrs["data-state"] = "open"
            edits += 1
        if node.attrs.get("aria-expanded") == "false":
            node.attrs["aria-expanded"] = "true"
            edits += 1
        if node.tag == "details" and "open" not in node.attrs:
            node.attrs["open"] = "open"
            edits += 1

        classes = node.classes
        kept = [c for c in classes if c not in HIDING_CLASSES and not c.startswith(HIDING_CLASS_PREFIXES)]
        if len(kept) != len(classes):
            node.attrs["class"] = " ".join(kept)
            edits += len(classes) - len(kept)
    return edits


def is_share_control(node: ViewNode) -> bool:
    if "data-share-controls" in node.attrs or node.attrs.get("data-pdf-exclude") == "true":
        return True
    if SHARE_CLASSES.intersection(node.classes):
        return True
    return node.tag == "button" and "share" in node.attrs.get("aria-label", "").lower()


def strip_share_controls(root: ViewNode) -> int:
    """Remove share buttons/menus from the tree; returns how many were removed."""

    removed = 0
    for node in root.walk():
        kept = [child for child in node.children if not is_share_control(child)]
        removed += len(node.children) - len(kept)
        node.children = kept
    return removed


def image_sources(root: ViewNode) -> List[str]:
    return [node.src for node in root.walk() if node.tag == "img" and node.src]


__all__ = ["ViewNode", "clone_tree", "expand_tree", "image_sources", "is_share_control", "strip_share_controls"]
