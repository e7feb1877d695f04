"""
Thin helpers over the tree-sitter Rust grammar.

Only the handful of node kinds the analyzer cares about are covered: module,
struct and function items, their outer attributes, and type paths.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from tree_sitter import Language, Parser, Node
import tree_sitter_rust as tsrust

RUST_LANGUAGE = Language(tsrust.language())

_WHITESPACE = re.compile(r"\s+")
# Spaces the pretty printer may put around path separators and generics
_PUNCT_SPACING = re.compile(r"\s*(::|<|>|,)\s*")

COMMENT_KINDS = ("line_comment", "block_comment")
PATH_TYPE_KINDS = ("type_identifier", "scoped_type_identifier")


def parse(code: str) -> Node:
    """Parse Rust source and return the root node."""
    parser = Parser(RUST_LANGUAGE)
    return parser.parse(code.encode("utf8")).root_node


def node_text(node: Node) -> str:
    """Returns source text of a node as UTF-8 string."""
    return node.text.decode("utf8", errors="ignore")


def normalize_type(text: str) -> str:
    """Canonical spelling of a type: `Account < 'info , T >` -> `Account<'info, T>`."""
    text = _WHITESPACE.sub(" ", text.strip())
    text = _PUNCT_SPACING.sub(lambda m: ", " if m.group(1) == "," else m.group(1), text)
    return text


def name_of(node: Node) -> Optional[str]:
    name = node.child_by_field_name("name")
    return node_text(name) if name is not None else None


def outer_attributes(node: Node) -> List[str]:
    """
    Attribute bodies attached to an item, outermost first.

    tree-sitter keeps `#[...]` as sibling nodes preceding the item, so walk
    backwards over attribute and comment siblings.
    """
    attrs = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type in ("attribute_item",) + COMMENT_KINDS:
        if sibling.type == "attribute_item":
            for child in sibling.named_children:
                if child.type == "attribute":
                    attrs.append(node_text(child))
        sibling = sibling.prev_sibling
    attrs.reverse()
    return attrs


def attribute_path(attribute: str) -> str:
    """`account(mut, close = x)` -> `account`."""
    return re.split(r"[(=\s]", attribute, maxsplit=1)[0]


def attribute_arguments(attribute: str) -> List[str]:
    """
    Top-level comma separated arguments of `path(...)`.

    Nested brackets are respected so `seeds = [a, b]` stays one argument.
    """
    start = attribute.find("(")
    if start < 0 or not attribute.endswith(")"):
        return []
    body = attribute[start + 1:-1]
    args, depth, current = [], 0, []
    for ch in body:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    tail = "".join(current).strip()
    if tail:
        args.append(tail)
    return args


@dataclass
class TypeRef:
    """
    Structural view of a Rust type as written in the source.

    `path` holds the path segments (`["anchor_lang", "prelude", "Account"]`),
    `args` the generic arguments in order (lifetimes included, see
    `is_lifetime`). Anything that is not a plain or generic path (references,
    tuples, arrays...) has an empty path and `kind` set to the grammar node
    type.
    """
    text: str
    kind: str
    path: List[str] = field(default_factory=list)
    args: List["TypeRef"] = field(default_factory=list)

    @property
    def ident(self) -> Optional[str]:
        return self.path[-1] if self.path else None

    @property
    def is_lifetime(self) -> bool:
        return self.kind == "lifetime"

    @property
    def is_path(self) -> bool:
        return bool(self.path)

    @property
    def type_args(self) -> List["TypeRef"]:
        """Generic arguments without lifetimes."""
        return [a for a in self.args if not a.is_lifetime]

    @classmethod
    def from_node(cls, node: Node) -> "TypeRef":
        text = normalize_type(node_text(node))
        if node.type in PATH_TYPE_KINDS:
            return cls(text=text, kind=node.type, path=_split_path(node_text(node)))
        if node.type == "generic_type":
            base = node.child_by_field_name("type")
            arguments = node.child_by_field_name("type_arguments")
            args = []
            if arguments is not None:
                for child in arguments.named_children:
                    if child.type in COMMENT_KINDS:
                        continue
                    args.append(cls.from_node(child))
            path = _split_path(node_text(base)) if base is not None else []
            return cls(text=text, kind=node.type, path=path, args=args)
        return cls(text=text, kind=node.type)

    @classmethod
    def parse(cls, text: str) -> "TypeRef":
        """Parse a standalone type by wrapping it in a type alias."""
        root = parse(f"type __T = {text};")
        for item in root.named_children:
            if item.type == "type_item":
                ty = item.child_by_field_name("type")
                if ty is not None:
                    return cls.from_node(ty)
        return cls(text=normalize_type(text), kind="unknown")


def _split_path(text: str) -> List[str]:
    return [seg.strip() for seg in text.split("::") if seg.strip()]
