"""Turn a tree back into text.

`serialize` is the canonical, single-line form handed to the encoder.
`pretty_print` is an indented rendering for humans; it parses back to the
same tree.
"""

from __future__ import annotations

from swl.tree import Atom, Node, SExpr

# Forms that stay on one line when pretty printing
INLINE_FORMS = frozenset({
    "param",
    "result",
    "local",
    "export",
    "import",
    "type",
    "start",
    "memory",
    "table",
    "global",
    "global.get",
    "local.get",
})


def serialize(node: Node) -> str:
    """Render a node as `(` + children joined by single spaces + `)`.

    Atoms are emitted verbatim.
    """
    if isinstance(node, Atom):
        return node.text
    parts: list[str] = []
    _serialize_into(node, parts)
    return "".join(parts)


def _serialize_into(root: SExpr, parts: list[str]) -> None:
    # Explicit stack: a pending ")" marker or a node to render
    stack: list[Node | None] = [root]
    while stack:
        node = stack.pop()
        if node is None:
            parts.append(")")
        elif isinstance(node, Atom):
            parts.append(node.text)
        else:
            parts.append("(")
            stack.append(None)
            for idx in range(len(node.items) - 1, -1, -1):
                stack.append(node.items[idx])
                if idx > 0:
                    stack.append(_SPACE)


_SPACE = Atom(" ")


def _is_inline(node: SExpr) -> bool:
    tag = node.tag
    if tag is None:
        return not any(node.forms())
    return tag in INLINE_FORMS or tag.endswith(".const") or not any(node.forms())


def pretty_print(node: Node, indent: int = 2) -> str:
    """Render a node over several lines.

    Leaf-like forms (`param`, `result`, `export`, `*.const`, ...) and lists
    without nested lists stay on one line; everything else puts each child on
    its own line, indented by `indent` spaces per level.
    """
    lines: list[str] = []
    _pretty_into(node, 0, indent, lines)
    return "\n".join(lines) + "\n"


def _pretty_into(node: Node, level: int, indent: int, lines: list[str]) -> None:
    pad = " " * (level * indent)
    if isinstance(node, Atom) or _is_inline(node):
        lines.append(pad + serialize(node))
        return
    head: list[str] = []
    rest = node.items
    # Keep the tag and the atoms directly after it on the opening line
    for idx, item in enumerate(node.items):
        if not isinstance(item, Atom):
            rest = node.items[idx:]
            break
        head.append(item.text)
    else:
        rest = []
    lines.append(pad + "(" + " ".join(head))
    for item in rest:
        _pretty_into(item, level + 1, indent, lines)
    lines[-1] += ")"


__all__ = ["INLINE_FORMS", "pretty_print", "serialize"]
