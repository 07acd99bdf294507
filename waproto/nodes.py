"""Closed node model for the JavaScript shapes found in spec modules.

Only a handful of ECMAScript constructs ever appear in a spec function, so
tree-sitter nodes are converted into these small dataclasses.  Anything the
convention does not use becomes an ``OtherNode`` carrying the grammar type,
and dispatch code treats it as a structural mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class Node:
    line: int = field(default=0, kw_only=True)

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass
class Identifier(Node):
    name: str


@dataclass
class NumericLiteral(Node):
    value: Union[int, float]
    raw: str = ''


@dataclass
class StringLiteral(Node):
    value: str


@dataclass
class MemberExpression(Node):
    object: Node
    property: Node


@dataclass
class AssignmentExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass
class SequenceExpression(Node):
    expressions: List[Node]


@dataclass
class CallExpression(Node):
    callee: Node
    arguments: List[Node]


@dataclass
class BinaryExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass
class UnaryExpression(Node):
    operator: str
    argument: Node


@dataclass
class ObjectProperty(Node):
    key: Node
    value: Node


@dataclass
class ObjectExpression(Node):
    properties: List[Node]


@dataclass
class ArrayExpression(Node):
    elements: List[Node]


@dataclass
class BlockStatement(Node):
    body: List[Node]


@dataclass
class FunctionExpression(Node):
    body: Node
    is_arrow: bool = False


@dataclass
class ExpressionStatement(Node):
    expression: Node


@dataclass
class VariableDeclarator(Node):
    id: Node
    init: Optional[Node]


@dataclass
class VariableDeclaration(Node):
    kind_keyword: str  # "var", "let" or "const"
    declarations: List[VariableDeclarator]


@dataclass
class OtherNode(Node):
    """Any grammar shape outside the convention (kept for error messages)."""
    type: str
    text: str = ''

    @property
    def kind(self) -> str:
        return self.type


def member_name(node: Node) -> Optional[str]:
    """Return ``c`` for ``a.b.c`` style accesses, else None."""
    if isinstance(node, MemberExpression) and isinstance(node.property, Identifier):
        return node.property.name
    return None


def key_name(node: Node) -> Optional[str]:
    """Name of an object key written as an identifier or a string literal."""
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, StringLiteral):
        return node.value
    return None


def format_number(value: Union[int, float]) -> str:
    """Render a numeric literal the way JavaScript's ``toString`` does."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
