#!/usr/bin/env python3
"""Parse the bundled WhatsApp Web script using tree-sitter.

Phase 2 of the extraction pipeline.
Produces the tree-sitter syntax tree and converts the parts the extractor
cares about (spec function bodies) into the node model in ``waproto.nodes``.
"""

import sys
from typing import List, Optional

import tree_sitter_javascript as tsjs
from tree_sitter import Language, Parser

from waproto.errors import SourceParseError, StructuralMismatch
from waproto.nodes import (
    ArrayExpression,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    CallExpression,
    ExpressionStatement,
    FunctionExpression,
    Identifier,
    MemberExpression,
    Node,
    NumericLiteral,
    ObjectExpression,
    ObjectProperty,
    OtherNode,
    SequenceExpression,
    StringLiteral,
    UnaryExpression,
    VariableDeclaration,
    VariableDeclarator,
)

JS_LANGUAGE = Language(tsjs.language())

# Nodes that never carry meaning for the convention
SKIPPED_TYPES = ('comment', 'hash_bang_line')

FUNCTION_TYPES = ('arrow_function', 'function_expression', 'function')


def get_node_text(node, source: bytes) -> str:
    """Extract text from a tree-sitter node."""
    return source[node.start_byte:node.end_byte].decode('utf-8')


def named_children(node) -> list:
    """Named children without comments."""
    return [child for child in node.named_children if child.type not in SKIPPED_TYPES]


def unwrap_parens(node):
    """Strip any number of ``( ... )`` around an expression."""
    while node is not None and node.type == 'parenthesized_expression':
        inner = named_children(node)
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def flatten_sequence(node) -> list:
    """Return the members of ``a, b, c`` whatever the grammar's nesting."""
    members = []
    for child in named_children(node):
        if child.type == 'sequence_expression':
            members.extend(flatten_sequence(child))
        else:
            members.append(child)
    return members


def expression_of(statement):
    """Expression carried by an ``expression_statement``."""
    children = named_children(statement)
    return unwrap_parens(children[0]) if children else None


def find_first_error(node):
    """Find the first ERROR or MISSING node, depth first."""
    if node.type == 'ERROR' or node.is_missing:
        return node
    for child in node.children:
        if child.has_error:
            found = find_first_error(child)
            if found is not None:
                return found
    return None


def parse_script(source: str, verbose: bool = False):
    """Parse JavaScript source and return ``(tree, source_bytes)``."""
    parser = Parser(JS_LANGUAGE)
    data = source.encode('utf-8')

    if verbose:
        print(f"Parsing {len(data)} bytes...", file=sys.stderr)

    tree = parser.parse(data)

    if tree.root_node.has_error:
        error = find_first_error(tree.root_node)
        line = error.start_point[0] + 1 if error is not None else 0
        raise SourceParseError(f"syntax error near line {line}")

    return tree, data


class NodeConverter:
    """Convert tree-sitter nodes into the closed node model."""

    def __init__(self, source: bytes):
        self.source = source

    def text(self, node) -> str:
        return get_node_text(node, self.source)

    def convert(self, node) -> Optional[Node]:
        if node is None:
            return None

        line = node.start_point[0] + 1
        handler = getattr(self, f'_convert_{node.type}', None)
        if handler is None:
            return OtherNode(type=node.type, text=self.text(node)[:80], line=line)
        return handler(node, line)

    def convert_all(self, nodes) -> List[Node]:
        return [self.convert(child) for child in nodes if child.type not in SKIPPED_TYPES]

    # --- statements -------------------------------------------------------

    def _convert_statement_block(self, node, line):
        return BlockStatement(body=self.convert_all(named_children(node)), line=line)

    def _convert_expression_statement(self, node, line):
        return ExpressionStatement(expression=self.convert(expression_of(node)), line=line)

    def _convert_lexical_declaration(self, node, line):
        kind = node.child_by_field_name('kind')
        keyword = kind.type if kind is not None else node.children[0].type
        return VariableDeclaration(
            kind_keyword=keyword,
            declarations=self._declarators(node),
            line=line,
        )

    def _convert_variable_declaration(self, node, line):
        return VariableDeclaration(kind_keyword='var', declarations=self._declarators(node), line=line)

    def _declarators(self, node) -> List[VariableDeclarator]:
        declarators = []
        for child in named_children(node):
            if child.type != 'variable_declarator':
                continue
            declarators.append(VariableDeclarator(
                id=self.convert(child.child_by_field_name('name')),
                init=self.convert(child.child_by_field_name('value')),
                line=child.start_point[0] + 1,
            ))
        return declarators

    # --- expressions ------------------------------------------------------

    def _convert_parenthesized_expression(self, node, line):
        inner = unwrap_parens(node)
        if inner is node:
            return OtherNode(type=node.type, text=self.text(node)[:80], line=line)
        return self.convert(inner)

    def _convert_sequence_expression(self, node, line):
        return SequenceExpression(expressions=self.convert_all(flatten_sequence(node)), line=line)

    def _convert_assignment_expression(self, node, line):
        return AssignmentExpression(
            operator='=',
            left=self.convert(node.child_by_field_name('left')),
            right=self.convert(node.child_by_field_name('right')),
            line=line,
        )

    def _convert_binary_expression(self, node, line):
        return BinaryExpression(
            operator=node.child_by_field_name('operator').type,
            left=self.convert(node.child_by_field_name('left')),
            right=self.convert(node.child_by_field_name('right')),
            line=line,
        )

    def _convert_unary_expression(self, node, line):
        operator = node.child_by_field_name('operator').type
        argument = self.convert(node.child_by_field_name('argument'))
        # -1 is a literal as far as enum values and defaults are concerned
        if operator == '-' and isinstance(argument, NumericLiteral):
            return NumericLiteral(value=-argument.value, raw=f'-{argument.raw}', line=line)
        return UnaryExpression(operator=operator, argument=argument, line=line)

    def _convert_call_expression(self, node, line):
        arguments = node.child_by_field_name('arguments')
        return CallExpression(
            callee=self.convert(node.child_by_field_name('function')),
            arguments=self.convert_all(named_children(arguments)) if arguments is not None else [],
            line=line,
        )

    def _convert_member_expression(self, node, line):
        prop = node.child_by_field_name('property')
        return MemberExpression(
            object=self.convert(node.child_by_field_name('object')),
            property=Identifier(name=self.text(prop), line=line),
            line=line,
        )

    def _convert_object(self, node, line):
        return ObjectExpression(properties=self.convert_all(named_children(node)), line=line)

    def _convert_pair(self, node, line):
        return ObjectProperty(
            key=self.convert(node.child_by_field_name('key')),
            value=self.convert(node.child_by_field_name('value')),
            line=line,
        )

    def _convert_array(self, node, line):
        return ArrayExpression(elements=self.convert_all(named_children(node)), line=line)

    def _convert_arrow_function(self, node, line):
        return FunctionExpression(body=self.convert(node.child_by_field_name('body')), is_arrow=True, line=line)

    def _convert_function_expression(self, node, line):
        return FunctionExpression(body=self.convert(node.child_by_field_name('body')), line=line)

    _convert_function = _convert_function_expression

    # --- leaves -----------------------------------------------------------

    def _convert_identifier(self, node, line):
        return Identifier(name=self.text(node), line=line)

    _convert_property_identifier = _convert_identifier

    def _convert_number(self, node, line):
        raw = self.text(node)
        return NumericLiteral(value=parse_number(raw), raw=raw, line=line)

    def _convert_string(self, node, line):
        parts = []
        for child in node.named_children:
            if child.type == 'escape_sequence':
                parts.append(decode_escape(self.text(child), line))
            elif child.type == 'string_fragment':
                parts.append(self.text(child))
        return StringLiteral(value=''.join(parts), line=line)


SINGLE_CHARACTER_ESCAPES = {
    'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t', 'v': '\v', '0': '\0',
}

LINE_TERMINATORS = ('\n', '\r', '\r\n', '\u2028', '\u2029')


def decode_escape(text: str, line: int) -> str:
    """Decode one ECMAScript string escape (``\\n``, ``\\x41``, ``\\u0041``, ``\\u{1F600}``)."""
    body = text[1:]
    if body in LINE_TERMINATORS:
        # line continuation
        return ''
    if len(body) == 1:
        return SINGLE_CHARACTER_ESCAPES.get(body, body)

    try:
        if body.startswith('u{') and body.endswith('}'):
            return chr(int(body[2:-1], 16))
        if body[0] in 'xu':
            return chr(int(body[1:], 16))
        # legacy octal
        return chr(int(body, 8))
    except ValueError:
        raise StructuralMismatch('string escape', text, f'line {line}') from None


def parse_number(raw: str):
    """Parse a JavaScript numeric literal (decimal, hex, octal, binary, float)."""
    cleaned = raw.replace('_', '')
    if cleaned.endswith('n'):
        cleaned = cleaned[:-1]
    lowered = cleaned.lower()
    if lowered.startswith(('0x', '0o', '0b')):
        return int(lowered, 0)
    try:
        return int(cleaned)
    except ValueError:
        return float(cleaned)


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Parse a JavaScript file with tree-sitter')
    parser.add_argument('input', help='Input JavaScript file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args()

    with open(args.input, 'r', encoding='utf-8') as f:
        source = f.read()

    tree, data = parse_script(source, verbose=args.verbose)
    top_level = named_children(tree.root_node)
    print(f"{len(top_level)} top-level statements, {len(data)} bytes")


if __name__ == '__main__':
    main()
