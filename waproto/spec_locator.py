#!/usr/bin/env python3
"""Find the spec functions inside the bundle's module table.

Phase 3 of the extraction pipeline.
The bundle is a single statement of the shape

    (self.webpackChunk = self.webpackChunk || []).push([[ids], {
        12345: (e, t, n) => { ... t.FooSpec = o; o.internalSpec = {...}, ... },
        ...
    }])

and only the module entries that assign ``internalSpec`` define schema.
"""

import sys
from dataclasses import dataclass
from typing import List

from waproto.conventions import INTERNAL_SPEC
from waproto.errors import StructuralMismatch
from waproto.nodes import Node
from waproto.tree_sitter_parser import (
    FUNCTION_TYPES,
    NodeConverter,
    expression_of,
    flatten_sequence,
    get_node_text,
    named_children,
    unwrap_parens,
)


@dataclass
class SpecFunction:
    """One module entry of the table that defines a slice of the schema."""
    key: str
    line: int
    body: List[Node]


def _assigns_internal_spec(expression, source: bytes) -> bool:
    if expression.type != 'assignment_expression':
        return False
    left = unwrap_parens(expression.child_by_field_name('left'))
    if left is None or left.type != 'member_expression':
        return False
    prop = left.child_by_field_name('property')
    return prop is not None and prop.type == 'property_identifier' \
        and get_node_text(prop, source) == INTERNAL_SPEC


def _is_spec_body(body, source: bytes) -> bool:
    """A comma group in the body assigns ``something.internalSpec``."""
    for statement in named_children(body):
        if statement.type != 'expression_statement':
            continue
        expression = expression_of(statement)
        if expression is None or expression.type != 'sequence_expression':
            continue
        if any(_assigns_internal_spec(member, source) for member in flatten_sequence(expression)):
            return True
    return False


def find_module_table(tree, source: bytes):
    """Return the object literal holding the bundle's module functions."""
    statements = named_children(tree.root_node)
    if len(statements) != 1:
        raise StructuralMismatch('exactly 1 top-level statement', f'{len(statements)} statements', 'program')

    statement = statements[0]
    if statement.type != 'expression_statement':
        raise StructuralMismatch('expression statement', statement.type, 'program')

    call = expression_of(statement)
    if call is None or call.type != 'call_expression':
        raise StructuralMismatch('call expression', call.type if call is not None else 'nothing', 'program')

    arguments = named_children(call.child_by_field_name('arguments'))
    if len(arguments) != 1:
        raise StructuralMismatch('exactly 1 call argument', f'{len(arguments)} arguments', 'program')

    array = unwrap_parens(arguments[0])
    if array.type != 'array':
        raise StructuralMismatch('array expression', array.type, 'call argument')

    objects = [unwrap_parens(element) for element in named_children(array)]
    objects = [element for element in objects if element.type == 'object']
    if len(objects) != 1:
        raise StructuralMismatch('exactly 1 object expression', f'{len(objects)} objects', 'call argument')

    return objects[0]


def locate_spec_functions(tree, source: bytes, verbose: bool = False) -> List[SpecFunction]:
    """Return the spec functions of the module table in source order."""
    table = find_module_table(tree, source)
    converter = NodeConverter(source)
    functions = []

    for entry in named_children(table):
        if entry.type != 'pair':
            continue
        key = entry.child_by_field_name('key')
        value = unwrap_parens(entry.child_by_field_name('value'))
        if key is None or key.type != 'number':
            continue
        if value is None or value.type not in FUNCTION_TYPES:
            continue
        body = value.child_by_field_name('body')
        if body is None or body.type != 'statement_block':
            continue
        if not _is_spec_body(body, source):
            continue

        functions.append(SpecFunction(
            key=get_node_text(key, source),
            line=entry.start_point[0] + 1,
            body=converter.convert_all(named_children(body)),
        ))

    if not functions:
        raise StructuralMismatch('at least 1 spec function', '0 spec functions', 'module table')

    if verbose:
        print(f"found {len(functions)} spec functions", file=sys.stderr)

    return functions
