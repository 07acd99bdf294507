#!/usr/bin/env python3
"""Tests for field-set, flag, reference and default interpretation."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from waproto.demangler import demangle
from waproto.errors import StructuralMismatch, UnresolvedReference
from waproto.expression_interpreter import (
    interpret_defaults,
    interpret_enum_literal,
    interpret_field_set,
    interpret_flags,
)
from waproto.schema import EnumValue, OneofVariant, Property
from waproto.schema_builder import SpecFunctionContext
from waproto.tree_sitter_parser import NodeConverter, named_children, parse_script


def expression(source: str):
    tree, data = parse_script(f'({source});')
    [statement] = NodeConverter(data).convert_all(named_children(tree.root_node))
    return statement.expression


class TestFlags(unittest.TestCase):

    def test_scalar_type(self):
        flags = interpret_flags(expression('n.TYPES.STRING'), 'test')
        self.assertEqual((flags.type, flags.kind, flags.packed), ('string', 'optional', False))

    def test_repeated(self):
        flags = interpret_flags(expression('x.TYPES.UINT32 | x.FLAGS.REPEATED'), 'test')
        self.assertEqual((flags.type, flags.kind), ('uint32', 'repeated'))

    def test_required_and_packed(self):
        flags = interpret_flags(expression('n.FLAGS.PACKED | n.TYPES.SINT64 | n.FLAGS.REQUIRED'), 'test')
        self.assertEqual((flags.type, flags.kind, flags.packed), ('sint64', 'required', True))

    def test_reference_sentinels_leave_type_unset(self):
        self.assertIsNone(interpret_flags(expression('n.TYPES.MESSAGE'), 'test').type)
        self.assertIsNone(interpret_flags(expression('n.TYPES.ENUM | n.FLAGS.REPEATED'), 'test').type)

    def test_unknown_flag(self):
        with self.assertRaises(StructuralMismatch):
            interpret_flags(expression('n.FLAGS.PACKED_ISH'), 'test')

    def test_unknown_qualifier(self):
        with self.assertRaises(StructuralMismatch):
            interpret_flags(expression('n.KINDS.STRING'), 'test')

    def test_other_operator(self):
        with self.assertRaises(StructuralMismatch):
            interpret_flags(expression('n.TYPES.STRING & n.FLAGS.REPEATED'), 'test')

    def test_non_member_leaf(self):
        with self.assertRaises(StructuralMismatch):
            interpret_flags(expression('n.TYPES.STRING | 4'), 'test')


class TestFieldSet(unittest.TestCase):

    def setUp(self):
        self.ctx = SpecFunctionContext(key='1')
        self.ctx.assigned['s'] = demangle('Message$Kind')
        self.owner = demangle('MessageSpec')

    def interpret(self, source: str, **kwargs):
        return interpret_field_set(expression(source).properties, self.owner, self.ctx, **kwargs)

    def test_scalar_fields(self):
        result = self.interpret('{foo: [1, n.TYPES.STRING], bar: [2, n.TYPES.BYTES | n.FLAGS.REPEATED]}')
        self.assertEqual(result.properties, {
            'foo': Property(id=1, type='string'),
            'bar': Property(id=2, type='bytes', kind='repeated'),
        })
        self.assertEqual(result.oneofs, {})

    def test_identifier_reference(self):
        result = self.interpret('{kind: [2, n.TYPES.ENUM, s]}')
        self.assertEqual(result.properties['kind'].type, 'Kind')

    def test_member_reference(self):
        result = self.interpret('{image: [3, n.TYPES.MESSAGE, t.Message$ImageMessage$ThumbSpec]}')
        self.assertEqual(result.properties['image'].type, 'ImageMessage.Thumb')

    def test_member_reference_outside_scope(self):
        result = self.interpret('{other: [3, n.TYPES.MESSAGE, n(12).Other$ThingSpec]}')
        self.assertEqual(result.properties['other'].type, 'Other.Thing')

    def test_unknown_identifier_reference(self):
        with self.assertRaises(UnresolvedReference):
            self.interpret('{kind: [2, n.TYPES.ENUM, q]}')

    def test_missing_reference(self):
        with self.assertRaises(StructuralMismatch):
            self.interpret('{kind: [2, n.TYPES.ENUM]}')

    def test_bad_reference_shape(self):
        with self.assertRaises(StructuralMismatch):
            self.interpret('{kind: [2, n.TYPES.ENUM, "Kind"]}')

    def test_id_must_be_numeric(self):
        with self.assertRaises(StructuralMismatch):
            self.interpret('{foo: [a, n.TYPES.STRING]}')

    def test_value_must_be_array(self):
        with self.assertRaises(StructuralMismatch):
            self.interpret('{foo: 1}')

    def test_oneofs(self):
        result = self.interpret(
            '{id: [1, n.TYPES.STRING], text: [3, n.TYPES.STRING], kind: [2, n.TYPES.ENUM, s],'
            ' __oneofs__: {content: ["text", "kind"], unused: []}}'
        )
        self.assertEqual(list(result.properties), ['id'])
        self.assertEqual(result.oneofs['content'], [
            OneofVariant(id=3, name='text', type='string'),
            OneofVariant(id=2, name='kind', type='Kind'),
        ])
        self.assertEqual(result.oneofs['unused'], [])

    def test_oneofs_must_list_strings(self):
        with self.assertRaises(StructuralMismatch):
            self.interpret('{__oneofs__: {content: [text]}}')

    def test_ignorable_entries_warn(self):
        records = []
        result = self.interpret('{...rest, foo: [1, n.TYPES.STRING]}',
                                on_log=lambda level, message: records.append(level))
        self.assertEqual(list(result.properties), ['foo'])
        self.assertEqual(records, ['warn'])

    def test_string_keys(self):
        result = self.interpret('{"default": [1, n.TYPES.BOOL]}')
        self.assertEqual(result.properties['default'].type, 'bool')


class TestEnumsAndDefaults(unittest.TestCase):

    def test_enum_literal(self):
        values = interpret_enum_literal(expression('{FOO: 0, BAR: 1, NEG: -1}'), 'test')
        self.assertEqual(values, [EnumValue('FOO', 0), EnumValue('BAR', 1), EnumValue('NEG', -1)])

    def test_enum_literal_needs_numbers(self):
        with self.assertRaises(StructuralMismatch):
            interpret_enum_literal(expression('{FOO: "a"}'), 'test')

    def test_defaults(self):
        defaults = interpret_defaults(expression('{a: 5, b: t.Message$Kind.TEXT, c: 1.5}').properties, 'test')
        self.assertEqual(defaults, [('a', '5'), ('b', 'TEXT'), ('c', '1.5')])

    def test_default_shape(self):
        with self.assertRaises(StructuralMismatch):
            interpret_defaults(expression('{a: "text"}').properties, 'test')


if __name__ == '__main__':
    unittest.main(verbosity=2)
