#!/usr/bin/env python3
"""End-to-end tests: bundle source in, proto2 text out."""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from bundle_fixtures import APP_BUNDLE, EXPECTED_PROTO, spec_bundle, wrap_modules
from waproto.errors import (
    DeclarationConflict,
    MissingDeclaration,
    StructuralMismatch,
    UnresolvedReference,
)
from waproto.proto_generator import generate_proto
from waproto.spec_extractor import extract_schema

RESERVE = 'Object.defineProperty(x, "__esModule", {value: !0}), '


def to_proto(source: str, records: list = None) -> str:
    on_log = (lambda level, message: records.append((level, message))) if records is not None else None
    return generate_proto(extract_schema(source, on_log=on_log))


class TestAppBundle(unittest.TestCase):
    """The full fixture bundle with two spec modules."""

    @classmethod
    def setUpClass(cls):
        cls.records = []
        cls.proto = to_proto(APP_BUNDLE, cls.records)

    def test_expected_document(self):
        self.assertEqual(self.proto, EXPECTED_PROTO)

    def test_serializing_twice_is_identical(self):
        schema = extract_schema(APP_BUNDLE)
        self.assertEqual(generate_proto(schema), generate_proto(schema))
        self.assertEqual(generate_proto(extract_schema(APP_BUNDLE)), self.proto)

    def test_top_level_names_are_ordered(self):
        names = [line.split()[1] for line in self.proto.split('\n')
                 if line.startswith(('message ', 'enum '))]
        self.assertEqual(names, sorted(names))

    def test_statistics(self):
        stats = extract_schema(APP_BUNDLE).statistics()
        self.assertEqual(stats, {'messages': 5, 'enums': 2, 'properties': 10, 'oneofs': 1})

    def test_metrics_and_warnings_are_logged(self):
        messages = [message for _, message in self.records]
        self.assertIn('parsing function "100"', messages)
        self.assertIn('found "Object.defineProperty" call, inferring reservation group', messages)
        self.assertTrue(any(m.startswith('total metrics: 5 messages, 2 enums') for m in messages))
        # "use strict" directives are noise
        warnings = [message for level, message in self.records if level == 'warn']
        self.assertEqual(len(warnings), 2)
        self.assertTrue(all('StringLiteral' in warning for warning in warnings))


class TestScenarios(unittest.TestCase):

    def test_literal_enum(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.a = x.bSpec = void 0;\n'
            'const e = n(1)({FOO: 0, BAR: 1});\n'
            'x.a = e;\n'
            'const o = {};\n'
            'x.bSpec = o;\n'
            'o.internalSpec = {}, o.internalDefaults = {};'
        ))
        self.assertIn('enum a {\n    FOO = 0;\n    BAR = 1;\n}', proto)

    def test_scalar_field(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.aSpec = void 0;\n'
            'x.aSpec.internalSpec = {foo: [1, x.TYPES.STRING]}, x.aSpec.internalDefaults = {};'
        ))
        self.assertIn('message a {\n    optional string foo = 1;\n}', proto)

    def test_flags(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.aSpec = void 0;\n'
            'const o = {};\n'
            'x.aSpec = o;\n'
            'o.internalSpec = {ids: [2, x.TYPES.UINT32 | x.FLAGS.REPEATED]}, 0;'
        ))
        self.assertIn('    repeated uint32 ids = 2;', proto)

    def test_reserved_message_stays_empty(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.cSpec = x.aSpec = void 0;\n'
            'const o = {};\n'
            'x.aSpec = o;\n'
            'o.internalSpec = {}, o.internalDefaults = {};'
        ))
        self.assertIn('message c {\n}', proto)

    def test_default_value(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.aSpec = void 0;\n'
            'const o = {};\n'
            'x.aSpec = o;\n'
            'o.internalDefaults = {foo: 5}, o.internalSpec = {foo: [1, x.TYPES.INT32]};'
        ))
        self.assertIn('    optional int32 foo = 1 [default = 5];', proto)

    def test_reference_is_minimized(self):
        proto = to_proto(spec_bundle(
            RESERVE + 'x.A$BSpec = x.A$B$CSpec = void 0;\n'
            'const o = {};\n'
            'x.A$BSpec = o;\n'
            'o.internalSpec = {c: [1, x.TYPES.MESSAGE, x.A$B$CSpec]}, 0;'
        ))
        self.assertIn('        optional C c = 1;', proto)

    def test_reservation_then_definition_is_one_node(self):
        schema = extract_schema(spec_bundle(
            RESERVE + 'x.aSpec = void 0;\n'
            'x.aSpec = x.aSpec = void 0;\n'
            'const o = {};\n'
            'x.aSpec = o;\n'
            'o.internalSpec = {foo: [1, x.TYPES.STRING]}, 0;'
        ))
        self.assertEqual(list(schema.messages), ['a'])
        self.assertEqual(list(schema.messages['a'].properties), ['foo'])

    def test_redefined_fields_drop_old_references(self):
        schema = extract_schema(spec_bundle(
            RESERVE + 'x.aSpec = void 0;\nconst o = {};\nx.aSpec = o;\n'
            'o.internalSpec = {b: [1, x.TYPES.ENUM, x.Gone]}, 0;\n'
            'o.internalSpec = {b: [1, x.TYPES.INT32]}, 0;'
        ))
        self.assertEqual(schema.messages['a'].properties['b'].type, 'int32')

    def test_reference_to_a_later_module(self):
        source = wrap_modules(
            '    1: (e, x, n) => {' + RESERVE + 'x.aSpec = void 0; const o = {}; x.aSpec = o;'
            ' o.internalSpec = {b: [1, x.TYPES.MESSAGE, n(2).bSpec]}, 0; },',
            '    2: (e, x, n) => {' + RESERVE + 'x.bSpec = void 0; const o = {}; x.bSpec = o;'
            ' o.internalSpec = {}, 0; }',
        )
        self.assertIn('message a {\n    optional b b = 1;\n}', to_proto(source))


class TestFaults(unittest.TestCase):

    def test_unknown_local_in_assignment(self):
        with self.assertRaises(UnresolvedReference):
            extract_schema(spec_bundle(RESERVE + 'x.aSpec = void 0;\nx.aSpec = q;\nq.internalSpec = {}, 0;'))

    def test_dangling_type_reference(self):
        with self.assertRaises(UnresolvedReference) as caught:
            extract_schema(spec_bundle(
                RESERVE + 'x.aSpec = void 0;\nconst o = {};\nx.aSpec = o;\n'
                'o.internalSpec = {b: [1, x.TYPES.ENUM, x.Missing$Kind]}, 0;'
            ))
        self.assertEqual(caught.exception.name, 'Missing.Kind')

    def test_unknown_local_in_spec_assignment(self):
        with self.assertRaises(UnresolvedReference):
            extract_schema(spec_bundle('const o = {};\no.internalSpec = {}, 0;'))

    def test_internal_spec_needs_declared_message(self):
        with self.assertRaises(MissingDeclaration):
            extract_schema(spec_bundle('const o = {};\nx.aSpec = o;\no.internalSpec = {}, 0;'))

    def test_default_for_undeclared_field(self):
        with self.assertRaises(MissingDeclaration):
            extract_schema(spec_bundle(
                RESERVE + 'x.aSpec = void 0;\nconst o = {};\nx.aSpec = o;\n'
                'o.internalSpec = {}, o.internalDefaults = {foo: 1};'
            ))

    def test_unknown_spec_property(self):
        with self.assertRaises(StructuralMismatch):
            extract_schema(spec_bundle(
                RESERVE + 'x.aSpec = void 0;\nconst o = {};\nx.aSpec = o;\n'
                'o.internalSpec = {}, o.internalOther = {};'
            ))

    def test_let_declaration(self):
        with self.assertRaises(StructuralMismatch):
            extract_schema(spec_bundle('let o = {};\nx.aSpec = o;\no.internalSpec = {}, 0;'))

    def test_declaration_without_call(self):
        with self.assertRaises(StructuralMismatch):
            extract_schema(spec_bundle('const o = 5;\no.internalSpec = {}, 0;'))

    def test_message_enum_conflict(self):
        with self.assertRaises(DeclarationConflict):
            extract_schema(spec_bundle(RESERVE + 'x.aSpec = x.a = void 0;\nconst o = {};\no.internalSpec = {}, 0;'))

    def test_non_object_enum_argument_is_skipped(self):
        records = []
        with self.assertRaises(UnresolvedReference):
            extract_schema(spec_bundle(
                RESERVE + 'x.aSpec = x.k = void 0;\n'
                'const e = n(1)(values);\n'
                'x.k = e;\n'
                'const o = {};\nx.aSpec = o;\no.internalSpec = {}, 0;'
            ), on_log=lambda level, message: records.append(level))
        self.assertIn('warn', records)


if __name__ == '__main__':
    unittest.main(verbosity=2)
