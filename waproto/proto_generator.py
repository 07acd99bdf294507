#!/usr/bin/env python3
"""Generate the .proto document from the reconstructed schema tree.

Phase 5 of the extraction pipeline.
Output is proto2 with deterministic ordering: top-level and nested
definitions sorted by name, fields and oneofs by field number, enum
values by number.
"""

import json
import sys
from typing import Dict, List, Tuple, Union

from waproto.schema import EnumValue, Message, OneofVariant, Property, SchemaRoot

INDENT_STEP = 4


class ProtoGenerator:
    """Serialize a ``SchemaRoot`` into proto2 text."""

    def __init__(self, schema: SchemaRoot, verbose: bool = False):
        """Initialize with the finished schema tree (read only)."""
        self.schema = schema
        self.verbose = verbose

        self.indentation = 0
        self.document = ''

    def generate(self, package: str = 'whatsapp') -> str:
        """Generate the complete .proto document."""
        self.indentation = 0
        self.document = f'syntax = "proto2";\npackage {package};'

        # messages and enums share one name-ordered list at the top level
        entries = [(name, 'message') for name in self.schema.messages]
        entries += [(name, 'enum') for name in self.schema.enums]
        entries.sort(key=lambda entry: entry[0])

        if self.verbose:
            print(f"Generating {len(entries)} top-level definitions...", file=sys.stderr)

        for name, kind in entries:
            self._blank_line()
            if kind == 'message':
                self._message(name, self.schema.messages[name])
            else:
                self._enum(name, self.schema.enums[name])

        return self.document

    def _line(self, line: str):
        self.document += f'\n{" " * self.indentation}{line}'

    def _blank_line(self):
        self.document += '\n'

    def _enum(self, name: str, values: List[EnumValue]):
        self._line(f'enum {name} {{')
        self.indentation += INDENT_STEP
        for value in sorted(values, key=lambda v: v.id):
            self._line(f'{value.name} = {value.id};')
        self.indentation -= INDENT_STEP
        self._line('}')

    def _ordered_fields(self, message: Message) -> List[Tuple[str, Union[Property, List[OneofVariant]]]]:
        """Properties and non-empty oneofs ordered by (lowest) field number."""
        entries: List[Tuple[int, str, Union[Property, List[OneofVariant]]]] = [
            (prop.id, name, prop) for name, prop in message.properties.items()
        ]
        for name, variants in message.oneofs.items():
            if not variants:
                continue
            ordered = sorted(variants, key=lambda v: v.id)
            entries.append((ordered[0].id, name, ordered))

        entries.sort(key=lambda entry: entry[0])
        return [(name, value) for _, name, value in entries]

    @staticmethod
    def format_property(name: str, prop: Property) -> str:
        line = f'{prop.kind} {prop.type} {name} = {prop.id}'
        if prop.packed:
            line += ' [packed = true]'
        if prop.default is not None:
            line += f' [default = {prop.default}]'
        return line + ';'

    def _message(self, name: str, message: Message):
        self._line(f'message {name} {{')
        self.indentation += INDENT_STEP

        fields = self._ordered_fields(message)
        for index, (field_name, value) in enumerate(fields):
            if isinstance(value, Property):
                self._line(self.format_property(field_name, value))
                continue

            if index != 0:
                self._blank_line()
            self._line(f'oneof {field_name} {{')
            self.indentation += INDENT_STEP
            for variant in value:
                self._line(f'{variant.type} {variant.name} = {variant.id};')
            self.indentation -= INDENT_STEP
            self._line('}')
            if index != len(fields) - 1:
                self._blank_line()

        for nested_name in sorted(message.messages):
            self._blank_line()
            self._message(nested_name, message.messages[nested_name])

        for enum_name in sorted(message.enums):
            self._blank_line()
            self._enum(enum_name, message.enums[enum_name])

        self.indentation -= INDENT_STEP
        self._line('}')


def generate_proto(schema: SchemaRoot, output_path: str = None,
                   package: str = 'whatsapp', verbose: bool = False) -> str:
    """Main proto generation function."""
    generator = ProtoGenerator(schema, verbose=verbose)
    proto_content = generator.generate(package)

    line_count = len(proto_content.split('\n'))
    if verbose:
        print(f"Generated {line_count} lines of proto", file=sys.stderr)

    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(proto_content)
        if verbose:
            print(f"Wrote {output_path}", file=sys.stderr)

    return proto_content


def load_schema(path: str) -> SchemaRoot:
    """Rebuild a ``SchemaRoot`` from a ``--schema-json`` dump."""
    with open(path, 'r', encoding='utf-8') as f:
        return schema_from_dict(json.load(f))


def schema_from_dict(data: Dict, into: SchemaRoot = None) -> SchemaRoot:
    root = into if into is not None else SchemaRoot()
    for name, values in data.get('enums', {}).items():
        root.enums[name] = [EnumValue(**value) for value in values]
    for name, message_data in data.get('messages', {}).items():
        message = Message(
            properties={key: Property(**value) for key, value in message_data.get('properties', {}).items()},
            oneofs={
                key: [OneofVariant(**variant) for variant in variants]
                for key, variants in message_data.get('oneofs', {}).items()
            },
        )
        root.messages[name] = schema_from_dict(message_data, message)
    return root


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Generate .proto file from a schema JSON dump')
    parser.add_argument('--schema', required=True, help='Schema JSON written by --schema-json')
    parser.add_argument('-o', '--output', help='Output .proto file')
    parser.add_argument('--package', default='whatsapp', help='Proto package name')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args()

    proto = generate_proto(
        load_schema(args.schema),
        args.output,
        args.package,
        verbose=args.verbose
    )

    if not args.output:
        print(proto)


if __name__ == '__main__':
    main()
