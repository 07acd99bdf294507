"""WhatsApp Web protobuf schema extraction.

Rebuilds the proto2 schema from the obfuscated spec modules of the bundled
web client script.

Example:
    from waproto import extract_schema, generate_proto

    schema = extract_schema(open("app.js").read())
    print(generate_proto(schema))
"""

from waproto.errors import (
    DeclarationConflict,
    ExtractionError,
    MissingDeclaration,
    SourceParseError,
    StructuralMismatch,
    UnresolvedReference,
)
from waproto.metadata import ScriptMetadata, extract_metadata
from waproto.proto_generator import ProtoGenerator, generate_proto
from waproto.schema import SchemaRoot
from waproto.spec_extractor import SpecExtractor, extract_schema

__all__ = [
    "extract_schema",
    "extract_metadata",
    "generate_proto",
    "ProtoGenerator",
    "SpecExtractor",
    "SchemaRoot",
    "ScriptMetadata",
    "ExtractionError",
    "SourceParseError",
    "StructuralMismatch",
    "UnresolvedReference",
    "MissingDeclaration",
    "DeclarationConflict",
]

__version__ = "0.1.0"
