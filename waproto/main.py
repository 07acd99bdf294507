#!/usr/bin/env python3
"""Main orchestrator for the WhatsApp Web protobuf extraction pipeline.

Runs all phases in sequence:
  Phase 1: metadata scan (version, build id)
  Phase 2: tree-sitter parsing
  Phase 3: spec function location
  Phase 4: schema reconstruction
  Phase 5: proto generation
"""

import argparse
import json
import sys
from pathlib import Path

from waproto.errors import ExtractionError
from waproto.metadata import extract_metadata
from waproto.proto_generator import generate_proto
from waproto.spec_extractor import SpecExtractor
from waproto.spec_locator import locate_spec_functions
from waproto.tree_sitter_parser import parse_script


def _banner(title: str):
    print("\n" + "=" * 60, file=sys.stderr)
    print(title, file=sys.stderr)
    print("=" * 60, file=sys.stderr)


def _stderr_log(verbose: bool):
    def log(level: str, message: str):
        if level != 'info' or verbose:
            print(f"[{level}] {message}", file=sys.stderr)
    return log


def run_pipeline(input_path: str = 'app.js', proto_output: str = 'whatsapp.proto',
                 package: str = 'whatsapp', schema_json: str = None,
                 verbose: bool = False) -> dict:
    """Run the complete extraction pipeline.

    Nothing is written unless every phase succeeds.
    """
    log = _stderr_log(verbose)
    results = {
        'phases': {},
        'success': False,
    }

    input_path = Path(input_path)
    if not input_path.exists():
        results['phases']['phase1'] = {'status': 'error', 'error': f'"{input_path}" does not exist'}
        print(f"Phase 1 FAILED: \"{input_path}\" does not exist", file=sys.stderr)
        return results

    source = input_path.read_text(encoding='utf-8')

    # =========================================================================
    # Phase 1: Metadata scan
    # =========================================================================
    _banner("PHASE 1: Metadata Scan")

    metadata = extract_metadata(source, on_log=log)
    results['phases']['phase1'] = {
        'status': 'success',
        'version': metadata.version,
        'build': metadata.build,
    }
    print(f"\nPhase 1 complete: version {metadata.version}, build {metadata.build}", file=sys.stderr)

    # =========================================================================
    # Phase 2: tree-sitter parsing
    # =========================================================================
    _banner("PHASE 2: tree-sitter Parsing")

    try:
        tree, data = parse_script(source, verbose=verbose)
        results['phases']['phase2'] = {'status': 'success', 'source_bytes': len(data)}
        print(f"\nPhase 2 complete: {len(data)} bytes parsed", file=sys.stderr)
    except ExtractionError as e:
        results['phases']['phase2'] = {'status': 'error', 'error': str(e)}
        print(f"Phase 2 FAILED: {e}", file=sys.stderr)
        return results

    # =========================================================================
    # Phase 3: Spec function location
    # =========================================================================
    _banner("PHASE 3: Spec Function Location")

    try:
        functions = locate_spec_functions(tree, data, verbose=verbose)
        results['phases']['phase3'] = {'status': 'success', 'spec_functions': len(functions)}
        print(f"\nPhase 3 complete: {len(functions)} spec functions found", file=sys.stderr)
    except ExtractionError as e:
        results['phases']['phase3'] = {'status': 'error', 'error': str(e)}
        print(f"Phase 3 FAILED: {e}", file=sys.stderr)
        return results

    # =========================================================================
    # Phase 4: Schema reconstruction
    # =========================================================================
    _banner("PHASE 4: Schema Reconstruction")

    try:
        extractor = SpecExtractor(verbose=verbose, on_log=log)
        schema = extractor.extract_all(functions)
        statistics = schema.statistics()
        results['phases']['phase4'] = {'status': 'success', 'statistics': statistics}
        print(f"\nPhase 4 complete: {statistics['messages']} messages, "
              f"{statistics['enums']} enums", file=sys.stderr)
    except ExtractionError as e:
        results['phases']['phase4'] = {'status': 'error', 'error': str(e)}
        print(f"Phase 4 FAILED: {e}", file=sys.stderr)
        return results

    # =========================================================================
    # Phase 5: Proto generation
    # =========================================================================
    _banner("PHASE 5: Proto Generation")

    proto_path = Path(proto_output)
    proto_content = generate_proto(schema, package=package, verbose=verbose)
    schema_content = json.dumps(schema.to_dict(), indent=2) if schema_json else None

    # both payloads are ready; a failed write removes whatever was written
    written = []
    try:
        proto_path.write_text(proto_content, encoding='utf-8')
        written.append(proto_path)
        if schema_content is not None:
            Path(schema_json).write_text(schema_content, encoding='utf-8')
            written.append(Path(schema_json))
    except OSError as e:
        for path in written:
            path.unlink(missing_ok=True)
        results['phases']['phase5'] = {'status': 'error', 'error': str(e)}
        print(f"Phase 5 FAILED: {e}", file=sys.stderr)
        return results

    line_count = len(proto_content.split('\n'))
    results['phases']['phase5'] = {
        'status': 'success',
        'output': str(proto_path),
        'lines': line_count,
    }
    if schema_json:
        results['schema_json'] = schema_json
    print(f"\nPhase 5 complete: Generated {line_count} lines of proto", file=sys.stderr)

    # =========================================================================
    # Summary
    # =========================================================================
    _banner("PIPELINE COMPLETE")

    results['success'] = True
    results['output'] = str(proto_path)
    results['version'] = metadata.version
    results['build'] = metadata.build

    print(f"\nGenerated: {proto_path}", file=sys.stderr)

    return results


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Extract the protobuf schema from a WhatsApp Web app bundle',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
  waproto-extract \\
    --input app.js \\
    --output whatsapp.proto

Phases:
  1. Metadata scan         - Find VERSION and BUILD_ID
  2. tree-sitter parsing   - Parse the bundle
  3. Spec location         - Find module functions assigning internalSpec
  4. Schema reconstruction - Rebuild messages, enums and fields
  5. Proto generation      - Generate .proto file
        """
    )

    parser.add_argument(
        '--input', '-i',
        default='app.js',
        help='Bundled app script (default: app.js)'
    )
    parser.add_argument(
        '--output', '-o',
        default='whatsapp.proto',
        help='Output .proto file (default: whatsapp.proto)'
    )
    parser.add_argument(
        '--package',
        default='whatsapp',
        help='Proto package name (default: whatsapp)'
    )
    parser.add_argument(
        '--schema-json',
        help='Also dump the reconstructed schema tree as JSON'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Output results as JSON'
    )

    args = parser.parse_args(argv)

    results = run_pipeline(
        input_path=args.input,
        proto_output=args.output,
        package=args.package,
        schema_json=args.schema_json,
        verbose=args.verbose,
    )

    if args.json:
        print(json.dumps(results, indent=2))

    sys.exit(0 if results['success'] else 1)


if __name__ == '__main__':
    main()
