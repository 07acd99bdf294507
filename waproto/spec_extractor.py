#!/usr/bin/env python3
"""Rebuild the protobuf schema from the spec functions of a bundle.

Phase 4 of the extraction pipeline.
Walks every spec function's statements in source order and feeds the
schema builder.  Statements come in a few shapes:

    var a;                                   ignored
    Object.defineProperty(...), t.A = t.BSpec = void 0;   reservation group
    const r = n(5).default({X: 0, Y: 1});  local enum literal
    const o = {};                            inert local
    t.A = r;                                 local copied into a mangled path
    o.internalSpec = {...}, o.internalDefaults = {...};   real assignment group
"""

import sys
from typing import Callable, List, Optional

from waproto.conventions import (
    INTERNAL_DEFAULTS,
    INTERNAL_SPEC,
    describe_call,
    is_reservation_group,
    reservation_trigger,
)
from waproto.demangler import demangle
from waproto.errors import StructuralMismatch
from waproto.expression_interpreter import (
    interpret_defaults,
    interpret_enum_literal,
    interpret_field_set,
)
from waproto.nodes import (
    AssignmentExpression,
    CallExpression,
    ExpressionStatement,
    Identifier,
    MemberExpression,
    Node,
    ObjectExpression,
    SequenceExpression,
    VariableDeclaration,
    member_name,
)
from waproto.schema import DemangledPath, SchemaRoot
from waproto.schema_builder import SchemaBuilder, SpecFunctionContext
from waproto.spec_locator import SpecFunction, locate_spec_functions
from waproto.tree_sitter_parser import parse_script


class SpecExtractor:
    """Drive the schema builder over a list of spec functions."""

    def __init__(self, verbose: bool = False,
                 on_log: Optional[Callable[[str, str], None]] = None):
        self.verbose = verbose
        self.on_log = on_log
        self.builder = SchemaBuilder(on_log=self._log)

        self.messages_total = 0
        self.enums_total = 0
        self.properties_total = 0

    # ========================================================================
    # Logging (callback-based)
    # ========================================================================

    def _log(self, level: str, message: str):
        """Internal logging - routes to callback or stderr."""
        if self.on_log:
            self.on_log(level, message)
        elif level != 'info' or self.verbose:
            print(f"[{level}] {message}", file=sys.stderr)

    # ========================================================================
    # Driver
    # ========================================================================

    @property
    def schema(self) -> SchemaRoot:
        return self.builder.root

    def extract_all(self, functions: List[SpecFunction]) -> SchemaRoot:
        for function in functions:
            self.extract_function(function)
        self.builder.verify_references()

        self._log('info', f'total metrics: {self.messages_total} messages, '
                          f'{self.enums_total} enums, {self.properties_total} properties')
        return self.schema

    def extract_function(self, function: SpecFunction):
        self._log('info', f'parsing function "{function.key}"')
        ctx = SpecFunctionContext(key=function.key)

        for statement in function.body:
            self._statement(ctx, statement)

        # defaults may precede the fields they refer to
        self.builder.apply_defaults(ctx)

        self._log('info', f'parsing metrics: {ctx.messages_count} messages, '
                          f'{ctx.enums_count} enums, {ctx.properties_count} properties')
        self.messages_total += ctx.messages_count
        self.enums_total += ctx.enums_count
        self.properties_total += ctx.properties_count

    # ========================================================================
    # Statements
    # ========================================================================

    def _statement(self, ctx: SpecFunctionContext, statement: Node):
        if isinstance(statement, VariableDeclaration):
            if statement.kind_keyword == 'var':
                return
            self._declaration(ctx, statement)
        elif isinstance(statement, ExpressionStatement):
            expression = statement.expression
            if isinstance(expression, AssignmentExpression):
                self._assignment_statement(ctx, expression)
            elif isinstance(expression, SequenceExpression):
                self._sequence(ctx, expression.expressions)
            else:
                self._log('warn', f'ignoring "{expression.kind}" statement at function {ctx.key}, line {statement.line}')
        else:
            self._log('warn', f'ignoring "{statement.kind}" at function {ctx.key}, line {statement.line}')

    def _declaration(self, ctx: SpecFunctionContext, declaration: VariableDeclaration):
        """``const a = {}``, ``const a = (0, b.c)(...)`` or ``const a = b(...)({X: 0})``."""
        context = f'function {ctx.key}, line {declaration.line}'
        if declaration.kind_keyword != 'const':
            raise StructuralMismatch('const declaration', declaration.kind_keyword, context)
        if len(declaration.declarations) != 1:
            raise StructuralMismatch('1 declarator', f'{len(declaration.declarations)} declarators', context)

        declarator = declaration.declarations[0]
        if not isinstance(declarator.id, Identifier):
            raise StructuralMismatch('identifier', declarator.id.kind, context)
        name = declarator.id.name
        init = declarator.init
        if init is None:
            raise StructuralMismatch('initializer', 'nothing', f'{context}, declaration "{name}"')

        if isinstance(init, ObjectExpression) and not init.properties:
            self.builder.declare_local_binding(ctx, name, None)
            return

        if not isinstance(init, CallExpression):
            raise StructuralMismatch('call expression', init.kind, f'{context}, declaration "{name}"')

        if isinstance(init.callee, SequenceExpression):
            # (0, i.default)({}, null) builds an empty spec object
            self.builder.declare_local_binding(ctx, name, None)
            return

        if len(init.arguments) != 1:
            raise StructuralMismatch('1 argument', f'{len(init.arguments)} arguments', f'{context}, declaration "{name}"')

        argument = init.arguments[0]
        if not isinstance(argument, ObjectExpression):
            self._log('warn', f'ignoring argument "{argument.kind}" at {context}, declaration "{name}"')
            return

        values = interpret_enum_literal(argument, f'{context}, declaration "{name}"')
        self.builder.declare_local_binding(ctx, name, values)

    def _assignment_statement(self, ctx: SpecFunctionContext, assignment: AssignmentExpression):
        if isinstance(assignment.right, Identifier):
            self._bind(ctx, assignment)
        elif isinstance(assignment.right, ObjectExpression):
            self._spec_assignment(ctx, assignment)
        else:
            self._reserve(ctx, assignment)

    def _reserve(self, ctx: SpecFunctionContext, assignment: AssignmentExpression):
        """``t.a = t.bSpec = void 0``: declare every path of the chain."""
        current = assignment
        while isinstance(current, AssignmentExpression):
            context = f'function {ctx.key}, line {current.line}, reservation'
            if not isinstance(current.left, MemberExpression):
                raise StructuralMismatch('member expression', current.left.kind, context)
            name = member_name(current.left)
            if name is None:
                raise StructuralMismatch('identifier property', current.left.property.kind, context)

            self.builder.declare_path(demangle(name), ctx)
            current = current.right

    def _bind(self, ctx: SpecFunctionContext, assignment: AssignmentExpression):
        """``t.Some$Path = a``: ``a`` now stands for that path."""
        context = f'function {ctx.key}, line {assignment.line}, assignment'
        if not isinstance(assignment.left, MemberExpression):
            raise StructuralMismatch('member expression', assignment.left.kind, context)
        name = member_name(assignment.left)
        if name is None:
            raise StructuralMismatch('identifier property', assignment.left.property.kind, context)

        self.builder.bind_path_to_local(ctx, demangle(name), assignment.right.name)

    def _sequence(self, ctx: SpecFunctionContext, expressions: List[Node]):
        if is_reservation_group(expressions):
            what = describe_call(reservation_trigger(expressions))
            label = f'"{what}"' if what else 'unknown'
            self._log('info', f'found {label} call, inferring reservation group')
            for expression in expressions:
                if isinstance(expression, AssignmentExpression):
                    self._reserve(ctx, expression)
            return

        # other harmless expressions can be mixed in
        for expression in expressions:
            if not isinstance(expression, AssignmentExpression):
                self._log('warn', f'ignoring "{expression.kind}" at function {ctx.key} spec assignment')
                continue
            if not isinstance(expression.left, MemberExpression):
                self._log('warn', f'ignoring left "{expression.left.kind}" at function {ctx.key} spec assignment')
                continue
            if isinstance(expression.right, Identifier):
                self._bind(ctx, expression)
            elif isinstance(expression.right, ObjectExpression):
                self._spec_assignment(ctx, expression)
            else:
                self._log('warn', f'ignoring right "{expression.right.kind}" at function {ctx.key} spec assignment')

    def _spec_target(self, ctx: SpecFunctionContext, target: Node, context: str) -> Optional[DemangledPath]:
        """Path denoted by ``o`` in ``o.internalSpec`` (or ``t.FooSpec.internalSpec``)."""
        if isinstance(target, Identifier):
            return ctx.lookup(target.name, context)
        if isinstance(target, MemberExpression):
            name = member_name(target)
            if name is not None:
                return demangle(name)
        self._log('warn', f'ignoring left object "{target.kind}" at {context}')
        return None

    def _spec_assignment(self, ctx: SpecFunctionContext, assignment: AssignmentExpression):
        """``o.internalSpec = {...}`` or ``o.internalDefaults = {...}``."""
        context = f'function {ctx.key}, line {assignment.line}, spec assignment'
        left = assignment.left
        if not isinstance(left, MemberExpression):
            raise StructuralMismatch('member expression', left.kind, context)
        prop = member_name(left)
        if prop is None:
            self._log('warn', f'ignoring left property "{left.property.kind}" at {context}')
            return

        path = self._spec_target(ctx, left.object, context)
        if path is None:
            return

        properties = assignment.right.properties
        if prop == INTERNAL_SPEC:
            field_set = interpret_field_set(properties, path, ctx, on_log=self._log)
            self.builder.attach_field_set(ctx, path, field_set)
        elif prop == INTERNAL_DEFAULTS:
            for field_name, value in interpret_defaults(properties, f'{context} "{path.dotted()}"'):
                self.builder.queue_default(ctx, path, field_name, value)
        else:
            raise StructuralMismatch(f'{INTERNAL_SPEC} or {INTERNAL_DEFAULTS}', prop, context)


def extract_schema(source: str, verbose: bool = False,
                   on_log: Optional[Callable[[str, str], None]] = None) -> SchemaRoot:
    """Parse a bundle and return the reconstructed schema tree."""
    tree, data = parse_script(source, verbose=verbose)
    functions = locate_spec_functions(tree, data, verbose=verbose)

    extractor = SpecExtractor(verbose=verbose, on_log=on_log)
    return extractor.extract_all(functions)
