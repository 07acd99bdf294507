"""Interpret the small expression shapes used inside spec objects.

    o.internalSpec = {
        name: [1, i.TYPES.STRING],
        tags: [2, i.TYPES.UINT32 | i.FLAGS.REPEATED | i.FLAGS.PACKED],
        info: [3, i.TYPES.MESSAGE, s],
        kind: [4, i.TYPES.ENUM, t.Message$Kind],
        __oneofs__: {content: ["info", "kind"]},
    }
    o.internalDefaults = {kind: t.Message$Kind.TEXT, retries: 3}
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from waproto.conventions import (
    FLAG_OPERATOR,
    FLAG_PACKED,
    FLAG_REPEATED,
    FLAG_REQUIRED,
    FLAGS_QUALIFIER,
    ONEOFS_KEY,
    REFERENCE_TYPES,
    TYPES_QUALIFIER,
)
from waproto.demangler import demangle
from waproto.errors import StructuralMismatch
from waproto.nodes import (
    ArrayExpression,
    BinaryExpression,
    Identifier,
    MemberExpression,
    Node,
    NumericLiteral,
    ObjectExpression,
    ObjectProperty,
    StringLiteral,
    format_number,
    key_name,
    member_name,
)
from waproto.schema import (
    DemangledPath,
    EnumValue,
    FieldSet,
    OneofVariant,
    OPTIONAL,
    Property,
    REPEATED,
    REQUIRED,
)
from waproto.schema_builder import SpecFunctionContext, resolve_relative_path

LogFn = Callable[[str, str], None]


@dataclass
class FieldFlags:
    """What a ``TYPES.X | FLAGS.Y`` expression says about a field."""
    type: Optional[str] = None
    kind: str = OPTIONAL
    packed: bool = False


def _ignore(level: str, message: str):
    pass


def interpret_enum_literal(obj: ObjectExpression, context: str) -> List[EnumValue]:
    """``{FOO: 0, BAR: 1}`` -> enum values in source order."""
    values = []
    for prop in obj.properties:
        if not isinstance(prop, ObjectProperty):
            raise StructuralMismatch('object property', prop.kind, context)
        name = key_name(prop.key)
        if name is None:
            raise StructuralMismatch('identifier key', prop.key.kind, context)
        if not isinstance(prop.value, NumericLiteral):
            raise StructuralMismatch('numeric literal', prop.value.kind, f'{context}, enum value "{name}"')
        values.append(EnumValue(name=name, id=_as_id(prop.value, context)))
    return values


def _as_id(literal: NumericLiteral, context: str) -> int:
    if isinstance(literal.value, float) and not literal.value.is_integer():
        raise StructuralMismatch('integer literal', literal.raw, context)
    return int(literal.value)


def _apply_flag(expression: Node, flags: FieldFlags, context: str):
    """Classify one ``x.TYPES.STRING`` / ``x.FLAGS.REPEATED`` leaf."""
    name = member_name(expression)
    if name is None:
        raise StructuralMismatch('qualified constant', expression.kind, f'{context} flag')

    qualifier = member_name(expression.object)
    if qualifier is None:
        raise StructuralMismatch('qualified constant', expression.object.kind, f'{context} flag "{name}"')

    if qualifier == TYPES_QUALIFIER:
        if name not in REFERENCE_TYPES:
            flags.type = name.lower()
    elif qualifier == FLAGS_QUALIFIER:
        if name == FLAG_PACKED:
            flags.packed = True
        elif name == FLAG_REPEATED:
            flags.kind = REPEATED
        elif name == FLAG_REQUIRED:
            flags.kind = REQUIRED
        else:
            raise StructuralMismatch('PACKED, REPEATED or REQUIRED', name, f'{context} flag')
    else:
        raise StructuralMismatch(f'{TYPES_QUALIFIER} or {FLAGS_QUALIFIER}', qualifier, f'{context} flag')


def interpret_flags(expression: Node, context: str) -> FieldFlags:
    """Interpret a single qualified constant or a left-leaning ``|`` chain."""
    flags = FieldFlags()
    leaves = []

    current = expression
    while isinstance(current, BinaryExpression):
        if current.operator != FLAG_OPERATOR:
            raise StructuralMismatch(f'"{FLAG_OPERATOR}" operator', current.operator, context)
        leaves.append(current.right)
        current = current.left
    leaves.append(current)

    # leaves were collected right to left
    for leaf in reversed(leaves):
        if not isinstance(leaf, MemberExpression):
            raise StructuralMismatch('qualified constant', leaf.kind, context)
        _apply_flag(leaf, flags, context)

    return flags


def interpret_reference(reference: Optional[Node], owner: DemangledPath,
                        ctx: SpecFunctionContext, context: str) -> Tuple[str, DemangledPath]:
    """Resolve the third element of a field array.

    Returns the (possibly shortened) type reference and the full target path.
    """
    if reference is None:
        raise StructuralMismatch('type reference', 'nothing', context)

    if isinstance(reference, Identifier):
        # [..., a] where "a" was copied into a mangled path earlier
        target = ctx.lookup(reference.name, context)
    elif isinstance(reference, MemberExpression):
        # [..., t.Some$Mangled$NameSpec]
        name = member_name(reference)
        if name is None:
            raise StructuralMismatch('identifier property', reference.property.kind, context)
        target = demangle(name)
    else:
        raise StructuralMismatch('identifier or member reference', reference.kind, context)

    return '.'.join(resolve_relative_path(owner, target)), target


def _oneof_lookup(value: Node, context: str) -> Tuple[Dict[str, str], Dict[str, List[OneofVariant]]]:
    """``__oneofs__: {a: ["x", "y"]}`` -> field owner lookup and empty slots."""
    if not isinstance(value, ObjectExpression):
        raise StructuralMismatch('object expression', value.kind, f'{context}, {ONEOFS_KEY}')

    owners: Dict[str, str] = {}
    slots: Dict[str, List[OneofVariant]] = {}
    for prop in value.properties:
        if not isinstance(prop, ObjectProperty):
            raise StructuralMismatch('object property', prop.kind, f'{context}, {ONEOFS_KEY}')
        oneof_name = key_name(prop.key)
        if oneof_name is None:
            raise StructuralMismatch('identifier key', prop.key.kind, f'{context}, {ONEOFS_KEY}')
        if not isinstance(prop.value, ArrayExpression):
            raise StructuralMismatch('array expression', prop.value.kind, f'{context}, oneof "{oneof_name}"')

        slots[oneof_name] = []
        for element in prop.value.elements:
            if not isinstance(element, StringLiteral):
                raise StructuralMismatch('string literal', element.kind, f'{context}, oneof "{oneof_name}"')
            owners[element.value] = oneof_name

    return owners, slots


def interpret_field_set(properties: List[Node], owner: DemangledPath, ctx: SpecFunctionContext,
                        on_log: LogFn = _ignore) -> FieldSet:
    """Interpret the object assigned to ``internalSpec``."""
    base_context = f'function {ctx.key}, spec "{owner.dotted()}"'
    result = FieldSet()
    owners: Dict[str, str] = {}

    for prop in properties:
        if isinstance(prop, ObjectProperty) and key_name(prop.key) == ONEOFS_KEY:
            owners, result.oneofs = _oneof_lookup(prop.value, base_context)
            break

    for prop in properties:
        if not isinstance(prop, ObjectProperty):
            on_log('warn', f'ignoring "{prop.kind}" at {base_context}')
            continue
        name = key_name(prop.key)
        if name is None:
            on_log('warn', f'ignoring key "{prop.key.kind}" at {base_context}')
            continue
        if name == ONEOFS_KEY:
            continue

        context = f'{base_context}, property "{name}"'
        if not isinstance(prop.value, ArrayExpression):
            raise StructuralMismatch('array expression', prop.value.kind, context)

        elements = prop.value.elements
        if len(elements) < 2:
            raise StructuralMismatch('[id, flags, reference?]', f'{len(elements)} elements', context)
        id_expression, flags_expression = elements[0], elements[1]
        reference = elements[2] if len(elements) > 2 else None

        if not isinstance(id_expression, NumericLiteral):
            raise StructuralMismatch('numeric literal id', id_expression.kind, context)
        field_id = _as_id(id_expression, context)

        flags = interpret_flags(flags_expression, context)
        field_type = flags.type
        if field_type is None:
            field_type, target = interpret_reference(reference, owner, ctx, context)
            result.references.append((target, context))

        # a field named by a oneof lives only inside that oneof
        if name in owners:
            result.oneofs[owners[name]].append(OneofVariant(id=field_id, name=name, type=field_type))
        else:
            result.properties[name] = Property(
                id=field_id,
                type=field_type,
                kind=flags.kind,
                packed=flags.packed,
            )

    return result


def interpret_defaults(properties: List[Node], context: str) -> List[Tuple[str, str]]:
    """``{a: 5, b: t.Enum.VALUE}`` -> ``[("a", "5"), ("b", "VALUE")]``."""
    defaults = []
    for prop in properties:
        if not isinstance(prop, ObjectProperty):
            raise StructuralMismatch('object property', prop.kind, f'{context} defaults')
        name = key_name(prop.key)
        if name is None:
            raise StructuralMismatch('identifier key', prop.key.kind, f'{context} defaults')

        value = prop.value
        if isinstance(value, NumericLiteral):
            text = format_number(value.value)
        elif isinstance(value, MemberExpression):
            text = member_name(value)
            if text is None:
                raise StructuralMismatch('identifier property', value.property.kind, f'{context} default "{name}"')
        else:
            raise StructuralMismatch('numeric literal or member access', value.kind, f'{context} default "{name}"')

        defaults.append((name, text))
    return defaults
