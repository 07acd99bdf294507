"""Accumulate the schema tree across spec functions.

The builder owns the one ``SchemaRoot`` of a run.  Each spec function gets
a fresh ``SpecFunctionContext`` holding its local bindings and deferred
defaults; the tree itself is shared by all of them.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from waproto.errors import DeclarationConflict, MissingDeclaration, UnresolvedReference
from waproto.schema import (
    DemangledPath,
    ENUM,
    EnumValue,
    FieldSet,
    Message,
    SchemaRoot,
)


@dataclass
class PendingDefault:
    path: DemangledPath
    field_name: str
    value: str


@dataclass
class SpecFunctionContext:
    """Transient state of one spec function."""
    key: str
    # local name -> None (inert) or a literal enum
    declared: Dict[str, Optional[List[EnumValue]]] = field(default_factory=dict)
    # local name -> path it was last copied into
    assigned: Dict[str, DemangledPath] = field(default_factory=dict)
    defaults: List[PendingDefault] = field(default_factory=list)
    messages_count: int = 0
    enums_count: int = 0
    properties_count: int = 0

    def lookup(self, local_name: str, context: str) -> DemangledPath:
        """Path a local binding denotes; fatal if it was never copied anywhere."""
        path = self.assigned.get(local_name)
        if path is None:
            raise UnresolvedReference(local_name, f'function {self.key}, {context}')
        return path


def resolve_relative_path(from_path: DemangledPath, to_path: DemangledPath) -> Tuple[str, ...]:
    """Shortest type reference to ``to_path`` from a field declared in ``from_path``.

    The shared leading segments are dropped, but at least the last segment
    of ``to_path`` is always kept.
    """
    common = 0
    for ours, theirs in zip(from_path.segments, to_path.segments):
        if ours != theirs:
            break
        common += 1
    common = min(common, len(to_path.segments) - 1)
    return to_path.segments[common:]


class SchemaBuilder:
    """Create-if-absent operations over the shared schema tree."""

    def __init__(self, on_log: Optional[Callable[[str, str], None]] = None):
        self.root = SchemaRoot()
        self.on_log = on_log
        # message path -> (target, context) of the type references of its fields
        self.references: Dict[Tuple[str, ...], List[Tuple[DemangledPath, str]]] = {}

    def _log(self, level: str, message: str):
        if self.on_log:
            self.on_log(level, message)

    def _message_at(self, segments: Sequence[str], what: str = 'message') -> Message:
        """Walk existing messages only; fatal if any is missing."""
        current: SchemaRoot = self.root
        for index, name in enumerate(segments):
            if name not in current.messages:
                raise MissingDeclaration(what, segments[:index + 1])
            current = current.messages[name]
        return current

    def declare_path(self, path: DemangledPath, ctx: Optional[SpecFunctionContext] = None):
        """Create every message along ``path`` and the final message or enum.

        Declaring an existing path is a no-op, so a reservation followed by
        the real definition yields one node.
        """
        current: SchemaRoot = self.root
        last = len(path.segments) - 1

        for index, name in enumerate(path.segments):
            here = path.segments[:index + 1]
            if index == last and path.kind == ENUM:
                if name in current.messages:
                    raise DeclarationConflict(name, here)
                if name not in current.enums:
                    current.enums[name] = []
                    if ctx:
                        ctx.enums_count += 1
                return

            if name in current.enums:
                raise DeclarationConflict(name, here)
            if name not in current.messages:
                current.messages[name] = Message()
                if ctx:
                    ctx.messages_count += 1
            current = current.messages[name]

    def declare_local_binding(self, ctx: SpecFunctionContext, name: str,
                              value: Optional[List[EnumValue]]):
        """Remember a ``const`` binding: inert (None) or a literal enum."""
        ctx.declared[name] = value

    def bind_path_to_local(self, ctx: SpecFunctionContext, path: DemangledPath, local_name: str):
        """Handle ``t.Some$Path = local``."""
        if local_name not in ctx.declared:
            raise UnresolvedReference(local_name, f'function {ctx.key}, assignment of "{path.dotted()}"')

        declared = ctx.declared[local_name]
        if declared is not None:
            self.attach_enum(path, declared)

        ctx.assigned[local_name] = path

    def attach_enum(self, path: DemangledPath, values: List[EnumValue]):
        parent = self._message_at(path.segments[:-1])
        name = path.segments[-1]
        if name in parent.messages:
            raise DeclarationConflict(name, path.segments)
        parent.enums[name] = list(values)

    def attach_field_set(self, ctx: SpecFunctionContext, path: DemangledPath, field_set: FieldSet):
        """Replace the fields of the already declared message at ``path``."""
        message = self._message_at(path.segments)
        if message.properties or message.oneofs:
            self._log('warn', f'overwriting fields of "{path.dotted()}"')
        message.properties = field_set.properties
        message.oneofs = field_set.oneofs
        self.references[path.segments] = list(field_set.references)
        ctx.properties_count += len(field_set.properties)

    def queue_default(self, ctx: SpecFunctionContext, path: DemangledPath, field_name: str, value: str):
        ctx.defaults.append(PendingDefault(path=path, field_name=field_name, value=value))

    def apply_defaults(self, ctx: SpecFunctionContext):
        """Apply the defaults of one spec function once all its fields exist."""
        for pending in ctx.defaults:
            message = self._message_at(pending.path.segments)
            prop = message.properties.get(pending.field_name)
            if prop is None:
                raise MissingDeclaration('property', pending.path.segments + (pending.field_name,))
            prop.default = pending.value
        ctx.defaults.clear()

    def has_path(self, path: DemangledPath) -> bool:
        current: SchemaRoot = self.root
        for name in path.segments[:-1]:
            if name not in current.messages:
                return False
            current = current.messages[name]
        leaf = path.segments[-1]
        return leaf in (current.enums if path.kind == ENUM else current.messages)

    def verify_references(self):
        """Every type reference must name a declared message or enum.

        Runs after the last spec function, since a reference may point at a
        spec declared by a later module.
        """
        for references in self.references.values():
            for target, context in references:
                if not self.has_path(target):
                    raise UnresolvedReference(target.dotted(), context)
