"""Schema tree reconstructed from the spec modules."""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

MESSAGE = 'message'
ENUM = 'enum'

OPTIONAL = 'optional'
REPEATED = 'repeated'
REQUIRED = 'required'


@dataclass(frozen=True)
class DemangledPath:
    """Hierarchical path decoded from a mangled name."""
    segments: Tuple[str, ...]
    kind: str  # MESSAGE or ENUM

    def dotted(self) -> str:
        return '.'.join(self.segments)


@dataclass
class Property:
    """A plain message field."""
    id: int
    type: str
    kind: str = OPTIONAL
    packed: bool = False
    default: Optional[str] = None


@dataclass
class OneofVariant:
    """A field living inside a oneof block."""
    id: int
    name: str
    type: str


@dataclass
class EnumValue:
    name: str
    id: int


@dataclass
class FieldSet:
    """Interpreted ``internalSpec`` object of one message."""
    properties: Dict[str, Property] = field(default_factory=dict)
    oneofs: Dict[str, List[OneofVariant]] = field(default_factory=dict)
    # (target, context) of every type reference, checked once the run is over
    references: List[Tuple[DemangledPath, str]] = field(default_factory=list)


@dataclass
class SchemaRoot:
    """Messages and enums declared at one level of the tree."""
    messages: Dict[str, 'Message'] = field(default_factory=dict)
    enums: Dict[str, List[EnumValue]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'messages': {name: message.to_dict() for name, message in self.messages.items()},
            'enums': {name: [asdict(value) for value in values] for name, values in self.enums.items()},
        }

    def statistics(self) -> Dict[str, int]:
        """Count messages, enums, properties and oneofs recursively."""
        stats = {'messages': 0, 'enums': len(self.enums), 'properties': 0, 'oneofs': 0}
        for message in self.messages.values():
            stats['messages'] += 1
            stats['properties'] += len(message.properties)
            stats['oneofs'] += len(message.oneofs)
            for key, value in message.statistics().items():
                stats[key] += value
        return stats


@dataclass
class Message(SchemaRoot):
    properties: Dict[str, Property] = field(default_factory=dict)
    oneofs: Dict[str, List[OneofVariant]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        result = super().to_dict()
        result['properties'] = {name: asdict(prop) for name, prop in self.properties.items()}
        result['oneofs'] = {
            name: [asdict(variant) for variant in variants]
            for name, variants in self.oneofs.items()
        }
        return result
