"""Decode mangled spec names into hierarchical paths."""

from waproto.conventions import PATH_SEPARATOR, SPEC_SUFFIX
from waproto.schema import DemangledPath, ENUM, MESSAGE


def demangle(name: str) -> DemangledPath:
    """``a$b$cSpec`` -> message ``(a, b, c)``; ``a$b`` -> enum ``(a, b)``."""
    kind = ENUM
    if name.endswith(SPEC_SUFFIX):
        name = name[:-len(SPEC_SUFFIX)]
        kind = MESSAGE
    return DemangledPath(segments=tuple(name.split(PATH_SEPARATOR)), kind=kind)
