"""Names and code-generation patterns of the bundled protobuf spec modules.

A spec module looks like this once minified:

    Object.defineProperty(t, "__esModule", {value: !0}),
        t.MessageSpec = t.Message$KeyType = void 0;
    const r = n(5).default({A: 0, B: 1});
    t.Message$KeyType = r;
    const o = {};
    t.MessageSpec = o;
    o.internalSpec = {key: [1, i.TYPES.ENUM, r]}, o.internalDefaults = {key: r.A};
"""

from typing import List, Optional

from waproto.nodes import CallExpression, Identifier, MemberExpression, Node

# Mangled names: "a$b$cSpec" is message a.b.c, "a$b$c" is enum a.b.c
SPEC_SUFFIX = 'Spec'
PATH_SEPARATOR = '$'

INTERNAL_SPEC = 'internalSpec'
INTERNAL_DEFAULTS = 'internalDefaults'
ONEOFS_KEY = '__oneofs__'

TYPES_QUALIFIER = 'TYPES'
FLAGS_QUALIFIER = 'FLAGS'

# TYPES members that mean "resolve the third array element instead"
REFERENCE_TYPES = ('MESSAGE', 'ENUM')

FLAG_PACKED = 'PACKED'
FLAG_REPEATED = 'REPEATED'
FLAG_REQUIRED = 'REQUIRED'

FLAG_OPERATOR = '|'


def describe_call(expression: CallExpression) -> Optional[str]:
    """``Object.defineProperty`` for a plain ``a.b(...)`` call, else None."""
    callee = expression.callee
    if isinstance(callee, MemberExpression) and isinstance(callee.object, Identifier) \
            and isinstance(callee.property, Identifier):
        return f'{callee.object.name}.{callee.property.name}'
    return None


def is_reservation_group(expressions: List[Node]) -> bool:
    """Decide whether a comma group reserves paths or assigns real values.

    The bundler emits the ``Object.defineProperty(t, "__esModule", ...)``
    call in the same group as the ``t.a = t.b = void 0`` reservation chain,
    and never puts calls in the groups that carry ``internalSpec``.  This
    inference comes from the observed output of one bundler version.
    """
    return any(isinstance(expression, CallExpression) for expression in expressions)


def reservation_trigger(expressions: List[Node]) -> Optional[CallExpression]:
    """The call that made :func:`is_reservation_group` answer yes."""
    for expression in expressions:
        if isinstance(expression, CallExpression):
            return expression
    return None
