"""
Direct and indirect `eval`.

A call is a *direct* eval only when it is spelled as a bare `eval(...)` and the
name currently resolves to this interpreter's original eval primitive. Direct
eval runs the source against the caller's environment chain; everything else
that reaches the primitive (`global.eval(...)`, `(0, eval)(...)`, an alias like
`e(...)`) runs it against the global record only.
"""
from __future__ import annotations
import logging
from typing import Any, List, Optional

from .js_types import Env, JSError, JSSyntaxError, undefined

logger = logging.getLogger('jsmini.eval')

DIRECT = 'direct'
INDIRECT = 'indirect'

EVAL_PRIMITIVE_KEY = '_eval_primitive'


class ResolvedScope:
    """Environment a sub-program runs against: the caller's chain or the global record."""
    __slots__ = ('mode', 'env')

    def __init__(self, mode: str, env: Env):
        self.mode = mode
        self.env = env

    def __repr__(self):
        return f"<ResolvedScope {self.mode} {self.env!r}>"


def classify(bare_eval: bool, callee: Any, eval_primitive: Any) -> str:
    """Combine the call site's spelling with what `eval` resolves to right now."""
    if bare_eval and callee is eval_primitive:
        return DIRECT
    return INDIRECT


def resolve_scope(classification: str, caller_env: Env, global_env: Env) -> ResolvedScope:
    if classification == DIRECT:
        return ResolvedScope(DIRECT, caller_env)
    return ResolvedScope(INDIRECT, global_env)


def perform_eval(interp, args: List[Any], scope: ResolvedScope):
    """Compile args[0] and run it in `scope`; non-strings come back untouched."""
    if not args:
        return undefined
    source = args[0]
    # only primitive strings are parsed; String wrapper objects are returned as-is
    if not isinstance(source, str):
        return source
    try:
        program = interp.compile(source)
    except JSSyntaxError as exc:
        logger.debug("eval syntax error at %d:%d: %s", exc.line, exc.column, exc.message)
        error = interp.make_error('SyntaxError', exc.message)
        error['lineNumber'] = float(exc.line)
        error['columnNumber'] = float(exc.column)
        raise JSError(error) from exc
    return interp.execute(program, scope)


def dispatch(interp, callee, arg_nodes, env: Env, classification: str,
             receiver=None, callee_name: Optional[str] = None):
    """Evaluate every argument, then either call `callee` normally or eval in the resolved scope."""
    args = interp.eval_arguments(arg_nodes, env)
    if classification != DIRECT:
        return interp.call_function(callee, receiver, args, callee_name)
    logger.debug("direct eval from %r", env)
    scope = resolve_scope(classification, env, interp.global_env)
    interp.push_frame('eval@direct')
    try:
        return perform_eval(interp, args, scope)
    finally:
        interp._call_stack.pop()


def install(interp, JSFunction):
    """Create (once per global object) the eval primitive and bind the global `eval` to it."""
    context = interp.global_object
    primitive = context.get(EVAL_PRIMITIVE_KEY)
    if not isinstance(primitive, JSFunction):
        def _indirect_eval(it, this, args):
            # reached only through ordinary calls, so the global record is the scope
            logger.debug("indirect eval")
            return perform_eval(it, args, resolve_scope(INDIRECT, None, it.global_env))
        primitive = JSFunction(params=['x'], body=None, env=None, name='eval', native_impl=_indirect_eval)
        context[EVAL_PRIMITIVE_KEY] = primitive
    context.setdefault('eval', primitive)
    return primitive
