"""minijs: a small embeddable JavaScript interpreter with direct/indirect eval."""
from .js_types import JSError, JSSyntaxError, SyntaxErrorRecord, undefined
from .jsmini import (
    Interpreter, JSFunction, diagnose_parse, dump_tokens, make_context, parse,
    run, run_in_interpreter, run_with_interpreter, tokenize,
)

__version__ = '0.1.0'

__all__ = [
    'Interpreter', 'JSFunction', 'JSError', 'JSSyntaxError', 'SyntaxErrorRecord',
    'diagnose_parse', 'dump_tokens', 'make_context', 'parse', 'run',
    'run_in_interpreter', 'run_with_interpreter', 'tokenize', 'undefined',
]
