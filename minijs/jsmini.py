"""
Minimal ES3-ish JavaScript interpreter with direct and indirect `eval`.
 - var/let/const, function declarations/expressions, arrow functions
 - if/while/do/for, try/catch/finally, throw, break, continue
 - direct and indirect eval (see js_eval)
 - positioned syntax errors: "Unexpected token Eof. Expected CurlyClose (line: 1, column: 2)"
Usage:
    from minijs.jsmini import run, run_with_interpreter, make_context
    ctx = make_context(log_fn=print)
    result, interp = run_with_interpreter("function f(a){ var x = 5; eval('x += a'); return x } f(7)", ctx)
"""
from __future__ import annotations
import logging
import math
import re
import sys
from typing import Any, Dict, List, Optional, Tuple

from . import js_builtins, js_eval, settings
from .js_types import (
    EMPTY, BreakExc, ContinueExc, Env, JSError, JSSyntaxError, ReturnExc,
    SyntaxErrorRecord, undefined,
)

try:
    sys.setrecursionlimit(5000)  # nested JS calls recurse through the evaluator
except (ValueError, RecursionError):
    pass

logger = logging.getLogger('jsmini')

# --- Tokenizer --------------------------------------------------------------
Token = Tuple[str, str, int, int]  # (type, value, start, end)

TOKEN_SPEC = [
    ('NUMBER',   r'0[xX][0-9a-fA-F]+|(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?'),
    ('STRING',   r'"([^"\\\n]|\\[\s\S])*"|\'([^\'\\\n]|\\[\s\S])*\''),
    ('IDENT',    r'[A-Za-z_$][A-Za-z0-9_$]*'),
    ('COMMENT',  r'//[^\n]*|/\*[\s\S]*?\*/'),
    # longest operators first
    ('OP',       r'>>>=|===|!==|>>>|<<=|>>=|=>|\+=|-=|\*=|/=|%=|&=|\|=|\^=|<<|>>|==|!=|<=|>=|&&|\|\||\+\+|--|!|&|\^|\||~|\+|-|\*|/|%|<|>|='),
    ('PUNC',     r'[(){},;\[\].:?]'),
    ('SKIP',     r'[ \t\r\n]+'),
]
TOKEN_RE = re.compile('|'.join('(?P<%s>%s)' % pair for pair in TOKEN_SPEC))

KEYWORDS = frozenset((
    'var', 'let', 'const', 'function', 'return', 'if', 'else', 'while', 'do',
    'for', 'try', 'catch', 'finally', 'throw', 'break', 'continue', 'new',
    'typeof', 'instanceof', 'in', 'delete', 'void', 'this', 'switch', 'case', 'default',
))
RESERVED = KEYWORDS | {'null', 'true', 'false'}

TOKEN_NAMES = {
    '{': 'CurlyOpen', '}': 'CurlyClose', '(': 'ParenOpen', ')': 'ParenClose',
    '[': 'BracketOpen', ']': 'BracketClose', ';': 'Semicolon', ',': 'Comma',
    '.': 'Period', ':': 'Colon', '?': 'QuestionMark',
    '=': 'Equals', '=>': 'Arrow',
    '+': 'Plus', '-': 'Minus', '*': 'Asterisk', '/': 'Slash', '%': 'Percent',
    '++': 'PlusPlus', '--': 'MinusMinus',
    '+=': 'PlusEquals', '-=': 'MinusEquals', '*=': 'AsteriskEquals', '/=': 'SlashEquals',
    '%=': 'PercentEquals', '&=': 'AmpersandEquals', '|=': 'PipeEquals', '^=': 'CaretEquals',
    '<<=': 'ShiftLeftEquals', '>>=': 'ShiftRightEquals', '>>>=': 'UnsignedShiftRightEquals',
    '==': 'EqualsEquals', '===': 'EqualsEqualsEquals',
    '!=': 'ExclamationMarkEquals', '!==': 'ExclamationMarkEqualsEquals',
    '<': 'LessThan', '>': 'GreaterThan', '<=': 'LessThanEquals', '>=': 'GreaterThanEquals',
    '&&': 'DoubleAmpersand', '||': 'DoublePipe', '!': 'ExclamationMark',
    '&': 'Ampersand', '|': 'Pipe', '^': 'Caret', '~': 'Tilde',
    '<<': 'ShiftLeft', '>>': 'ShiftRight', '>>>': 'UnsignedShiftRight',
}


def token_kind(typ: str, val: Optional[str] = None) -> str:
    """Name of a token kind as it appears in syntax error messages."""
    if typ == 'EOF':
        return 'Eof'
    if typ == 'NUMBER':
        return 'NumericLiteral'
    if typ == 'STRING':
        return 'StringLiteral'
    if typ == 'IDENT':
        if val in ('true', 'false'):
            return 'BoolLiteral'
        if val == 'null':
            return 'NullLiteral'
        if val in KEYWORDS:
            return val.capitalize()
        return 'Identifier'
    return TOKEN_NAMES.get(val, typ)


def _line_col(src: str, pos: int) -> Tuple[int, int]:
    before = src[:pos]
    line = before.count('\n') + 1
    col = pos - (before.rfind('\n') + 1) + 1
    return line, col


def _format_parse_error_context(src: str, err_pos: int, err_len: int = 1, window: int = 40) -> str:
    """Return a short snippet around err_pos with a caret marker and (line,col) info."""
    lineno, col = _line_col(src, err_pos)
    start = max(0, err_pos - window)
    end = min(len(src), err_pos + err_len + window)
    snippet = src[start:end].replace('\n', '\\n')
    caret_line = ' ' * (err_pos - start) + '^' * max(1, err_len)
    return f"Line {lineno}, Col {col}\n{snippet}\n{caret_line}"


def tokenize(src: str) -> List[Token]:
    pos = 0
    out: List[Token] = []
    n = len(src)
    while pos < n:
        m = TOKEN_RE.match(src, pos)
        if not m:
            line, col = _line_col(src, pos)
            record = SyntaxErrorRecord(f"Illegal character {src[pos]!r} (line: {line}, column: {col})", line, col)
            raise JSSyntaxError(record, _format_parse_error_context(src, pos))
        typ = m.lastgroup
        if typ not in ('SKIP', 'COMMENT'):
            out.append((typ, m.group(typ), m.start(), m.end()))
        pos = m.end()
    out.append(('EOF', '', n, n))
    return out


_ESCAPE_RE = re.compile(r'\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\n|.)', re.S)
_SIMPLE_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0', '\n': ''}


def _unescape(body: str) -> str:
    def _sub(m):
        esc = m.group(1)
        if len(esc) > 1:
            return chr(int(esc[1:], 16))
        return _SIMPLE_ESCAPES.get(esc, esc)
    return _ESCAPE_RE.sub(_sub, body)


def _number_literal(text: str) -> float:
    if text[:2] in ('0x', '0X'):
        return float(int(text, 16))
    return float(text)

# --- Parser -----------------------------------------------------------------
# AST nodes are small tuples tagged by their first element:
# ('num', v), ('bin', op, l, r), ('call', callee, args, bare_eval), ('var', kind, decls), ...

ASSIGN_OPS = ('=', '+=', '-=', '*=', '/=', '%=', '&=', '|=', '^=', '<<=', '>>=', '>>>=')


class Parser:
    # Higher number => binds tighter.
    BINOPS = {
        '||': 1, '&&': 2,
        '|': 3, '^': 4, '&': 5,
        '==': 6, '!=': 6, '===': 6, '!==': 6,
        '<': 7, '>': 7, '<=': 7, '>=': 7, 'in': 7, 'instanceof': 7,
        '<<': 8, '>>': 8, '>>>': 8,
        '+': 9, '-': 9,
        '*': 10, '/': 10, '%': 10,
    }

    def __init__(self, tokens: List[Token], src: str = ''):
        self.tokens = tokens
        self.src = src
        self.i = 0
        self._fn_depth = 0

    def peek(self) -> Tuple[str, str]:
        t, v, _s, _e = self.tokens[self.i]
        return (t, v)

    def peek_at(self, offset: int) -> Tuple[str, str]:
        j = min(self.i + offset, len(self.tokens) - 1)
        t, v, _s, _e = self.tokens[j]
        return (t, v)

    def eat(self, typ: str, val: Optional[str] = None):
        t, v = self.peek()
        if t != typ or (val is not None and v != val):
            self._fail(token_kind(typ, val))
        self.i += 1
        return (t, v)

    def match(self, typ: str, val: Optional[str] = None) -> bool:
        t, v = self.peek()
        if t != typ:
            return False
        if val is not None and v != val:
            return False
        return True

    # -- errors --
    def _error_pos(self) -> int:
        # just past the last consumed token; start of the input if nothing was consumed
        if self.i > 0:
            return self.tokens[self.i - 1][3]
        return self.tokens[0][2]

    def _error_at(self, message: str):
        pos = self._error_pos()
        line, col = _line_col(self.src, pos)
        _t, _v, start, end = self.tokens[self.i]
        record = SyntaxErrorRecord(f"{message} (line: {line}, column: {col})", line, col)
        raise JSSyntaxError(record, _format_parse_error_context(self.src, start, max(1, end - start)))

    def _fail(self, expected: str):
        t, v = self.peek()
        self._error_at(f"Unexpected token {token_kind(t, v)}. Expected {expected}")

    def _newline_before(self) -> bool:
        if self.i == 0:
            return False
        prev_end = self.tokens[self.i - 1][3]
        return '\n' in self.src[prev_end:self.tokens[self.i][2]]

    def _consume_semicolon(self):
        if self.match('PUNC', ';'):
            self.eat('PUNC', ';')
            return
        if self.match('PUNC', '}') or self.match('EOF') or self._newline_before():
            return
        self._fail('Semicolon')

    def _binding_name(self) -> str:
        t, v = self.peek()
        if t != 'IDENT' or v in RESERVED:
            self._fail('Identifier')
        self.i += 1
        return v

    # -- statements --
    def parse_program(self):
        body = []
        while not self.match('EOF'):
            body.append(self.parse_statement())
        return ('prog', body)

    def parse_statement(self):
        t, v = self.peek()
        if t == 'PUNC' and v == ';':
            self.eat('PUNC', ';')
            return ('empty',)
        if t == 'PUNC' and v == '{':
            return self.parse_block()
        if t == 'IDENT':
            if v in ('var', 'let', 'const'):
                return self.parse_var_decl()
            if v == 'function':
                return self.parse_function_decl()
            if v == 'return':
                return self.parse_return()
            if v == 'if':
                return self.parse_if()
            if v == 'while':
                return self.parse_while()
            if v == 'do':
                return self.parse_do_while()
            if v == 'for':
                return self.parse_for()
            if v == 'try':
                return self.parse_try()
            if v == 'throw':
                return self.parse_throw()
            if v in ('break', 'continue'):
                self.eat('IDENT', v)
                self._consume_semicolon()
                return (v,)
        expr = self.parse_expression()
        self._consume_semicolon()
        return ('expr', expr)

    def parse_block(self):
        self.eat('PUNC', '{')
        stmts = []
        while not self.match('PUNC', '}') and not self.match('EOF'):
            stmts.append(self.parse_statement())
        self.eat('PUNC', '}')
        return ('block', stmts)

    def parse_var_decl(self, in_for: bool = False):
        kind = self.eat('IDENT')[1]
        decls = []
        while True:
            name = self._binding_name()
            init = None
            if self.match('OP', '='):
                self.eat('OP', '=')
                init = self.parse_assignment()
            elif kind == 'const':
                self._fail('Equals')
            decls.append((name, init))
            if not self.match('PUNC', ','):
                break
            self.eat('PUNC', ',')
        if not in_for:
            self._consume_semicolon()
        return ('var', kind, decls)

    def _parse_params(self) -> List[str]:
        self.eat('PUNC', '(')
        params = []
        while not self.match('PUNC', ')'):
            params.append(self._binding_name())
            if not self.match('PUNC', ')'):
                self.eat('PUNC', ',')
        self.eat('PUNC', ')')
        return params

    def _parse_function_body(self):
        self._fn_depth += 1
        try:
            return self.parse_block()
        finally:
            self._fn_depth -= 1

    def parse_function_decl(self):
        self.eat('IDENT', 'function')
        name = self._binding_name()
        params = self._parse_params()
        body = self._parse_function_body()
        return ('func_decl', name, params, body)

    def parse_return(self):
        if self._fn_depth == 0:
            self._error_at("'return' not allowed outside of a function")
        self.eat('IDENT', 'return')
        expr = None
        if not (self.match('PUNC', ';') or self.match('PUNC', '}') or self.match('EOF') or self._newline_before()):
            expr = self.parse_expression()
        self._consume_semicolon()
        return ('return', expr)

    def parse_if(self):
        self.eat('IDENT', 'if')
        self.eat('PUNC', '(')
        cond = self.parse_expression()
        self.eat('PUNC', ')')
        cons = self.parse_statement()
        alt = None
        if self.match('IDENT', 'else'):
            self.eat('IDENT', 'else')
            alt = self.parse_statement()
        return ('if', cond, cons, alt)

    def parse_while(self):
        self.eat('IDENT', 'while')
        self.eat('PUNC', '(')
        cond = self.parse_expression()
        self.eat('PUNC', ')')
        body = self.parse_statement()
        return ('while', cond, body)

    def parse_do_while(self):
        self.eat('IDENT', 'do')
        body = self.parse_statement()
        self.eat('IDENT', 'while')
        self.eat('PUNC', '(')
        cond = self.parse_expression()
        self.eat('PUNC', ')')
        if self.match('PUNC', ';'):
            self.eat('PUNC', ';')
        return ('do', body, cond)

    def parse_for(self):
        self.eat('IDENT', 'for')
        self.eat('PUNC', '(')
        init = None
        if self.match('PUNC', ';'):
            self.eat('PUNC', ';')
        elif self.match('IDENT', 'var') or self.match('IDENT', 'let') or self.match('IDENT', 'const'):
            init = self.parse_var_decl(in_for=True)
            self.eat('PUNC', ';')
        else:
            init = ('expr', self.parse_expression())
            self.eat('PUNC', ';')
        cond = None if self.match('PUNC', ';') else self.parse_expression()
        self.eat('PUNC', ';')
        post = None if self.match('PUNC', ')') else self.parse_expression()
        self.eat('PUNC', ')')
        body = self.parse_statement()
        return ('for', init, cond, post, body)

    def parse_try(self):
        self.eat('IDENT', 'try')
        block = self.parse_block()
        name = handler = finalizer = None
        if self.match('IDENT', 'catch'):
            self.eat('IDENT', 'catch')
            if self.match('PUNC', '('):
                self.eat('PUNC', '(')
                name = self._binding_name()
                self.eat('PUNC', ')')
            handler = self.parse_block()
        if self.match('IDENT', 'finally'):
            self.eat('IDENT', 'finally')
            finalizer = self.parse_block()
        if handler is None and finalizer is None:
            self._fail('Catch')
        return ('try', block, name, handler, finalizer)

    def parse_throw(self):
        self.eat('IDENT', 'throw')
        if self._newline_before():
            self._error_at("No line break is allowed between 'throw' and its expression")
        expr = self.parse_expression()
        self._consume_semicolon()
        return ('throw', expr)

    # -- expressions --
    def parse_expression(self):
        node = self.parse_assignment()
        while self.match('PUNC', ','):
            self.eat('PUNC', ',')
            node = ('comma', node, self.parse_assignment())
        return node

    def parse_assignment(self):
        if self._arrow_ahead():
            return self.parse_arrow()
        left = self.parse_binary(1)

        if self.match('OP') and self.peek()[1] in ASSIGN_OPS:
            if left[0] not in ('id', 'get'):
                self._error_at('Invalid left-hand side in assignment')
            op = self.eat('OP')[1]
            right = self.parse_assignment()
            if op == '=':
                return ('assign', left, right)
            return ('compound', op[:-1], left, right)

        if self.match('PUNC', '?'):
            self.eat('PUNC', '?')
            true_expr = self.parse_assignment()
            self.eat('PUNC', ':')
            false_expr = self.parse_assignment()
            return ('cond', left, true_expr, false_expr)

        return left

    def _arrow_ahead(self) -> bool:
        t, v = self.peek()
        if t == 'IDENT' and v not in RESERVED:
            return self.peek_at(1) == ('OP', '=>')
        if t != 'PUNC' or v != '(':
            return False
        depth = 0
        for j in range(self.i, len(self.tokens)):
            tt, tv = self.tokens[j][:2]
            if tt == 'EOF':
                return False
            if tt == 'PUNC' and tv in ('(', '[', '{'):
                depth += 1
            elif tt == 'PUNC' and tv in (')', ']', '}'):
                depth -= 1
                if depth == 0:
                    return self.tokens[j + 1][:2] == ('OP', '=>')
        return False

    def parse_arrow(self):
        if self.match('IDENT'):
            params = [self._binding_name()]
        else:
            params = self._parse_params()
        self.eat('OP', '=>')
        if self.match('PUNC', '{'):
            body = self._parse_function_body()
        else:
            self._fn_depth += 1
            try:
                expr = self.parse_assignment()
            finally:
                self._fn_depth -= 1
            body = ('block', [('return', expr)])
        return ('arrow', params, body)

    def parse_binary(self, min_prec):
        left = self.parse_unary()
        while True:
            t, v = self.peek()
            prec = self.BINOPS.get(v) if t in ('OP', 'IDENT') else None
            if prec is None or prec < min_prec:
                break
            self.eat(t, v)
            right = self.parse_binary(prec + 1)
            left = ('bin', v, left, right)
        return left

    def parse_unary(self):
        t, v = self.peek()
        if t == 'OP' and v in ('-', '+', '!', '~'):
            self.eat('OP', v)
            return ('unary', v, self.parse_unary())
        if t == 'OP' and v in ('++', '--'):
            self.eat('OP', v)
            return ('preop', v, self.parse_unary())
        if t == 'IDENT' and v in ('delete', 'typeof', 'void'):
            self.eat('IDENT', v)
            return (v, self.parse_unary())
        return self.parse_call_member()

    def parse_call_member(self):
        parenthesized = False
        if self.match('IDENT', 'new'):
            node = self.parse_new()
        else:
            parenthesized = self.match('PUNC', '(')
            node = self.parse_primary()
        while True:
            if self.match('PUNC', '('):
                args = self._parse_arguments()
                # only a bare, unparenthesised `eval` can be a direct eval
                bare_eval = not parenthesized and node == ('id', 'eval')
                node = ('call', node, args, bare_eval)
                continue
            if self.match('PUNC', '.') or self.match('PUNC', '['):
                node = self._parse_member(node)
                continue
            if self.match('OP') and self.peek()[1] in ('++', '--') and not self._newline_before():
                op = self.eat('OP')[1]
                node = ('postop', op, node)
                continue
            break
        return node

    def _parse_member(self, node):
        if self.match('PUNC', '.'):
            self.eat('PUNC', '.')
            prop = self.eat('IDENT')[1]
            return ('get', node, ('str', prop))
        self.eat('PUNC', '[')
        prop = self.parse_expression()
        self.eat('PUNC', ']')
        return ('get', node, prop)

    def _parse_arguments(self):
        self.eat('PUNC', '(')
        args = []
        while not self.match('PUNC', ')'):
            args.append(self.parse_assignment())
            if not self.match('PUNC', ')'):
                self.eat('PUNC', ',')
        self.eat('PUNC', ')')
        return args

    def parse_new(self):
        self.eat('IDENT', 'new')
        target = self.parse_new() if self.match('IDENT', 'new') else self.parse_primary()
        while self.match('PUNC', '.') or self.match('PUNC', '['):
            target = self._parse_member(target)
        args = self._parse_arguments() if self.match('PUNC', '(') else []
        return ('new', target, args)

    def parse_primary(self):
        t, v = self.peek()
        if t == 'NUMBER':
            self.eat('NUMBER')
            return ('num', _number_literal(v))
        if t == 'STRING':
            self.eat('STRING')
            return ('str', _unescape(v[1:-1]))
        if t == 'IDENT':
            if v == 'function':
                return self.parse_function_expr()
            if v in ('true', 'false'):
                self.eat('IDENT')
                return ('bool', v == 'true')
            if v == 'null':
                self.eat('IDENT')
                return ('null',)
            if v == 'this':
                self.eat('IDENT')
                return ('this',)
            if v in RESERVED:
                self._fail('primary expression')
            self.eat('IDENT')
            return ('id', v)
        if t == 'PUNC' and v == '(':
            self.eat('PUNC', '(')
            expr = self.parse_expression()
            self.eat('PUNC', ')')
            return expr
        if t == 'PUNC' and v == '{':
            return self.parse_object_literal()
        if t == 'PUNC' and v == '[':
            return self.parse_array_literal()
        self._fail('primary expression')

    def parse_function_expr(self):
        self.eat('IDENT', 'function')
        name = None
        if self.match('IDENT'):
            name = self._binding_name()
        params = self._parse_params()
        body = self._parse_function_body()
        return ('func', name, params, body)

    def parse_object_literal(self):
        self.eat('PUNC', '{')
        props = []
        while not self.match('PUNC', '}'):
            t, v = self.peek()
            if t == 'STRING':
                key = _unescape(v[1:-1])
            elif t == 'NUMBER':
                key = _number_key(_number_literal(v))
            elif t == 'IDENT':
                key = v
            else:
                self._fail('Identifier')
            self.i += 1
            self.eat('PUNC', ':')
            props.append((key, self.parse_assignment()))
            if not self.match('PUNC', '}'):
                self.eat('PUNC', ',')
        self.eat('PUNC', '}')
        return ('obj', props)

    def parse_array_literal(self):
        self.eat('PUNC', '[')
        elems = []
        while not self.match('PUNC', ']'):
            if self.match('PUNC', ','):
                self.eat('PUNC', ',')
                elems.append(('hole',))
                continue
            elems.append(self.parse_assignment())
            if not self.match('PUNC', ']'):
                self.eat('PUNC', ',')
        self.eat('PUNC', ']')
        return ('arr', elems)


def parse(src: str):
    """Compile `src` into a ('prog', ...) tree; raises JSSyntaxError with line/column."""
    tokens = tokenize(src)
    return Parser(tokens, src).parse_program()

# --- Runtime ----------------------------------------------------------------

def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _number_key(n: float) -> str:
    if math.isfinite(n) and float(n).is_integer():
        return str(int(n))
    return _number_to_string(n)


def _number_to_string(n) -> str:
    if math.isnan(n):
        return 'NaN'
    if math.isinf(n):
        return 'Infinity' if n > 0 else '-Infinity'
    if float(n).is_integer() and abs(n) < 1e21:
        return str(int(n))
    return repr(float(n))


def _to_uint32(n: float) -> int:
    if math.isnan(n) or math.isinf(n):
        return 0
    return int(n) % (1 << 32)


def _to_int32(n: float) -> int:
    u = _to_uint32(n)
    return u - (1 << 32) if u >= (1 << 31) else u


def _compress_call_stack(cs: List[str], max_run_display: int = 6) -> List[str]:
    """Collapse runs of identical frames so deep recursion logs stay readable."""
    out: List[str] = []
    i = 0
    while i < len(cs):
        j = i
        while j < len(cs) and cs[j] == cs[i]:
            j += 1
        run = j - i
        if run > max_run_display:
            out.append(f"{cs[i]} (repeated {run}x)")
        else:
            out.extend(cs[i:j])
        i = j
    return out


def _collect_var_names(stmts, out: List[str]):
    """`var` names declared in a statement list, searching nested blocks but not nested functions."""
    for st in stmts:
        kind = st[0]
        if kind == 'var':
            if st[1] == 'var':
                out.extend(name for name, _init in st[2])
        elif kind == 'block':
            _collect_var_names(st[1], out)
        elif kind == 'if':
            _collect_var_names([s for s in st[2:] if s is not None], out)
        elif kind == 'while':
            _collect_var_names([st[2]], out)
        elif kind == 'do':
            _collect_var_names([st[1]], out)
        elif kind == 'for':
            _collect_var_names([s for s in (st[1], st[4]) if s is not None], out)
        elif kind == 'try':
            _collect_var_names([s for s in st[1:] if isinstance(s, tuple)], out)
    return out


class JSFunction:
    # Function.prototype, shared by every function object; filled in by js_builtins
    fn_proto: Dict[str, Any] = {}

    def __init__(self, params=None, body=None, env: Optional[Env] = None, name: Optional[str] = None,
                 native_impl: Optional[callable] = None, is_arrow: bool = False,
                 ctor_impl: Optional[callable] = None):
        # scripted functions carry params/body/env; natives carry native_impl(interp, this, args)
        self.params = list(params or [])
        self.body = body
        self.env = env
        self.name = name
        self.native_impl = native_impl
        # optional ctor_impl(interp, args) used by `new` instead of the generic object allocation
        self.ctor_impl = ctor_impl
        self.is_arrow = is_arrow
        self.props: Dict[str, Any] = {}
        self.prototype: Dict[str, Any] = {'constructor': self}

    @property
    def is_constructor(self) -> bool:
        return not self.is_arrow and (self.native_impl is None or self.ctor_impl is not None)

    def debug_label(self):
        return f"{self.name or '<anon>'}@{id(self)}"

    def call(self, interp: 'Interpreter', this, args):
        """Invoke with a JS `this`; enforces the interpreter's call-depth limit."""
        interp.push_frame(self.debug_label())
        try:
            if self.native_impl is not None:
                return self.native_impl(interp, this, list(args))
            local = Env(self.env, function_scope=True)
            if not self.is_arrow:
                local.set_local('this', interp.global_object if this is undefined or this is None else this)
                local.set_local('arguments', interp.make_array(args))
            for i, p in enumerate(self.params):
                local.set_local(p, args[i] if i < len(args) else undefined)
            try:
                interp.run_body(self.body[1], local)
            except ReturnExc as r:
                return r.value
            return undefined
        finally:
            interp._call_stack.pop()

    def construct(self, interp: 'Interpreter', args):
        if not self.is_constructor:
            raise interp.throw_error('TypeError', f"{self.name or 'anonymous'} is not a constructor")
        if self.ctor_impl is not None:
            return self.ctor_impl(interp, list(args))
        proto = self.prototype if isinstance(self.prototype, dict) else interp.object_prototype
        obj = {'__proto__': proto}
        res = self.call(interp, obj, args)
        return res if isinstance(res, (dict, JSFunction)) else obj

    def __repr__(self):
        return f"<JSFunction {self.name or '<anon>'}>"


class Interpreter:
    def __init__(self, globals_map: Optional[Dict[str, Any]] = None, config=None):
        self._context: Dict[str, Any] = globals_map if isinstance(globals_map, dict) else {}
        if not self._context.get('_builtins_registered'):
            js_builtins.register_builtins(self._context, JSFunction)
            self._context['_builtins_registered'] = True
        # the global Environment Record's bindings are the global object itself
        self.global_env = Env(vars=self._context, function_scope=True)
        self._intrinsics = {name: self._context[name] for name in js_builtins.INTRINSICS}

        limits = settings.interpreter_limits(config)
        self._exec_count = 0
        self._exec_limit = limits['exec_limit']
        self._max_js_call_depth = limits['max_call_depth']
        self._trace = limits['trace']
        self._call_stack: List[str] = []

        self.eval_primitive = js_eval.install(self, JSFunction)

    @property
    def global_object(self) -> Dict[str, Any]:
        return self._context

    @property
    def object_prototype(self) -> Dict[str, Any]:
        return self._intrinsics['Object'].prototype

    # -- host-facing API --
    def compile(self, source: str):
        return parse(source)

    def run_ast(self, ast):
        return self._eval_prog(ast, self.global_env)

    def execute(self, program, scope: 'js_eval.ResolvedScope'):
        """Run a compiled program in a fresh declarative record on top of `scope.env`."""
        return self._eval_prog(program, Env(scope.env))

    def eval_arguments(self, arg_nodes, env: Env) -> List[Any]:
        # left to right; the first throwing argument stops the rest
        return [self._eval_expr(a, env) for a in arg_nodes]

    def call_function(self, fn, this, args, name: Optional[str] = None):
        if isinstance(fn, JSFunction):
            return fn.call(self, this, args)
        if callable(fn):
            return fn(*args)
        raise self.throw_error('TypeError', f"{name or self.to_display(fn)} is not a function")

    def push_frame(self, label: str):
        """Record a JS-level frame, throwing RangeError once `maxCallDepth` frames are live."""
        max_depth = self._max_js_call_depth
        if max_depth and len(self._call_stack) >= max_depth:
            logger.warning("Deep JS call stack (len=%d) entering %s; top frames: %s",
                           len(self._call_stack), label,
                           _compress_call_stack(self._call_stack)[-8:])
            raise self.throw_error('RangeError', 'Maximum call stack size exceeded')
        self._call_stack.append(label)

    def make_error(self, kind: str, message: str):
        return self._intrinsics[kind].construct(self, [message])

    def throw_error(self, kind: str, message: str) -> JSError:
        return JSError(self.make_error(kind, message))

    def make_array(self, items):
        return js_builtins.js_array(items, self._intrinsics['Array'].prototype)

    # -- conversions --
    def typeof(self, v) -> str:
        if v is undefined:
            return 'undefined'
        if v is None:
            return 'object'
        if isinstance(v, bool):
            return 'boolean'
        if _is_number(v):
            return 'number'
        if isinstance(v, str):
            return 'string'
        if isinstance(v, JSFunction) or callable(v):
            return 'function'
        return 'object'

    def to_primitive(self, v, hint: str = 'default'):
        if not isinstance(v, (dict, JSFunction)):
            return v
        order = ('toString', 'valueOf') if hint == 'string' else ('valueOf', 'toString')
        for method in order:
            fn = self._prop_get(v, method)
            if isinstance(fn, JSFunction) or callable(fn):
                res = self.call_function(fn, v, [])
                if not isinstance(res, (dict, JSFunction)):
                    return res
        raise self.throw_error('TypeError', 'Cannot convert object to primitive value')

    def to_string(self, v) -> str:
        if isinstance(v, str):
            return v
        if v is undefined:
            return 'undefined'
        if v is None:
            return 'null'
        if isinstance(v, bool):
            return 'true' if v else 'false'
        if _is_number(v):
            return _number_to_string(v)
        if isinstance(v, (dict, JSFunction)):
            return self.to_string(self.to_primitive(v, 'string'))
        return str(v)

    def to_number(self, v) -> float:
        if v is undefined:
            return math.nan
        if v is None:
            return 0.0
        if isinstance(v, bool):
            return 1.0 if v else 0.0
        if _is_number(v):
            return float(v)
        if isinstance(v, str):
            s = v.strip()
            if s == '':
                return 0.0
            if re.fullmatch(r'[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)', s):
                return float(s)
            if re.fullmatch(r'0[xX][0-9a-fA-F]+', s):
                return float(int(s, 16))
            if s in ('Infinity', '+Infinity'):
                return math.inf
            if s == '-Infinity':
                return -math.inf
            return math.nan
        if isinstance(v, (dict, JSFunction)):
            return self.to_number(self.to_primitive(v, 'number'))
        return math.nan

    def to_display(self, v) -> str:
        if isinstance(v, str):
            return repr(v)
        if isinstance(v, JSFunction):
            return f"function {v.name or ''}".rstrip()
        if isinstance(v, dict):
            return '[object Object]'
        return self.to_string(v)

    def to_property_key(self, key) -> str:
        if isinstance(key, str):
            return key
        if _is_number(key):
            return _number_key(key)
        return self.to_string(key)

    def _is_truthy(self, v):
        if v is undefined or v is None:
            return False
        if isinstance(v, bool):
            return v
        if _is_number(v):
            return not (v == 0 or math.isnan(v))
        if isinstance(v, str):
            return v != ''
        return True

    # -- properties --
    def _lookup_proto_chain(self, obj: Dict[str, Any], key: str):
        cur = obj
        seen = set()
        while isinstance(cur, dict) and id(cur) not in seen:
            seen.add(id(cur))
            if key in cur:
                return cur[key]
            cur = cur.get('__proto__')
        return undefined

    def _prop_get(self, obj, key):
        """Prototype-aware property read; `undefined` when absent."""
        if obj is undefined or obj is None:
            raise self.throw_error('TypeError', f"Cannot read property '{self.to_property_key(key)}' of {self.to_string(obj)}")
        key = self.to_property_key(key)
        if isinstance(obj, dict):
            return self._lookup_proto_chain(obj, key)
        if isinstance(obj, JSFunction):
            if key in obj.props:
                return obj.props[key]
            if key == 'prototype':
                return obj.prototype
            if key == 'name':
                return obj.name or ''
            if key == 'length':
                return float(len(obj.params))
            if key in JSFunction.fn_proto:
                return JSFunction.fn_proto[key]
            return self._lookup_proto_chain(self.object_prototype, key)
        if isinstance(obj, str):
            if key == 'length':
                return float(len(obj))
            if key.isascii() and key.isdigit():
                idx = int(key)
                return obj[idx] if idx < len(obj) else undefined
            return self._lookup_proto_chain(self._intrinsics['String'].prototype, key)
        if isinstance(obj, bool):
            return self._lookup_proto_chain(self._intrinsics['Boolean'].prototype, key)
        if _is_number(obj):
            return self._lookup_proto_chain(self._intrinsics['Number'].prototype, key)
        # host/python objects
        return getattr(obj, key, undefined)

    def _prop_set(self, obj, key, value):
        if obj is undefined or obj is None:
            raise self.throw_error('TypeError', f"Cannot set property '{self.to_property_key(key)}' of {self.to_string(obj)}")
        key = self.to_property_key(key)
        if isinstance(obj, dict):
            obj[key] = value
        elif isinstance(obj, JSFunction):
            if key == 'prototype':
                obj.prototype = value
            else:
                obj.props[key] = value
        elif isinstance(obj, (str, int, float)):
            # primitives silently drop writes in sloppy mode
            pass
        else:
            setattr(obj, key, value)

    # -- bindings --
    def _lookup(self, env: Env, name: str):
        owner = env.lookup(name)
        if owner is None:
            raise self.throw_error('ReferenceError', f"'{name}' is not defined")
        return owner.vars[name]

    def _assign_name(self, env: Env, name: str, value):
        owner = env.lookup(name)
        if owner is not None and name in owner.consts:
            raise self.throw_error('TypeError', 'Assignment to constant variable.')
        env.set(name, value)

    def _make_function(self, params, body, env: Env, name=None, is_arrow=False):
        fn = JSFunction(params, body, env, name, is_arrow=is_arrow)
        fn.prototype['__proto__'] = self.object_prototype
        return fn

    def _hoist(self, stmts, env: Env):
        scope = env.var_scope()
        for name in _collect_var_names(stmts, []):
            env.declare_var(name)
        self._declare_functions(stmts, env, scope)

    def _declare_functions(self, stmts, env: Env, target: Env):
        for st in stmts:
            if st[0] == 'func_decl':
                _, name, params, body = st
                target.set_local(name, self._make_function(params, body, env, name))

    # -- evaluation --
    def run_body(self, stmts, env: Env):
        """Run a function body: hoist into `env`, then execute statement by statement."""
        self._hoist(stmts, env)
        try:
            for st in stmts:
                self._eval_stmt(st, env)
        except BreakExc:
            raise RuntimeError("Uncaught 'break' (break statement not inside loop)")
        except ContinueExc:
            raise RuntimeError("Uncaught 'continue' (continue statement not inside loop)")

    def _eval_prog(self, node, env: Env):
        assert node[0] == 'prog'
        stmts = node[1]
        self._hoist(stmts, env)
        res = EMPTY
        try:
            for st in stmts:
                val = self._eval_stmt(st, env)
                if val is not EMPTY:
                    res = val
        except BreakExc:
            raise RuntimeError("Uncaught 'break' (break statement not inside loop)")
        except ContinueExc:
            raise RuntimeError("Uncaught 'continue' (continue statement not inside loop)")
        return undefined if res is EMPTY else res

    def _run_loop_body(self, body, env: Env, res):
        """Returns (completion, keep_going)."""
        try:
            val = self._eval_stmt(body, env)
        except BreakExc:
            return res, False
        except ContinueExc:
            return res, True
        return (res if val is EMPTY else val), True

    def _eval_stmt(self, node, env: Env):
        # execution watchdog so runaway scripts fail instead of hanging the host
        self._exec_count += 1
        if self._trace and self._exec_count % 50000 == 0:
            logger.debug("exec_count=%d call_stack_depth=%d", self._exec_count, len(self._call_stack))
        if self._exec_limit and self._exec_count > self._exec_limit:
            logger.warning("Execution limit exceeded (%d statements)", self._exec_count)
            raise RuntimeError(
                f"Execution limit exceeded ({self._exec_count} statements). "
                f"Call stack (top->bottom): {_compress_call_stack(self._call_stack)[-10:]}"
            )

        typ = node[0]
        if typ == 'expr':
            return self._eval_expr(node[1], env)
        if typ in ('empty', 'func_decl'):
            return EMPTY
        if typ == 'var':
            _, kind, decls = node
            for name, init in decls:
                if kind == 'var':
                    if init is not None:
                        self._assign_name(env, name, self._eval_expr(init, env))
                    continue
                value = undefined if init is None else self._eval_expr(init, env)
                env.set_local(name, value)
                if kind == 'const':
                    env.consts.add(name)
            return EMPTY
        if typ == 'block':
            local = Env(env)
            self._declare_functions(node[1], local, local)
            res = EMPTY
            for st in node[1]:
                val = self._eval_stmt(st, local)
                if val is not EMPTY:
                    res = val
            return res
        if typ == 'return':
            raise ReturnExc(undefined if node[1] is None else self._eval_expr(node[1], env))
        if typ == 'if':
            _, cond, cons, alt = node
            branch = cons if self._is_truthy(self._eval_expr(cond, env)) else alt
            if branch is None:
                return undefined
            val = self._eval_stmt(branch, env)
            return undefined if val is EMPTY else val
        if typ == 'while':
            _, cond, body = node
            res = EMPTY
            while self._is_truthy(self._eval_expr(cond, env)):
                res, keep_going = self._run_loop_body(body, env, res)
                if not keep_going:
                    break
            return undefined if res is EMPTY else res
        if typ == 'do':
            _, body, cond = node
            res = EMPTY
            while True:
                res, keep_going = self._run_loop_body(body, env, res)
                if not keep_going or not self._is_truthy(self._eval_expr(cond, env)):
                    break
            return undefined if res is EMPTY else res
        if typ == 'for':
            _, init, cond, post, body = node
            local = Env(env)
            if init is not None:
                self._eval_stmt(init, local)
            res = EMPTY
            while cond is None or self._is_truthy(self._eval_expr(cond, local)):
                res, keep_going = self._run_loop_body(body, local, res)
                if not keep_going:
                    break
                if post is not None:
                    self._eval_expr(post, local)
            return undefined if res is EMPTY else res
        if typ == 'try':
            _, block, name, handler, finalizer = node
            try:
                res = self._eval_stmt(block, env)
            except JSError as je:
                if handler is None:
                    raise
                local = Env(env)
                if name:
                    local.set_local(name, je.value)
                res = self._eval_stmt(handler, local)
            finally:
                if finalizer is not None:
                    self._eval_stmt(finalizer, env)
            return undefined if res is EMPTY else res
        if typ == 'throw':
            raise JSError(self._eval_expr(node[1], env))
        if typ == 'break':
            raise BreakExc()
        if typ == 'continue':
            raise ContinueExc()
        raise RuntimeError(f"Unknown stmt {typ}")

    def _ref(self, target, env: Env):
        if target[0] == 'id':
            return ('name', target[1])
        if target[0] == 'get':
            obj = self._eval_expr(target[1], env)
            return ('prop', obj, self._eval_expr(target[2], env))
        raise self.throw_error('SyntaxError', 'Invalid left-hand side in assignment')

    def _ref_get(self, ref, env: Env):
        if ref[0] == 'name':
            return self._lookup(env, ref[1])
        return self._prop_get(ref[1], ref[2])

    def _ref_set(self, ref, env: Env, value):
        if ref[0] == 'name':
            self._assign_name(env, ref[1], value)
        else:
            self._prop_set(ref[1], ref[2], value)

    def _callee_name(self, node) -> Optional[str]:
        if node[0] == 'id':
            return node[1]
        if node[0] == 'get' and node[2][0] == 'str':
            base = self._callee_name(node[1])
            return f"{base}.{node[2][1]}" if base else node[2][1]
        return None

    def _eval_call(self, node, env: Env):
        _, callee_node, arg_nodes, bare_eval = node
        receiver = undefined
        if callee_node[0] == 'get':
            receiver = self._eval_expr(callee_node[1], env)
            fn_val = self._prop_get(receiver, self._eval_expr(callee_node[2], env))
        else:
            fn_val = self._eval_expr(callee_node, env)
        # classification happens before any argument is evaluated
        classification = js_eval.classify(bare_eval, fn_val, self.eval_primitive)
        return js_eval.dispatch(self, fn_val, arg_nodes, env, classification,
                                receiver=receiver, callee_name=self._callee_name(callee_node))

    def _eval_expr(self, node, env: Env):
        typ = node[0]
        if typ in ('num', 'str', 'bool'):
            return node[1]
        if typ == 'null':
            return None
        if typ == 'id':
            return self._lookup(env, node[1])
        if typ == 'this':
            owner = env.lookup('this')
            return owner.vars['this'] if owner is not None else self.global_object
        if typ == 'call':
            return self._eval_call(node, env)
        if typ == 'get':
            obj = self._eval_expr(node[1], env)
            return self._prop_get(obj, self._eval_expr(node[2], env))
        if typ == 'bin':
            _, op, left, right = node
            if op == '&&':
                lv = self._eval_expr(left, env)
                return self._eval_expr(right, env) if self._is_truthy(lv) else lv
            if op == '||':
                lv = self._eval_expr(left, env)
                return lv if self._is_truthy(lv) else self._eval_expr(right, env)
            lv = self._eval_expr(left, env)
            return self._apply_bin(op, lv, self._eval_expr(right, env))
        if typ == 'assign':
            _, target, value_node = node
            ref = self._ref(target, env)
            value = self._eval_expr(value_node, env)
            self._ref_set(ref, env, value)
            return value
        if typ == 'compound':
            _, op, target, value_node = node
            ref = self._ref(target, env)
            current = self._ref_get(ref, env)
            value = self._apply_bin(op, current, self._eval_expr(value_node, env))
            self._ref_set(ref, env, value)
            return value
        if typ in ('preop', 'postop'):
            _, op, target = node
            ref = self._ref(target, env)
            old = self.to_number(self._ref_get(ref, env))
            new = old + 1 if op == '++' else old - 1
            self._ref_set(ref, env, new)
            return new if typ == 'preop' else old
        if typ == 'unary':
            _, op, operand = node
            v = self._eval_expr(operand, env)
            if op == '-':
                return -self.to_number(v)
            if op == '+':
                return self.to_number(v)
            if op == '!':
                return not self._is_truthy(v)
            return float(~_to_int32(self.to_number(v)))
        if typ == 'typeof':
            operand = node[1]
            if operand[0] == 'id' and not env.has(operand[1]):
                return 'undefined'
            return self.typeof(self._eval_expr(operand, env))
        if typ == 'void':
            self._eval_expr(node[1], env)
            return undefined
        if typ == 'delete':
            target = node[1]
            if target[0] != 'get':
                return target[0] != 'id'
            obj = self._eval_expr(target[1], env)
            key = self.to_property_key(self._eval_expr(target[2], env))
            if isinstance(obj, dict):
                obj.pop(key, None)
            elif isinstance(obj, JSFunction):
                obj.props.pop(key, None)
            return True
        if typ == 'cond':
            _, test, cons, alt = node
            return self._eval_expr(cons if self._is_truthy(self._eval_expr(test, env)) else alt, env)
        if typ == 'comma':
            self._eval_expr(node[1], env)
            return self._eval_expr(node[2], env)
        if typ == 'func':
            _, name, params, body = node
            if not name:
                return self._make_function(params, body, env)
            # named function expressions see their own name
            scope = Env(env)
            fn = self._make_function(params, body, scope, name)
            scope.set_local(name, fn)
            return fn
        if typ == 'arrow':
            return self._make_function(node[1], node[2], env, is_arrow=True)
        if typ == 'obj':
            obj = {'__proto__': self.object_prototype}
            for key, value_node in node[1]:
                obj[key] = self._eval_expr(value_node, env)
            return obj
        if typ == 'arr':
            arr = self.make_array([])
            for i, el in enumerate(node[1]):
                if el[0] != 'hole':
                    arr[str(i)] = self._eval_expr(el, env)
            arr['length'] = float(len(node[1]))
            return arr
        if typ == 'new':
            _, target, arg_nodes = node
            ctor = self._eval_expr(target, env)
            args = self.eval_arguments(arg_nodes, env)
            if not isinstance(ctor, JSFunction):
                name = self._callee_name(target) or self.to_display(ctor)
                raise self.throw_error('TypeError', f"{name} is not a constructor")
            return ctor.construct(self, args)
        raise RuntimeError(f"Unknown expr {typ}")

    # -- operators --
    def strict_equals(self, a, b) -> bool:
        if _is_number(a) and _is_number(b):
            return a == b
        if isinstance(a, str) and isinstance(b, str):
            return a == b
        if isinstance(a, bool) and isinstance(b, bool):
            return a == b
        return a is b

    def loose_equals(self, a, b) -> bool:
        a_nullish = a is None or a is undefined
        b_nullish = b is None or b is undefined
        if a_nullish or b_nullish:
            return a_nullish and b_nullish
        if self.typeof(a) == self.typeof(b):
            return self.strict_equals(a, b)
        if isinstance(a, bool):
            return self.loose_equals(self.to_number(a), b)
        if isinstance(b, bool):
            return self.loose_equals(a, self.to_number(b))
        a_obj = isinstance(a, (dict, JSFunction))
        b_obj = isinstance(b, (dict, JSFunction))
        if a_obj and b_obj:
            return a is b
        if a_obj:
            return self.loose_equals(self.to_primitive(a), b)
        if b_obj:
            return self.loose_equals(a, self.to_primitive(b))
        if isinstance(a, str) and isinstance(b, str):
            return a == b
        return self.to_number(a) == self.to_number(b)

    def _instance_of(self, obj, ctor) -> bool:
        if not isinstance(ctor, JSFunction):
            raise self.throw_error('TypeError', "Right-hand side of 'instanceof' is not callable")
        target = ctor.prototype
        cur = obj.get('__proto__') if isinstance(obj, dict) else None
        seen = set()
        while isinstance(cur, dict) and id(cur) not in seen:
            if cur is target:
                return True
            seen.add(id(cur))
            cur = cur.get('__proto__')
        return False

    def _apply_bin(self, op, a, b):
        if op == '+':
            pa, pb = self.to_primitive(a), self.to_primitive(b)
            if isinstance(pa, str) or isinstance(pb, str):
                return self.to_string(pa) + self.to_string(pb)
            return self.to_number(pa) + self.to_number(pb)
        if op == '===':
            return self.strict_equals(a, b)
        if op == '!==':
            return not self.strict_equals(a, b)
        if op == '==':
            return self.loose_equals(a, b)
        if op == '!=':
            return not self.loose_equals(a, b)
        if op == 'instanceof':
            return self._instance_of(a, b)
        if op == 'in':
            if not isinstance(b, (dict, JSFunction)):
                raise self.throw_error('TypeError', "Cannot use 'in' operator to search for a key in a primitive")
            key = self.to_property_key(a)
            if isinstance(b, JSFunction):
                return key in b.props or key in ('prototype', 'name', 'length')
            return self._lookup_proto_chain(b, key) is not undefined or key in b
        if op in ('<', '>', '<=', '>='):
            pa, pb = self.to_primitive(a, 'number'), self.to_primitive(b, 'number')
            if not (isinstance(pa, str) and isinstance(pb, str)):
                pa, pb = self.to_number(pa), self.to_number(pb)
                if math.isnan(pa) or math.isnan(pb):
                    return False
            if op == '<': return pa < pb
            if op == '>': return pa > pb
            if op == '<=': return pa <= pb
            return pa >= pb

        x, y = self.to_number(a), self.to_number(b)
        if op == '-':
            return x - y
        if op == '*':
            return x * y
        if op == '/':
            if y == 0:
                if x == 0 or math.isnan(x):
                    return math.nan
                return math.copysign(math.inf, x) * math.copysign(1.0, y)
            return x / y
        if op == '%':
            if y == 0 or math.isinf(x) or math.isnan(x) or math.isnan(y):
                return math.nan
            if math.isinf(y):
                return x
            return math.fmod(x, y)
        if op == '&':
            return float(_to_int32(x) & _to_int32(y))
        if op == '|':
            return float(_to_int32(x) | _to_int32(y))
        if op == '^':
            return float(_to_int32(x) ^ _to_int32(y))
        shift = _to_uint32(y) & 31
        if op == '<<':
            return float(_to_int32(float(_to_int32(x) << shift)))
        if op == '>>':
            return float(_to_int32(x) >> shift)
        if op == '>>>':
            return float(_to_uint32(x) >> shift)
        raise RuntimeError(f"Unknown operator {op}")

# --- Public helpers ---------------------------------------------------------

def make_context(log_fn=None):
    """Return a globals dict suitable for Interpreter; pass log_fn to capture console.log."""
    context: Dict[str, Any] = {}
    js_builtins.register_builtins(context, JSFunction, log_fn=log_fn)
    context['_builtins_registered'] = True
    return context


def run_in_interpreter(src: str, interp: Interpreter) -> Any:
    """Evaluate `src` in an existing Interpreter (preserves globals and function bindings)."""
    return interp.run_ast(parse(src))


def run_with_interpreter(src: str, context: Optional[Dict[str, Any]] = None, config=None):
    """Run and return (result, interpreter)."""
    ast = parse(src)
    ctx = context if context is not None else {}
    interp = Interpreter(ctx, config=config)
    return interp.run_ast(ast), interp


def run(src: str, context: Optional[Dict[str, Any]] = None, config=None):
    """Parse and execute `src` in a fresh interpreter over `context`."""
    result, _interp = run_with_interpreter(src, context, config)
    return result


def dump_tokens(src: str, start_index: int, count: int = 40) -> str:
    """Return a readable token dump around `start_index` (negative means 0)."""
    try:
        toks = tokenize(src)
    except JSSyntaxError as e:
        return f"tokenize() failed: {e}"
    n = len(toks)
    idx = max(0, start_index)
    lo = max(0, idx - count // 2)
    hi = min(n, lo + count)
    lines = [f"Tokens {lo}..{hi-1} (total {n}):"]
    for i in range(lo, hi):
        t, v, s, e = toks[i]
        snippet = src[s:e].replace('\n', '\\n')
        marker = '<--' if i == idx else ''
        lines.append(f"{i:4}: {token_kind(t, v):16} {v!r}  [{s}:{e}]  {snippet} {marker}".rstrip())
    return "\n".join(lines)


def diagnose_parse(src: str, radius_tokens: int = 24) -> str:
    """Parse `src`; on failure report the message, the parser's token index and a token dump."""
    try:
        tokens = tokenize(src)
    except JSSyntaxError as se:
        return f"SyntaxError: {se}\n{se.context}"
    p = Parser(tokens, src)
    try:
        p.parse_program()
    except JSSyntaxError as se:
        t, v, _s, _e = tokens[p.i]
        return (
            f"SyntaxError: {se}\nParser token index: {p.i} token={token_kind(t, v)} {v!r}\n\n"
            f"{dump_tokens(src, p.i, count=radius_tokens)}\n\nSource context:\n{se.context}"
        )
    return "Parsed successfully (no error)"


if __name__ == '__main__':
    ctx = make_context()
    run("function f(a){ var x = 5; eval('x += a'); return x } console.log('f(7) =', f(7));", ctx)
