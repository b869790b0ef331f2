"""
Runtime primitives shared by the jsmini interpreter, the eval core and the builtins.

Kept in their own module so js_builtins and js_eval can import them without a
circular import through jsmini.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set


class Undefined:
    def __repr__(self):
        return "undefined"
undefined = Undefined()


class _Empty:
    """Completion of a statement that produces no value (declarations, `;`, `{}`)."""
    def __repr__(self):
        return "<empty>"
EMPTY = _Empty()


class JSError(Exception):
    """A value thrown by JS code (or by the engine on its behalf)."""
    def __init__(self, value):
        self.value = value
        super().__init__(value)

    def __str__(self):
        v = self.value
        if isinstance(v, dict) and 'message' in v:
            name = v.get('name')
            if name is None and isinstance(v.get('__proto__'), dict):
                name = v['__proto__'].get('name')
            return f"{name or 'Error'}: {v.get('message')}"
        return f"Uncaught {v!r}"


@dataclass(frozen=True)
class SyntaxErrorRecord:
    message: str
    line: int
    column: int


class JSSyntaxError(SyntaxError):
    """Compilation failure with a 1-based (line, column) position."""
    def __init__(self, record: SyntaxErrorRecord, context: str = ""):
        super().__init__(record.message)
        self.record = record
        self.context = context
        # mirror the attributes Python tooling looks for on SyntaxError
        self.lineno = record.line
        self.offset = record.column

    @property
    def message(self) -> str:
        return self.record.message

    @property
    def line(self) -> int:
        return self.record.line

    @property
    def column(self) -> int:
        return self.record.column

    def __str__(self):
        return self.record.message


class BreakExc(Exception):
    pass

class ContinueExc(Exception):
    pass

class ReturnExc(Exception):
    def __init__(self, value):
        self.value = value


class Env:
    """Environment Record: bindings plus a parent link.

    `function_scope` marks the records that receive `var` declarations
    (function bodies and the global record).
    """
    def __init__(self, parent: Optional['Env'] = None, vars: Optional[Dict[str, Any]] = None,
                 function_scope: bool = False):
        self.vars: Dict[str, Any] = vars if vars is not None else {}
        self.parent = parent
        self.function_scope = function_scope or parent is None
        self.consts: Set[str] = set()

    def lookup(self, name: str) -> Optional['Env']:
        """Return the innermost record holding `name`, or None."""
        cur = self
        while cur is not None:
            if name in cur.vars:
                return cur
            cur = cur.parent
        return None

    def has(self, name: str) -> bool:
        return self.lookup(name) is not None

    def set_local(self, name: str, value: Any):
        self.vars[name] = value

    def set(self, name: str, value: Any):
        # nearest record that already has the name, otherwise the global record
        owner = self.lookup(name)
        if owner is None:
            owner = self.root()
        owner.vars[name] = value

    def root(self) -> 'Env':
        cur = self
        while cur.parent is not None:
            cur = cur.parent
        return cur

    def var_scope(self) -> 'Env':
        cur = self
        while not cur.function_scope:
            cur = cur.parent
        return cur

    def declare_var(self, name: str):
        scope = self.var_scope()
        if name not in scope.vars:
            scope.vars[name] = undefined
        return scope

    def __repr__(self):
        kind = 'function' if self.function_scope else 'block'
        return f"<Env {kind} names={len(self.vars)}>"
