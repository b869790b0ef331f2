"""
Register the JavaScript host object model (global object, Object, Array, String, ...) for jsmini.

Usage:
    from minijs.js_builtins import register_builtins
    register_builtins(context, JSFunction)

native_impl signature:
    native_impl(interp, this, args)
where:
 - interp is the calling Interpreter
 - this is the receiver (a dict for JS objects, a str for string primitives, ...)
 - args is the list of evaluated arguments
Constructors that need custom allocation also pass ctor_impl(interp, args).
"""
from typing import Any, Dict, List, Optional
import logging
import math

from .js_types import undefined

logger = logging.getLogger('jsmini')

# constructors the interpreter keeps references to, so scripts that overwrite
# the globals do not change what the engine throws or allocates
INTRINSICS = (
    'Object', 'Array', 'String', 'Number', 'Boolean',
    'Error', 'TypeError', 'ReferenceError', 'SyntaxError', 'RangeError', 'EvalError',
)

ERROR_TYPES = ('TypeError', 'ReferenceError', 'SyntaxError', 'RangeError', 'EvalError')


def js_array(items: List[Any], proto: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Dict-backed JS array: string indices plus a numeric 'length'."""
    arr: Dict[str, Any] = {'__proto__': proto} if proto is not None else {}
    for i, v in enumerate(items):
        arr[str(i)] = v
    arr['length'] = float(len(items))
    return arr


def _array_items(interp, arr) -> List[Any]:
    if not isinstance(arr, dict):
        return []
    n = int(interp.to_number(arr.get('length', 0.0)))
    return [arr.get(str(i), undefined) for i in range(n)]


def _own_keys(obj: Dict[str, Any]) -> List[str]:
    return [k for k in obj if not k.startswith('__')]


def register_builtins(context: Dict[str, Any], JSFunction, log_fn=None):
    def native(name, impl, params=(), ctor_impl=None):
        return JSFunction(params=list(params), body=None, env=None, name=name,
                          native_impl=impl, ctor_impl=ctor_impl)

    # --- global object aliases ----------------------------------------------
    context['window'] = context
    context['globalThis'] = context
    context['global'] = context
    context['undefined'] = undefined
    context['NaN'] = math.nan
    context['Infinity'] = math.inf

    # --- console ------------------------------------------------------------
    def _console_log(interp, this, args):
        line = ' '.join(interp.to_string(a) for a in args)
        if log_fn:
            log_fn(line)
        else:
            print(line)
        return undefined

    if log_fn is not None or 'console' not in context:
        context['console'] = {'log': native('log', _console_log)}

    # --- Object ---------------------------------------------------------------
    def _object_call(interp, this, args):
        v = args[0] if args else undefined
        if isinstance(v, (dict, JSFunction)):
            return v
        return {'__proto__': Obj.prototype}

    def _object_keys(interp, this, args):
        target = args[0] if args else undefined
        if not isinstance(target, dict):
            raise interp.throw_error('TypeError', 'Object.keys called on non-object')
        keys = _own_keys(target)
        if target.get('__proto__') is Arr.prototype:
            keys = [k for k in keys if k != 'length']
        return interp.make_array(keys)

    def _has_own_property(interp, this, args):
        key = interp.to_property_key(args[0] if args else undefined)
        if isinstance(this, dict):
            return key in this and not key.startswith('__')
        if isinstance(this, JSFunction):
            return key in this.props
        return False

    def _object_to_string(interp, this, args):
        if this is undefined:
            return '[object Undefined]'
        if this is None:
            return '[object Null]'
        return '[object Object]'

    Obj = native('Object', _object_call, ctor_impl=lambda interp, args: _object_call(interp, None, args))
    Obj.props['keys'] = native('keys', _object_keys)
    Obj.prototype['hasOwnProperty'] = native('hasOwnProperty', _has_own_property)
    Obj.prototype['toString'] = native('toString', _object_to_string)
    Obj.prototype['valueOf'] = native('valueOf', lambda interp, this, args: this)
    context['Object'] = Obj

    # --- Function.prototype.call / apply --------------------------------------
    def _fn_call(interp, this, args):
        this_arg = args[0] if args else undefined
        return interp.call_function(this, this_arg, list(args[1:]), 'Function.prototype.call target')

    def _fn_apply(interp, this, args):
        this_arg = args[0] if args else undefined
        arg_array = args[1] if len(args) > 1 else undefined
        if arg_array is undefined or arg_array is None:
            real_args = []
        elif isinstance(arg_array, dict):
            real_args = _array_items(interp, arg_array)
        else:
            raise interp.throw_error('TypeError', 'CreateListFromArrayLike called on non-object')
        return interp.call_function(this, this_arg, real_args, 'Function.prototype.apply target')

    def _fn_to_string(interp, this, args):
        name = this.name if isinstance(this, JSFunction) else ''
        return f"function {name or ''}() {{ [native code] }}"

    JSFunction.fn_proto['call'] = native('call', _fn_call)
    JSFunction.fn_proto['apply'] = native('apply', _fn_apply)
    JSFunction.fn_proto['toString'] = native('toString', _fn_to_string)

    # --- Array ------------------------------------------------------------------
    def _array_build(interp, args):
        if len(args) == 1 and isinstance(args[0], (int, float)) and not isinstance(args[0], bool):
            n = args[0]
            if n < 0 or not float(n).is_integer():
                raise interp.throw_error('RangeError', 'Invalid array length')
            arr = js_array([], Arr.prototype)
            arr['length'] = float(n)
            return arr
        return js_array(list(args), Arr.prototype)

    def _array_push(interp, this, args):
        if not isinstance(this, dict):
            raise interp.throw_error('TypeError', 'Array.prototype.push called on non-object')
        length = int(interp.to_number(this.get('length', 0.0)))
        for v in args:
            this[str(length)] = v
            length += 1
        this['length'] = float(length)
        return this['length']

    def _array_pop(interp, this, args):
        if not isinstance(this, dict):
            raise interp.throw_error('TypeError', 'Array.prototype.pop called on non-object')
        length = int(interp.to_number(this.get('length', 0.0)))
        if length == 0:
            return undefined
        value = this.pop(str(length - 1), undefined)
        this['length'] = float(length - 1)
        return value

    def _array_join(interp, this, args):
        sep = ',' if not args or args[0] is undefined else interp.to_string(args[0])
        parts = []
        for v in _array_items(interp, this):
            parts.append('' if v is undefined or v is None else interp.to_string(v))
        return sep.join(parts)

    def _array_index_of(interp, this, args):
        needle = args[0] if args else undefined
        for i, v in enumerate(_array_items(interp, this)):
            if interp.strict_equals(v, needle):
                return float(i)
        return -1.0

    def _array_map(interp, this, args):
        fn = args[0] if args else undefined
        this_arg = args[1] if len(args) > 1 else undefined
        out = []
        for i, v in enumerate(_array_items(interp, this)):
            out.append(interp.call_function(fn, this_arg, [v, float(i), this], 'callback'))
        return interp.make_array(out)

    def _array_is_array(interp, this, args):
        v = args[0] if args else undefined
        return isinstance(v, dict) and v.get('__proto__') is Arr.prototype

    Arr = native('Array', lambda interp, this, args: _array_build(interp, args), ctor_impl=_array_build)
    Arr.props['isArray'] = native('isArray', _array_is_array)
    Arr.prototype['__proto__'] = Obj.prototype
    Arr.prototype['push'] = native('push', _array_push)
    Arr.prototype['pop'] = native('pop', _array_pop)
    Arr.prototype['join'] = native('join', _array_join)
    Arr.prototype['indexOf'] = native('indexOf', _array_index_of)
    Arr.prototype['map'] = native('map', _array_map)
    Arr.prototype['toString'] = native('toString', _array_join)
    context['Array'] = Arr

    # --- String (primitive conversion + wrapper objects) ------------------------
    def _this_str(interp, this) -> str:
        if isinstance(this, str):
            return this
        if isinstance(this, dict) and isinstance(this.get('__value__'), str):
            return this['__value__']
        return interp.to_string(this)

    def _string_box(interp, args):
        s = interp.to_string(args[0]) if args else ''
        return {'__proto__': Str.prototype, '__value__': s, 'length': float(len(s))}

    def _string_call(interp, this, args):
        return interp.to_string(args[0]) if args else ''

    def _string_char_at(interp, this, args):
        s = _this_str(interp, this)
        idx = int(interp.to_number(args[0])) if args else 0
        return s[idx] if 0 <= idx < len(s) else ''

    def _string_index_of(interp, this, args):
        s = _this_str(interp, this)
        needle = interp.to_string(args[0]) if args else 'undefined'
        start = int(interp.to_number(args[1])) if len(args) > 1 else 0
        return float(s.find(needle, max(0, start)))

    def _string_slice(interp, this, args):
        s = _this_str(interp, this)
        n = len(s)

        def _clamp(v, default):
            if v is undefined:
                return default
            x = interp.to_number(v)
            if math.isnan(x):
                return 0
            x = int(x) if math.isfinite(x) else (n if x > 0 else -n)
            return max(0, n + x) if x < 0 else min(x, n)

        start = _clamp(args[0] if args else undefined, 0)
        end = _clamp(args[1] if len(args) > 1 else undefined, n)
        return s[start:end] if start < end else ''

    Str = native('String', _string_call, ctor_impl=_string_box)
    Str.prototype['__proto__'] = Obj.prototype
    Str.prototype['toString'] = native('toString', lambda interp, this, args: _this_str(interp, this))
    Str.prototype['valueOf'] = native('valueOf', lambda interp, this, args: _this_str(interp, this))
    Str.prototype['charAt'] = native('charAt', _string_char_at)
    Str.prototype['indexOf'] = native('indexOf', _string_index_of)
    Str.prototype['slice'] = native('slice', _string_slice)
    Str.prototype['toUpperCase'] = native('toUpperCase', lambda interp, this, args: _this_str(interp, this).upper())
    Str.prototype['toLowerCase'] = native('toLowerCase', lambda interp, this, args: _this_str(interp, this).lower())
    context['String'] = Str

    # --- Number / Boolean -------------------------------------------------------
    def _unbox(this):
        return this['__value__'] if isinstance(this, dict) and '__value__' in this else this

    Num = native('Number', lambda interp, this, args: interp.to_number(args[0]) if args else 0.0,
                 ctor_impl=lambda interp, args: {'__proto__': Num.prototype,
                                                 '__value__': interp.to_number(args[0]) if args else 0.0})
    Num.prototype['__proto__'] = Obj.prototype
    Num.prototype['valueOf'] = native('valueOf', lambda interp, this, args: _unbox(this))
    Num.prototype['toString'] = native('toString', lambda interp, this, args: interp.to_string(_unbox(this)))
    context['Number'] = Num

    Bool = native('Boolean', lambda interp, this, args: bool(args) and interp._is_truthy(args[0]),
                  ctor_impl=lambda interp, args: {'__proto__': Bool.prototype,
                                                  '__value__': bool(args) and interp._is_truthy(args[0])})
    Bool.prototype['__proto__'] = Obj.prototype
    Bool.prototype['valueOf'] = native('valueOf', lambda interp, this, args: _unbox(this))
    Bool.prototype['toString'] = native('toString', lambda interp, this, args: interp.to_string(_unbox(this)))
    context['Boolean'] = Bool

    # --- Math -------------------------------------------------------------------
    def _math_max(interp, this, args):
        nums = [interp.to_number(a) for a in args]
        if any(math.isnan(n) for n in nums):
            return math.nan
        return max(nums) if nums else -math.inf

    def _math_min(interp, this, args):
        nums = [interp.to_number(a) for a in args]
        if any(math.isnan(n) for n in nums):
            return math.nan
        return min(nums) if nums else math.inf

    def _math_floor(interp, this, args):
        x = interp.to_number(args[0]) if args else math.nan
        return float(math.floor(x)) if math.isfinite(x) else x

    context['Math'] = {
        '__proto__': Obj.prototype,
        'PI': math.pi,
        'floor': native('floor', _math_floor),
        'abs': native('abs', lambda interp, this, args: abs(interp.to_number(args[0]) if args else math.nan)),
        'max': native('max', _math_max),
        'min': native('min', _math_min),
    }

    # --- Error hierarchy --------------------------------------------------------
    def _error_to_string(interp, this, args):
        if not isinstance(this, dict):
            raise interp.throw_error('TypeError', 'Error.prototype.toString called on non-object')
        name = interp._prop_get(this, 'name')
        msg = interp._prop_get(this, 'message')
        name = 'Error' if name is undefined else interp.to_string(name)
        msg = '' if msg is undefined else interp.to_string(msg)
        if not msg:
            return name
        if not name:
            return msg
        return f"{name}: {msg}"

    def _make_error_type(name, base_proto):
        proto = {'__proto__': base_proto, 'name': name, 'message': ''}

        def _build(interp, args):
            err = {'__proto__': proto}
            msg = args[0] if args else undefined
            err['message'] = '' if msg is undefined else interp.to_string(msg)
            return err

        ctor = native(name, lambda interp, this, args: _build(interp, args), params=['message'], ctor_impl=_build)
        proto['constructor'] = ctor
        ctor.prototype = proto
        return ctor

    Err = _make_error_type('Error', Obj.prototype)
    Err.prototype['toString'] = native('toString', _error_to_string)
    context['Error'] = Err
    for err_name in ERROR_TYPES:
        context[err_name] = _make_error_type(err_name, Err.prototype)

    logger.debug("registered builtins: %s", ', '.join(INTRINSICS))
