import unittest

from test_base import CleanTestCase
from minijs import jsmini
from minijs.js_builtins import js_array, register_builtins


class TestJSBuiltins(CleanTestCase):
    def test_array_push_pop(self):
        src = """
        var a = new Array();
        a.push(10);
        a.push(20);
        if (a.length !== 2) throw "len";
        var p = a.pop();
        if (p !== 20) throw "pop";
        if (a.length !== 1) throw "len_after_pop";
        """
        # should not raise
        self.js(src)

    def test_array_join_index_of_map(self):
        self.assertEqual(self.js("[1, 2, 3].join('-')"), "1-2-3")
        self.assertEqual(self.js("[1, 2].map(x => x * 2).join()"), "2,4")
        self.assertEqual(self.js("['a', 'b'].indexOf('b')"), 1)
        self.assertEqual(self.js("['a', 'b'].indexOf('z')"), -1)
        self.assertIs(self.js("Array.isArray([]) && !Array.isArray({})"), True)

    def test_object_keys_and_has_own_property(self):
        src = """
        var o = { a: 1, b: 2 };
        var k = Object.keys(o);
        if (k.length !== 2) throw "keys_len";
        if (k.join(",") !== "a,b") throw "keys_vals";
        if (!o.hasOwnProperty("a")) throw "own_a";
        if (o.hasOwnProperty("toString")) throw "own_inherited";
        String(o)
        """
        self.assertEqual(self.js(src), "[object Object]")

    def test_function_call_and_apply(self):
        self.assertEqual(self.js("function f(a) { return this.v + a } f.call({v: 9}, 1)"), 10)
        self.assertEqual(self.js("f.apply({v: 1}, [2])"), 3)

    def test_string_primitive_methods(self):
        self.assertEqual(self.js('"abc".toUpperCase()'), "ABC")
        self.assertEqual(self.js('"hello".slice(1, 3)'), "el")
        self.assertEqual(self.js('"hello".slice(-3)'), "llo")
        self.assertEqual(self.js('"hello".charAt(1)'), "e")
        self.assertEqual(self.js('"hello".indexOf("l")'), 2)
        self.assertEqual(self.js('"abc".length'), 3)
        self.assertEqual(self.js('String(12)'), "12")

    def test_string_index_keys(self):
        self.assertEqual(self.js('"abc"[1]'), "b")
        self.assertIs(self.js('"abc"[7]'), jsmini.undefined)
        self.assertIs(self.js('"abc"["²"]'), jsmini.undefined)
        self.assertIs(self.js('"abc"["١"]'), jsmini.undefined)

    def test_boxed_string(self):
        src = """
        var s = new String("ab");
        typeof s + ":" + (s + "c") + ":" + s.length + ":" + (s == "ab") + ":" + (s === "ab")
        """
        self.assertEqual(self.js(src), "object:abc:2:true:false")
        boxed = self.ctx['s']
        self.assertEqual(boxed['__value__'], "ab")
        self.assertIs(boxed['__proto__'], self.ctx['String'].prototype)

    def test_number_boolean_math(self):
        self.assertEqual(self.js('Number("42") + 1'), 43)
        self.assertIs(self.js('Boolean("")'), False)
        self.assertEqual(self.js("Math.max(1, 5, 3)"), 5)
        self.assertEqual(self.js("Math.min()"), float('inf'))
        self.assertEqual(self.js("Math.floor(2.7) + Math.abs(-1)"), 3)

    def test_error_objects(self):
        self.assertEqual(self.js('String(new TypeError("bad"))'), "TypeError: bad")
        self.assertEqual(self.js('String(Error())'), "Error")
        src = """
        var e = new RangeError("r");
        (e instanceof RangeError) + ":" + (e instanceof Error) + ":" + e.name
        """
        self.assertEqual(self.js(src), "true:true:RangeError")

    def test_global_aliases(self):
        self.assertIs(self.ctx['window'], self.ctx)
        self.assertIs(self.js("globalThis === global && window === global"), True)


class TestRegisterBuiltins(unittest.TestCase):
    def test_register_into_plain_dict(self):
        ctx = {}
        register_builtins(ctx, jsmini.JSFunction)
        for name in ('Object', 'Array', 'String', 'Error', 'SyntaxError', 'console', 'Math'):
            self.assertIn(name, ctx)

    def test_log_fn_routes_console(self):
        lines = []
        ctx = jsmini.make_context(log_fn=lines.append)
        jsmini.run("console.log('a', [1, 2], null)", ctx)
        self.assertEqual(lines, ["a 1,2 null"])

    def test_js_array_shape(self):
        arr = js_array(['x', 'y'])
        self.assertEqual(arr, {'0': 'x', '1': 'y', 'length': 2.0})


if __name__ == '__main__':
    unittest.main()
