import unittest

from test_base import CleanTestCase
from minijs import jsmini, settings
from minijs.js_types import JSError, undefined


def _config(**overrides):
    cfg = settings.load_config('does-not-exist.ini')
    for key, value in overrides.items():
        cfg.set('jsmini', key, str(value))
    return cfg


class TestScoping(CleanTestCase):
    def test_function_declarations_are_hoisted(self):
        self.assertEqual(self.js("var r = typeof hoisted; function hoisted() {} r"), "function")

    def test_var_is_hoisted_as_undefined(self):
        self.assertIs(self.js("var before = v; var v = 2; before"), undefined)

    def test_var_in_nested_block_is_function_scoped(self):
        src = """
        function f() {
            if (true) { var inner = 'seen'; }
            return inner;
        }
        f()
        """
        self.assertEqual(self.js(src), 'seen')

    def test_let_is_block_scoped(self):
        self.assertEqual(self.js("let x = 1; { let x = 2; } x"), 1)

    def test_assigning_const_throws_type_error(self):
        self.assertEqual(self.js("const c = 1; try { c = 2 } catch (e) { e.name }"), "TypeError")
        self.assertEqual(self.js("c"), 1)

    def test_global_var_is_a_context_key(self):
        self.js("var g = 5; global.h = 3;")
        self.assertEqual(self.ctx['g'], 5)
        self.assertEqual(self.js("h"), 3)

    def test_closures_keep_their_environment(self):
        src = """
        function counter() {
            var n = 0;
            return function () { n += 1; return n; };
        }
        var c = counter();
        c(); c();
        c()
        """
        self.assertEqual(self.js(src), 3)

    def test_arrow_functions_use_lexical_this(self):
        src = """
        var o = { v: 1, f: function () { var g = () => this.v; return g(); } };
        o.f()
        """
        self.assertEqual(self.js(src), 1)


class TestCompletionValues(CleanTestCase):
    def test_if_and_loops(self):
        self.assertEqual(self.js("if (true) { 5 }"), 5)
        self.assertIs(self.js("if (false) { 5 }"), undefined)
        self.assertEqual(self.js("var i = 0; while (i < 3) { i++ }"), 2)

    def test_for_with_break_and_continue(self):
        src = """
        var s = 0;
        for (var i = 0; i < 10; i++) {
            if (i == 5) break;
            if (i == 1) continue;
            s += i;
        }
        s
        """
        self.assertEqual(self.js(src), 9)

    def test_do_while(self):
        self.assertEqual(self.js("var n = 0; do { n++ } while (n < 3); n"), 3)

    def test_try_finally_runs(self):
        src = """
        var trail = [];
        function f() {
            try { trail.push('try'); return 'ret'; }
            finally { trail.push('finally'); }
        }
        f() + ':' + trail.join(',')
        """
        self.assertEqual(self.js(src), "ret:try,finally")


class TestErrors(CleanTestCase):
    def test_unresolved_identifier(self):
        self.assertEqual(self.js("try { missing } catch (e) { e.message }"), "'missing' is not defined")
        self.assertEqual(self.js("typeof missing"), "undefined")

    def test_calling_a_non_function(self):
        self.assertEqual(self.js("var n = 1; try { n() } catch (e) { e.message }"), "n is not a function")
        self.assertEqual(self.js("var o = {}; try { o.nope() } catch (e) { e.message }"), "o.nope is not a function")

    def test_new_on_non_constructor(self):
        self.assertEqual(self.js("try { new (() => 1)() } catch (e) { e.name }"), "TypeError")

    def test_uncaught_error_reaches_host(self):
        with self.assertRaises(JSError) as cm:
            self.js("undefinedThing")
        self.assertEqual(str(cm.exception), "ReferenceError: 'undefinedThing' is not defined")

    def test_thrown_primitives(self):
        with self.assertRaises(JSError) as cm:
            self.js("throw 'boom'")
        self.assertEqual(cm.exception.value, 'boom')

    def test_stray_break_is_a_runtime_error(self):
        with self.assertRaises(RuntimeError):
            self.js("break")


class TestOperators(CleanTestCase):
    def test_addition_and_concatenation(self):
        self.assertEqual(self.js('"a" + 1'), "a1")
        self.assertEqual(self.js('1 + 2 + "3"'), "33")
        self.assertEqual(self.js('"5" * "2"'), 10)
        self.assertEqual(self.js('"x" + null + undefined'), "xnullundefined")

    def test_equality(self):
        self.assertIs(self.js("null == undefined"), True)
        self.assertIs(self.js("1 == '1'"), True)
        self.assertIs(self.js("1 === '1'"), False)
        self.assertIs(self.js("NaN == NaN"), False)
        self.assertIs(self.js("({}) == ({})"), False)

    def test_division_edge_cases(self):
        self.assertEqual(self.js("String(1 / 0)"), "Infinity")
        self.assertEqual(self.js("String(0 / 0)"), "NaN")
        self.assertEqual(self.js("7 % 3"), 1)

    def test_constructors_and_instanceof(self):
        src = """
        function P(x) { this.x = x; }
        var p = new P(4);
        p.x + ':' + (p instanceof P) + ':' + (p instanceof Array)
        """
        self.assertEqual(self.js(src), "4:true:false")

    def test_console_log_is_captured(self):
        self.js('console.log("hi", 1, true)')
        self.assertEqual(self.logs, ["hi 1 true"])


class TestGuards(unittest.TestCase):
    def test_call_depth_limit_throws_range_error(self):
        src = "function r(n) { return r(n + 1); } try { r(0) } catch (e) { e.name + ': ' + e.message }"
        with self.assertLogs('jsmini', level='WARNING'):
            result = jsmini.run(src, jsmini.make_context(), config=_config(maxCallDepth=20))
        self.assertEqual(result, "RangeError: Maximum call stack size exceeded")

    def test_execution_limit_raises_runtime_error(self):
        with self.assertRaises(RuntimeError) as cm:
            jsmini.run("while (true) {}", jsmini.make_context(), config=_config(execLimit=50))
        self.assertIn("Execution limit exceeded", str(cm.exception))

    def test_zero_exec_limit_disables_watchdog(self):
        src = "var i = 0; while (i < 500) { i++; } i"
        self.assertEqual(jsmini.run(src, jsmini.make_context(), config=_config(execLimit=0)), 500)

    def test_recursive_eval_is_bounded(self):
        src = "function f() { return eval('f()'); } try { f() } catch (e) { e.name }"
        self.assertEqual(jsmini.run(src, jsmini.make_context(), config=_config(maxCallDepth=30)), "RangeError")


if __name__ == '__main__':
    unittest.main()
