import unittest

from test_base import CleanTestCase
from minijs import jsmini
from minijs.js_types import JSSyntaxError, SyntaxErrorRecord


class TestTokenizer(unittest.TestCase):
    def test_tokens_carry_positions_and_eof(self):
        toks = jsmini.tokenize("a=>1")
        self.assertEqual(toks, [
            ('IDENT', 'a', 0, 1),
            ('OP', '=>', 1, 3),
            ('NUMBER', '1', 3, 4),
            ('EOF', '', 4, 4),
        ])

    def test_comments_and_whitespace_are_skipped(self):
        toks = jsmini.tokenize("x // trailing\n/* block */ y")
        self.assertEqual([(t, v) for t, v, _s, _e in toks], [('IDENT', 'x'), ('IDENT', 'y'), ('EOF', '')])

    def test_illegal_character(self):
        with self.assertRaises(JSSyntaxError) as cm:
            jsmini.tokenize("var x = #")
        self.assertEqual(cm.exception.message, "Illegal character '#' (line: 1, column: 9)")
        self.assertEqual((cm.exception.line, cm.exception.column), (1, 9))

    def test_token_kind_names(self):
        self.assertEqual(jsmini.token_kind('EOF', ''), 'Eof')
        self.assertEqual(jsmini.token_kind('PUNC', '{'), 'CurlyOpen')
        self.assertEqual(jsmini.token_kind('PUNC', '}'), 'CurlyClose')
        self.assertEqual(jsmini.token_kind('PUNC', '('), 'ParenOpen')
        self.assertEqual(jsmini.token_kind('IDENT', 'var'), 'Var')
        self.assertEqual(jsmini.token_kind('IDENT', 'foo'), 'Identifier')
        self.assertEqual(jsmini.token_kind('IDENT', 'true'), 'BoolLiteral')
        self.assertEqual(jsmini.token_kind('NUMBER', '1'), 'NumericLiteral')
        self.assertEqual(jsmini.token_kind('STRING', '"s"'), 'StringLiteral')
        self.assertEqual(jsmini.token_kind('OP', '=>'), 'Arrow')
        self.assertEqual(jsmini.token_kind('OP', '==='), 'EqualsEqualsEquals')


class TestSyntaxErrors(unittest.TestCase):
    def assertSyntaxError(self, src, message, line, column):
        with self.assertRaises(JSSyntaxError) as cm:
            jsmini.parse(src)
        err = cm.exception
        self.assertIsInstance(err, SyntaxError)
        self.assertEqual(err.record, SyntaxErrorRecord(message, line, column))

    def test_unterminated_block(self):
        self.assertSyntaxError("{", "Unexpected token Eof. Expected CurlyClose (line: 1, column: 2)", 1, 2)

    def test_position_is_just_past_last_consumed_token(self):
        self.assertSyntaxError("if (x) {", "Unexpected token Eof. Expected CurlyClose (line: 1, column: 9)", 1, 9)
        self.assertSyntaxError("var", "Unexpected token Eof. Expected Identifier (line: 1, column: 4)", 1, 4)
        self.assertSyntaxError("var 1", "Unexpected token NumericLiteral. Expected Identifier (line: 1, column: 4)", 1, 4)
        self.assertSyntaxError("1 +", "Unexpected token Eof. Expected primary expression (line: 1, column: 4)", 1, 4)

    def test_multiline_position(self):
        self.assertSyntaxError("1;\n(", "Unexpected token Eof. Expected primary expression (line: 2, column: 2)", 2, 2)

    def test_missing_semicolon_on_same_line(self):
        self.assertSyntaxError("a b", "Unexpected token Identifier. Expected Semicolon (line: 1, column: 2)", 1, 2)
        # a line break ends the statement instead
        self.assertEqual(jsmini.parse("a\nb"), ('prog', [('expr', ('id', 'a')), ('expr', ('id', 'b'))]))

    def test_return_outside_function(self):
        self.assertSyntaxError("return 1", "'return' not allowed outside of a function (line: 1, column: 1)", 1, 1)

    def test_const_requires_initializer(self):
        self.assertSyntaxError("const c;", "Unexpected token Semicolon. Expected Equals (line: 1, column: 8)", 1, 8)

    def test_context_snippet_has_caret(self):
        with self.assertRaises(JSSyntaxError) as cm:
            jsmini.parse("var x = ;")
        self.assertIn("^", cm.exception.context)
        self.assertIn("var x = ;", cm.exception.context)


class TestCallNodes(unittest.TestCase):
    def _call(self, src):
        (_kind, expr), = jsmini.parse(src)[1]
        self.assertEqual(expr[0], 'call')
        return expr

    def test_bare_eval_is_flagged(self):
        self.assertIs(self._call('eval("x")')[3], True)

    def test_other_callee_shapes_are_not_flagged(self):
        self.assertIs(self._call('(eval)("x")')[3], False)
        self.assertIs(self._call('obj.eval("x")')[3], False)
        self.assertIs(self._call('eval1("x")')[3], False)
        self.assertIs(self._call('(0, eval)("x")')[3], False)

    def test_arguments_are_kept_in_order(self):
        call = self._call('f(a, b++, "c")')
        self.assertEqual(call[2], [('id', 'a'), ('postop', '++', ('id', 'b')), ('str', 'c')])


class TestGrammar(CleanTestCase):
    def test_string_escapes(self):
        self.assertEqual(self.js(r'"a\tbA\x42\"q\""'), 'a\tbAB"q"')

    def test_line_continuation_in_string(self):
        self.assertEqual(self.js("'a\\\nb'"), 'ab')
        self.assertEqual(self.js('eval("\'a\\\\\\nb\'")'), 'ab')
        self.assertEqual(jsmini.tokenize("'a\\\nb' x")[1][2:], (7, 8))

    def test_arrow_functions(self):
        self.assertEqual(self.js("var add = (a, b) => a + b; add(2, 3)"), 5)
        self.assertEqual(self.js("var sq = x => { return x * x; }; sq(4)"), 16)

    def test_object_and_array_literals(self):
        self.assertEqual(self.js('var o = {a: 1, "b": 2, 3: "three"}; o.a + o["b"] + o[3]'), "3three")
        self.assertEqual(self.js("var arr = [1, , 3]; arr.length + ':' + typeof arr[1]"), "3:undefined")

    def test_ternary_comma_and_logic(self):
        self.assertEqual(self.js("var t = 0 ? 'a' : 'b'; t"), 'b')
        self.assertEqual(self.js("(1, 2, 3)"), 3)
        self.assertEqual(self.js("null || 'fallback'"), 'fallback')
        self.assertEqual(self.js("1 && 0"), 0)

    def test_operator_precedence(self):
        self.assertEqual(self.js("1 + 2 * 3"), 7)
        self.assertIs(self.js("1 + 1 === 2 && 3 > 2"), True)
        self.assertEqual(self.js("1 | 2 & 3"), 3)
        self.assertEqual(self.js("-8 >> 1"), -4)
        self.assertEqual(self.js("-1 >>> 28"), 15)


class TestDiagnostics(unittest.TestCase):
    def test_dump_tokens_names_kinds(self):
        out = jsmini.dump_tokens("{ x }", 0)
        self.assertIn("CurlyOpen", out)
        self.assertIn("Identifier", out)
        self.assertIn("<--", out)

    def test_diagnose_parse_reports_index(self):
        report = jsmini.diagnose_parse("{")
        self.assertIn("Expected CurlyClose", report)
        self.assertIn("Parser token index: 1", report)
        self.assertEqual(jsmini.diagnose_parse("1 + 1"), "Parsed successfully (no error)")

    def test_diagnose_parse_tokenizer_failure(self):
        self.assertIn("Illegal character", jsmini.diagnose_parse("@"))


if __name__ == '__main__':
    unittest.main()
