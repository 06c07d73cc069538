"""Tests for restricted evaluation of user code."""

from __future__ import annotations

import pytest

from conduit.sandbox import SandboxError, compile_function, evaluate


class TestCompileFunction:
    def test_expression_body(self):
        fn = compile_function(["input"], "input * 2")
        assert fn(21) == 42

    def test_statement_body(self):
        fn = compile_function(["input"], "words = input.split()\nreturn len(words)")
        assert fn("a b c") == 3

    def test_indented_body_is_dedented(self):
        fn = compile_function(["input"], "\n    x = input + 1\n    return x\n")
        assert fn(1) == 2

    def test_empty_body_returns_none(self):
        assert compile_function(["input"], "   ")("x") is None

    def test_loops_and_in_place_operators(self):
        fn = compile_function(["input"], "total = 0\nfor n in input:\n    total += n\nreturn total")
        assert fn([1, 2, 3]) == 6

    def test_unpacking_and_subscripts(self):
        fn = compile_function(["input"], "a, b = input\nreturn {'first': a, 'second': b['k']}")
        assert fn([1, {"k": 2}]) == {"first": 1, "second": 2}

    def test_helpers_are_available(self):
        fn = compile_function(["input"], "return json.dumps(sorted(re.findall(r'\\d', input)))")
        assert fn("b2a1") == '["1", "2"]'

    def test_math_is_available(self):
        assert compile_function(["x"], "math.floor(x)")(2.7) == 2

    def test_syntax_error(self):
        with pytest.raises(SandboxError, match="Syntax error"):
            compile_function(["input"], "return (")

    def test_underscore_attributes_are_rejected(self):
        with pytest.raises(SandboxError):
            compile_function(["input"], "return input.__class__")

    def test_imports_fail(self):
        fn = compile_function(["input"], "import os\nreturn os.getcwd()")
        with pytest.raises(ImportError):
            fn("x")

    def test_open_is_not_available(self):
        fn = compile_function(["input"], "return open('/etc/passwd').read()")
        with pytest.raises(NameError):
            fn("x")

    def test_functions_do_not_share_state(self):
        first = compile_function(["input"], "return input")
        second = compile_function(["input"], "return input + 1")

        assert first(1) == 1
        assert second(1) == 2


class TestEvaluate:
    def test_variables(self):
        assert evaluate("price * qty", {"price": 2, "qty": 3}) == 6

    def test_builtins(self):
        assert evaluate("max(values) - min(values)", {"values": [4, 9, 1]}) == 8

    def test_membership(self):
        assert evaluate("'x' in input", {"input": "xyz"}) is True

    def test_unknown_name(self):
        with pytest.raises(NameError):
            evaluate("missing + 1", {})

    def test_statements_are_rejected(self):
        with pytest.raises(SandboxError):
            evaluate("x = 1", {})

    def test_private_names_are_rejected(self):
        with pytest.raises(SandboxError):
            evaluate("input._secret", {"input": object()})
