import ast
import textwrap

import pytest

from pywp.frontend import (
    annotation_type, collect_functions, collect_signatures, lower_function, translate
)
from pywp.preprocessor import preprocess_function
from pywp.ast import ASTChecker
from pywp.cfg import Assign, Call, Goto, Branch, Return
from pywp.expression import Type
from pywp.errors import UnsupportedError, UnsupportedKind, TypeCheckError, TypeMismatchError, ParseError


def module(source):
    return ast.parse(textwrap.dedent(source))


def lowered(source, name=None):
    functions = collect_functions(module(source))
    signatures = collect_signatures(functions)
    function = functions[0] if name is None else next(f for f in functions if f.name == name)
    return lower_function(function, signatures)


def body_of(source):
    return module(source).body[0]


class TestAnnotations:
    def test_condition_decorator(self):
        functions = collect_functions(module('''
            @condition(pre="x > 0", post="ret > x")
            def f(x: int) -> int:
                return x + 1

            @pywp.contracts.condition("true", "ret == 0")
            def g() -> int:
                return 0
        '''))
        assert [(f.name, f.pre, f.post) for f in functions] == [
            ('f', 'x > 0', 'ret > x'),
            ('g', 'true', 'ret == 0'),
        ]
        assert all(f.is_annotated() for f in functions)

    def test_missing_condition_skips(self):
        functions = collect_functions(module('''
            def plain(x):
                return x

            @condition(pre="x > 0")
            def only_pre(x):
                return x

            @other(pre="x > 0", post="ret > 0")
            def other_decorator(x):
                return x
        '''))
        assert [f.is_annotated() for f in functions] == [False, False, False]
        assert all(f.error is None for f in functions)

    @pytest.mark.parametrize('decorator', [
        '@condition(pre="x > 0", post=3)',
        '@condition(pre="x > 0", post="ret > 0", note="x")',
        '@condition("x > 0", pre="true")',
        '@condition("a", "b", "c")',
    ])
    def test_malformed_decorator(self, decorator):
        functions = collect_functions(module(decorator + '\ndef f(x):\n    return x\n'))
        assert functions[0].error is not None
        assert functions[0].is_annotated()

    def test_signatures(self):
        signatures = collect_signatures(collect_functions(module('''
            def f(a: int, b: bool, c, d: float) -> bool:
                return b
        ''')))
        signature = signatures['f']
        assert [p.type for p in signature.params] == [Type.INT, Type.BOOL, Type.INT, Type.UNKNOWN]
        assert signature.return_type == Type.BOOL
        assert str(signature) == 'f(a: Int, b: Bool, c: Int, d: Unknown) -> Bool'

    def test_annotation_type(self):
        assert annotation_type(None) == Type.INT
        assert annotation_type(ast.Name('bool')) == Type.BOOL
        assert annotation_type(ast.Name('str')) == Type.UNKNOWN


class TestTranslation:
    @pytest.mark.parametrize('python, condition', [
        ('a // b + a % b', 'a / b + a % b'),
        ('not a and b or c', '!a && b || c'),
        ('a and b and c', 'a && b && c'),
        ('0 <= a < b', '0 <= a && a < b'),
        ('-a == +b', '-a == b'),
        ('a != (b if c else d)', None),
    ])
    def test_expressions(self, python, condition):
        node = ast.parse(python, mode='eval').body
        if condition is None:
            with pytest.raises(UnsupportedError):
                translate(node)
        else:
            assert str(translate(node)) == condition


class TestPreprocessing:
    def test_augmented_assignment(self):
        node = preprocess_function(body_of('''
            def f(x):
                x += 2
                return x
        '''))
        assert ast.unparse(node.body[0]) == 'x = x + 2'

    def test_nested_calls_are_hoisted(self):
        node = preprocess_function(body_of('''
            def f(x):
                y = g(g(x)) + 1
                return y
        '''))
        assert [ast.unparse(s) for s in node.body] == [
            '__tmp_0 = g(x)',
            '__tmp_1 = g(__tmp_0)',
            'y = __tmp_1 + 1',
            'return y',
        ]

    def test_call_in_condition_is_hoisted_before_if(self):
        node = preprocess_function(body_of('''
            def f(x):
                if g(x) > 0:
                    return 1
                return 0
        '''))
        assert ast.unparse(node.body[0]) == '__tmp_0 = g(x)'
        assert isinstance(node.body[1], ast.If)

    def test_conditional_expression(self):
        node = preprocess_function(body_of('''
            def f(x):
                y = 1 if x > 0 else 2
                return y
        '''))
        assert ast.unparse(node.body[0]) == 'if x > 0:\n    y = 1\nelse:\n    y = 2'

    def test_conditional_return(self):
        node = preprocess_function(body_of('''
            def f(x, y):
                return x if x > y else y
        '''))
        assert ast.unparse(node.body[0]) == 'if x > y:\n    return x\nelse:\n    return y'

    def test_input_is_not_modified(self):
        original = body_of('''
            def f(x):
                x += g(x)
                return x
        ''')
        text = ast.unparse(original)
        preprocess_function(original)
        assert ast.unparse(original) == text


class TestChecker:
    @pytest.mark.parametrize('statement', [
        'for i in range(x):\n        pass',
        'x = x / 2',
        'x = [x]',
        'x.y = 1',
        'a, b = 1, 2',
        'x = g(x=1)',
        'def inner():\n        pass',
        'x = 1.5',
        'invariant("x > 0")',
        'while g(x):\n        pass',
        'break',
        'if x > 0:\n        continue',
    ])
    def test_rejected(self, statement):
        node = body_of('def f(x):\n    %s\n    return x\n' % statement)
        with pytest.raises(UnsupportedError) as error:
            ASTChecker().visit(node)
        assert error.value.kind == UnsupportedKind.UNSUPPORTED_CONSTRUCT
        assert error.value.lineno is not None

    def test_accepted(self):
        ASTChecker().visit(body_of('''
            def f(x: int, b: bool) -> int:
                """ docstring """
                y: int = 0
                while y < x:
                    invariant("y <= x")
                    y += 1
                    if b and not y == 3:
                        continue
                    elif y > 10:
                        break
                    else:
                        pass
                return -y if b else g(y) // 2
        '''))


class TestLowering:
    def test_straight_line(self):
        table, cfg = lowered('''
            def f(x: int) -> int:
                y = x + 1
                return y * 2
        ''')
        assert table.lookup('y') == Type.INT
        assert [str(op) for op in cfg[0].operations] == ['y = x + 1']
        assert str(cfg[0].terminator) == 'return y * 2'

    def test_if_else(self):
        _, cfg = lowered('''
            def f(x: int) -> int:
                if x > 0:
                    y = 1
                else:
                    y = -1
                return y
        ''')
        entry = cfg[0]
        assert isinstance(entry.terminator, Branch)
        assert str(entry.terminator.guard) == 'x > 0'
        then_block = cfg[entry.terminator.true_target]
        else_block = cfg[entry.terminator.false_target]
        assert then_block.terminator == else_block.terminator
        assert isinstance(then_block.terminator, Goto)
        assert str(cfg[then_block.terminator.target].terminator) == 'return y'

    def test_integer_guard(self):
        _, cfg = lowered('''
            def f(x: int) -> int:
                if x:
                    return 1
                return 0
        ''')
        assert str(cfg[0].terminator.guard) == 'x != 0'

    def test_loop(self):
        _, cfg = lowered('''
            def f(n: int) -> int:
                i = 0
                while i < n:
                    invariant("0 <= i")
                    invariant("i <= n")
                    i = i + 1
                return i
        ''')
        headers = cfg.loop_headers()
        assert len(headers) == 1
        header = cfg[next(iter(headers))]
        assert str(header.invariant) == '0 <= i && i <= n'
        assert str(header.terminator.guard) == 'i < n'
        assert header.lineno == 4

    def test_break_and_continue(self):
        _, cfg = lowered('''
            def f(n: int) -> int:
                i = 0
                while True:
                    invariant("i >= 0")
                    if i > n:
                        break
                    i = i + 1
                    continue
                return i
        ''')
        header_index = next(iter(cfg.loop_headers()))
        header = cfg[header_index]
        exit_index = header.terminator.false_target
        gotos = [b.terminator.target for b in cfg if isinstance(b.terminator, Goto)]
        assert exit_index in gotos
        assert gotos.count(header_index) >= 2

    def test_call(self):
        table, cfg = lowered('''
            def f(x: int) -> int:
                return g(x) + 1

            def g(a: int) -> int:
                return a
        ''', 'f')
        assert table.lookup('__tmp_0') == Type.INT
        assert '__tmp_0' in table.temporaries
        assert cfg[0].operations == [Call(table.variable('__tmp_0'), 'g', (table.variable('x'),))]

    def test_call_outside_module(self):
        with pytest.raises(UnsupportedError) as error:
            lowered('''
                def f(x: int) -> int:
                    return abs(x)
            ''')
        assert error.value.kind == UnsupportedKind.OPAQUE_CALL

    def test_call_arity(self):
        with pytest.raises(TypeCheckError):
            lowered('''
                def f(x: int) -> int:
                    return g(x, x)

                def g(a: int) -> int:
                    return a
            ''', 'f')

    def test_assignment_type_mismatch(self):
        with pytest.raises(TypeMismatchError) as error:
            lowered('''
                def f(x: int) -> int:
                    y = x > 0
                    y = 1
                    return x
            ''')
        assert error.value.lineno == 4

    def test_return_type_mismatch(self):
        with pytest.raises(TypeMismatchError):
            lowered('''
                def f(x: int) -> bool:
                    return x
            ''')

    def test_reserved_name(self):
        with pytest.raises(UnsupportedError):
            lowered('''
                def f(x: int) -> int:
                    ret = x
                    return ret
            ''')

    def test_malformed_invariant(self):
        with pytest.raises(ParseError):
            lowered('''
                def f(n: int) -> int:
                    i = 0
                    while i < n:
                        invariant("i <=")
                        i = i + 1
                    return i
            ''')

    def test_missing_return(self):
        _, cfg = lowered('''
            def f(x: int):
                y = x
        ''')
        assert cfg[0].terminator == Return(None)
        assert [str(op) for op in cfg[0].operations] == ['y = x']
        assert isinstance(cfg[0].operations[0], Assign)


def test_contracts_are_inert_at_run_time():
    from pywp.contracts import condition, invariant

    @condition(pre="n >= 0", post="ret == n + 1")
    def succ(n: int) -> int:
        invariant("n >= 0")
        return n + 1

    assert succ(2) == 3
    assert succ.__pre__ == "n >= 0"
    assert succ.__post__ == "ret == n + 1"
