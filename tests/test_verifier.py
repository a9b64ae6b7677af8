import textwrap

import pytest

pytest.importorskip('z3')

from pywp.verifier import VerifierOptions, verify_source
from pywp.verdict import Verdict, Status


SOURCE = textwrap.dedent('''
    from pywp.contracts import condition, invariant


    @condition(pre="x > 0", post="ret > 0")
    def identity(x: int) -> int:
        return x


    @condition(pre="true", post="ret >= 0 && (ret == x || ret == -x)")
    def absolute(x: int) -> int:
        if x < 0:
            return -x
        return x


    @condition(pre="x > 0", post="ret > 0")
    def shifted(x: int) -> int:
        return x - 10


    @condition(pre="n >= 0", post="ret == n")
    def count(n: int) -> int:
        i = 0
        while i < n:
            invariant("i <= n")
            i = i + 1
        return i


    @condition(pre="n >= 0", post="ret == n")
    def count_wrong_invariant(n: int) -> int:
        i = 0
        while i < n:
            invariant("i < n")
            i = i + 1
        return i


    @condition(pre="n >= 0", post="ret == 2 * n")
    def double(n: int) -> int:
        i = 0
        s = 0
        while i < n:
            invariant("0 <= i && i <= n && s == 2 * i")
            s += 2
            i += 1
        return s


    @condition(pre="a >= 0", post="ret == a + 1")
    def inc(a: int) -> int:
        return a + 1


    @condition(pre="x >= 0", post="ret == x + 2")
    def inc_twice(x: int) -> int:
        y = inc(x)
        return inc(y)


    @condition(pre="true", post="ret >= 1")
    def careless(x: int) -> int:
        return inc(x)


    @condition(pre="x >= 0", post="ret == x + 1")
    def bump(x: int) -> int:
        x = x + 1
        return x


    @condition(pre="true", post="ret == (x > 0)")
    def is_positive(x: int) -> bool:
        return x > 0


    @condition(pre="true", post="ret >= x && ret >= y")
    def maximum(x: int, y: int) -> int:
        return x if x >= y else y


    @condition(pre="true", post="(x != 0 ==> ret == 1) && (x == 0 ==> ret == 0)")
    def truthy(x: int) -> int:
        if x:
            return 1
        return 0


    def helper(x: int) -> int:
        return x


    @condition(pre="true", post="ret == x")
    def uses_helper(x: int) -> int:
        return helper(x)


    @condition(pre="true", post="ret >= 0")
    def uses_builtin(x: int) -> int:
        return abs(x)


    @condition(pre="n >= 0", post="ret == n")
    def no_invariant(n: int) -> int:
        i = 0
        while i < n:
            i = i + 1
        return i


    @condition(pre="x >", post="ret == x")
    def bad_syntax(x: int) -> int:
        return x


    @condition(pre="y > 0", post="ret == x")
    def unknown_name(x: int) -> int:
        return x


    @condition(pre="x", post="ret == x")
    def not_boolean(x: int) -> int:
        return x


    @condition(pre="x > 0", post=1)
    def bad_annotation(x: int) -> int:
        return x


    @condition(pre="true", post="ret == 0")
    def loops_over_list(x: int) -> int:
        for i in range(x):
            pass
        return 0


    @condition(pre="true", post="ret == x")
    def stray_break(x: int) -> int:
        if x > 0:
            break
        return x


    @condition(pre="x > 0")
    def only_precondition(x: int) -> int:
        return x
''')


EXPECTED = {
    'identity' : (Status.OK, Verdict.VALID),
    'absolute' : (Status.OK, Verdict.VALID),
    'shifted' : (Status.OK, Verdict.INVALID),
    'count' : (Status.OK, Verdict.VALID),
    'count_wrong_invariant' : (Status.OK, Verdict.INVALID),
    'double' : (Status.OK, Verdict.VALID),
    'inc' : (Status.OK, Verdict.VALID),
    'inc_twice' : (Status.OK, Verdict.VALID),
    'careless' : (Status.OK, Verdict.INVALID),
    'bump' : (Status.OK, Verdict.VALID),
    'is_positive' : (Status.OK, Verdict.VALID),
    'maximum' : (Status.OK, Verdict.VALID),
    'truthy' : (Status.OK, Verdict.VALID),
    'uses_helper' : (Status.UNSUPPORTED, 'OPAQUE_CALL'),
    'uses_builtin' : (Status.UNSUPPORTED, 'OPAQUE_CALL'),
    'no_invariant' : (Status.UNSUPPORTED, 'UNANNOTATED_LOOP'),
    'bad_syntax' : (Status.PARSE_ERROR, 'ParseError'),
    'unknown_name' : (Status.TYPE_ERROR, 'UnknownVariableError'),
    'not_boolean' : (Status.TYPE_ERROR, 'NotBooleanError'),
    'bad_annotation' : (Status.ANNOTATION_ERROR, 'AnnotationError'),
    'loops_over_list' : (Status.UNSUPPORTED, 'UNSUPPORTED_CONSTRUCT'),
    'stray_break' : (Status.UNSUPPORTED, 'UNSUPPORTED_CONSTRUCT'),
}


@pytest.fixture(scope='module')
def reports():
    return {r.name : r for r in verify_source(SOURCE, VerifierOptions(timeout=30))}


def test_reports_in_source_order():
    names = [r.name for r in verify_source(SOURCE, VerifierOptions(functions=list(EXPECTED)[:3]))]
    assert names == ['identity', 'absolute', 'shifted']


def test_unannotated_functions_are_skipped(reports):
    assert set(reports) == set(EXPECTED)


@pytest.mark.parametrize('name', list(EXPECTED))
def test_outcome(reports, name):
    status, outcome = EXPECTED[name]
    report = reports[name]
    assert report.status == status, report.describe()
    if status == Status.OK:
        assert report.verdict == outcome, report.describe()
    else:
        assert report.error_kind == outcome
        assert report.result is None


def test_counterexample(reports):
    model = reports['shifted'].result.model
    assert 0 < model['x'] <= 10


def test_violated_callee_precondition(reports):
    assert reports['careless'].result.model['x'] < 0


def test_wrong_invariant_is_refuted(reports):
    assert reports['count_wrong_invariant'].result.model['n'] >= 0


def test_counterexample_shows_source_names(reports):
    text = reports['count_wrong_invariant'].result.counterexample()
    assert text.startswith('n = ')
    assert '#' not in text


def test_artifacts(reports):
    assert reports['count'].cfg is not None
    assert str(reports['count'].vc).startswith('n >= 0 ==> ')
    assert reports['bad_syntax'].vc is None
    assert reports['no_invariant'].cfg is not None and reports['no_invariant'].vc is None
    assert reports['loops_over_list'].cfg is None


def test_error_messages_carry_lines(reports):
    assert 'line ' in reports['uses_builtin'].error
    assert 'line ' in reports['loops_over_list'].error


def test_function_filter():
    result = verify_source(SOURCE, VerifierOptions(functions=['count', 'missing']))
    assert [r.name for r in result] == ['count']


def test_parallel_matches_sequential(reports):
    parallel = verify_source(SOURCE, VerifierOptions(jobs=2, timeout=30))
    assert [r.name for r in parallel] == list(reports)
    assert [(r.status, r.verdict) for r in parallel] == [(r.status, r.verdict) for r in reports.values()]


def test_syntax_error():
    with pytest.raises(SyntaxError):
        verify_source('def f(:\n    pass\n')
