"""
Annotations for verified code.

    from pywp.contracts import condition, invariant

    @condition(pre="n >= 0", post="ret >= n")
    def f(n: int) -> int:
        i = 0
        while i < n:
            invariant("i <= n")
            i = i + 1
        return i

Both are inert at run time; pywp reads them from the source.
"""


def condition(pre : str | None = None, post : str | None = None):
    def decorate(function):
        function.__pre__ = pre
        function.__post__ = post
        return function
    return decorate


def invariant(text : str):
    pass
