
from enum import Enum


class Verdict(Enum):
    VALID = 0,
    INVALID = 1,
    UNKNOWN = 2

    def __and__(self, other):
        if self == Verdict.VALID:
            return other
        elif self == Verdict.INVALID:
            return self
        elif self == Verdict.UNKNOWN and other == Verdict.VALID:
            return self
        elif self == Verdict.UNKNOWN and (other == Verdict.INVALID or other == Verdict.UNKNOWN):
            return other

    def __str__(self):
        return Enum.__str__(self).replace('Verdict.', '')


class Status(Enum):
    OK = 0,
    PARSE_ERROR = 1,
    ANNOTATION_ERROR = 2,
    TYPE_ERROR = 3,
    UNSUPPORTED = 4,
    ERROR = 5

    def __str__(self):
        return Enum.__str__(self).replace('Status.', '')


def is_internal_name(name : str) -> bool:
    """ renamed values `name#k` and hoisted temporaries `__tmp_k` """
    return '#' in name or name.startswith('__tmp_')


class VerificationResult:
    """
    Outcome of one solver check. A model is only present for INVALID, a
    reason only for UNKNOWN.
    """

    def __init__(self, verdict : Verdict, model : dict | None = None, reason : str | None = None):
        self.verdict = verdict
        self.model = model
        self.reason = reason

    @staticmethod
    def valid():
        return VerificationResult(Verdict.VALID)

    @staticmethod
    def invalid(model : dict):
        return VerificationResult(Verdict.INVALID, model=model)

    @staticmethod
    def unknown(reason : str):
        return VerificationResult(Verdict.UNKNOWN, reason=reason)

    def counterexample(self, internal : bool = False) -> str:
        """
        the model as a readable assignment list, e.g. `x = 1, y = true`.
        Names the verifier introduced are left out unless internal is set.
        """
        if not self.model:
            return ''
        values = []
        for name, value in sorted(self.model.items()):
            if not internal and is_internal_name(name):
                continue
            if isinstance(value, bool):
                value = 'true' if value else 'false'
            values.append('%s = %s' % (name, value))
        return ', '.join(values)

    def __str__(self):
        match self.verdict:
            case Verdict.INVALID:
                return '%s (%s)' % (self.verdict, self.counterexample())
            case Verdict.UNKNOWN:
                return '%s (%s)' % (self.verdict, self.reason)
            case _:
                return str(self.verdict)
