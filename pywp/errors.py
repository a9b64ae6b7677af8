"""
Error taxonomy of the verifier.

None of these errors is fatal to a run: the verifier turns each of them into
the status of the function that raised it and continues with the next one.
"""

from enum import Enum


class VerificationError(Exception):
    """ base class of all errors that cause a function to be skipped """

    def __init__(self, message : str, lineno : int | None = None):
        Exception.__init__(self, message)
        self.message = message
        self.lineno = lineno

    def __str__(self):
        if self.lineno is not None:
            return 'line %s: %s' % (self.lineno, self.message)
        return self.message


class ParseError(VerificationError):
    """ malformed condition text """

    def __init__(self, message : str, source : str, span : tuple[int, int], expected=()):
        VerificationError.__init__(self, message)
        self.source = source
        self.span = span
        self.expected = list(expected)

    def __str__(self):
        start, end = self.span
        text = '%s at offset %d' % (self.message, start)
        if self.expected:
            text += ' (expected %s)' % ', '.join(self.expected)
        marker = ' ' * start + '^' * max(1, end - start)
        return '%s\n  %s\n  %s' % (text, self.source, marker)


class AnnotationError(VerificationError):
    """ the @condition decorator of a function is malformed """


class TypeCheckError(VerificationError):
    pass


class UnknownVariableError(TypeCheckError):
    def __init__(self, name : str, lineno : int | None = None):
        TypeCheckError.__init__(self, 'unknown variable \'%s\'' % name, lineno)
        self.name = name


class UnknownTypeError(TypeCheckError):
    def __init__(self, name : str, lineno : int | None = None):
        TypeCheckError.__init__(self, 'variable \'%s\' has a type that is neither int nor bool' % name, lineno)
        self.name = name


class TypeMismatchError(TypeCheckError):
    def __init__(self, expression, expected, actual, lineno : int | None = None):
        TypeCheckError.__init__(self,
            'expected %s but \'%s\' has type %s' % (expected, expression, actual),
            lineno
        )
        self.expression = expression
        self.expected = expected
        self.actual = actual


class NotBooleanError(TypeMismatchError):
    pass


class UnsupportedKind(Enum):
    UNANNOTATED_LOOP = 1,
    OPAQUE_CALL = 2,
    UNENCODABLE_OPERATOR = 3,
    UNSUPPORTED_CONSTRUCT = 4

    def __str__(self):
        return Enum.__str__(self).replace('UnsupportedKind.', '')


class UnsupportedError(VerificationError):
    """ verification was not attempted, the function uses something outside the supported fragment """

    def __init__(self, kind : UnsupportedKind, message : str, lineno : int | None = None):
        VerificationError.__init__(self, message, lineno)
        self.kind = kind

    def __str__(self):
        return '%s: %s' % (self.kind, VerificationError.__str__(self))


class EncodingError(VerificationError):
    """ a formula could not be translated into solver terms """
