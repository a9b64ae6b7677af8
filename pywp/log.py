"""
Console output. All modules print through the global `printer`, which the
command line replaces with one configured from its arguments.
"""

from pywp.verdict import Verdict, Status


class LogPrinter:
    def __init__(self, compact=False, log_level=0):
        self.compact = compact
        self.log_level = log_level

    def log_status(self, *msg):
        if not self.compact:
            print('\r', *msg, end='')

    def log_task(self, program_name, functions, timeout):
        if not self.compact:
            selection = ', '.join(functions) if functions else 'all annotated functions'
            limit = 'no time limit' if timeout is None else 'time limit %ss' % timeout
            print('Verifying %s: %s, %s' % (program_name, selection, limit))

    # debug output, level 1: conditions and VCs, level 5: every wp step
    def log_debug(self, level, *msg):
        if not self.compact and self.log_level >= level:
            print(*msg)

    def log_vc(self, name, vc):
        print('VC of %s: %s' % (name, vc))

    def log_result(self, name, status, verdict, detail=None):
        line = '%s: %s %s' % (name, status, verdict)
        if detail:
            line += ' (%s)' % detail
        # a status line may still be open in verbose mode
        print(line if self.compact else '\n' + line)

    def log_report(self, name, report):
        """ result line of a verified or skipped function """
        if report.status != Status.OK:
            self.log_result(name, report.status, Verdict.UNKNOWN, '%s: %s' % (report.error_kind, report.error))
            return
        match report.verdict:
            case Verdict.INVALID:
                detail = report.result.counterexample(internal=self.log_level >= 2)
            case Verdict.UNKNOWN:
                detail = report.result.reason
            case _:
                detail = None
        self.log_result(name, report.status, report.verdict, detail)

    def log_intermediate_result(self, name, report):
        if not self.compact and self.log_level >= 1:
            print('[%s] %s' % (name, report.describe()))


# global object for printing messages, replaced by init_printer
printer = LogPrinter()


def init_printer(args):
    """
    initialize global printer object from args
    """
    global printer
    printer = LogPrinter(args.compact, args.log_level)
