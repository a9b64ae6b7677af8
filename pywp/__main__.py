#!/usr/bin/env python

from pywp.verifier import verify_module
from pywp.verdict import Verdict, Status
from pywp.task import Task
from pywp.visual import cfg_to_dot

from pywp import log

import ast
import astpretty

import os
import sys

import yaml


def write_outputs(output_dir, tree, reports):
    """ per function: pretty printed ast, control flow graph and verification condition """
    nodes = {n.name : n for n in tree.body if isinstance(n, ast.FunctionDef)}
    for report in reports:
        base = os.path.join(output_dir, report.name)
        with open(base + '.astpretty', 'w') as out_file:
            out_file.write(astpretty.pformat(nodes[report.name], show_offsets=False))
        if report.cfg is not None:
            cfg_to_dot(report.cfg, report.name).save(base + '.cfg.dot')
        if report.vc is not None:
            with open(base + '.vc', 'w') as out_file:
                out_file.write(str(report.vc) + '\n')


def main(args) -> int:
    """ verifies every program, returns the exit status """
    log.init_printer(args)
    # combined verdict of all programs
    verdict = Verdict.VALID

    for program in args.program:
        # process program argument
        extension = os.path.splitext(os.path.basename(program))[1]
        if extension == '.yml':
            with open(program, 'r') as file:
                task_yml = yaml.safe_load(file)
                task = Task.task_from_yml(task_yml, os.path.dirname(program), args)
        else:
            task = Task.task_from_args(program, args)

        log.printer.log_task(task.program_name, task.functions, task.timeout)

        # read program file
        try:
            with open(task.program) as file:
                source = file.read()
        except OSError as x:
            log.printer.log_result(task.program_name, 'IO_ERROR', Verdict.UNKNOWN, x.strerror)
            verdict &= Verdict.UNKNOWN
            continue

        # prepare output directory
        output_dir = task.output_directory
        if not args.no_output:
            os.makedirs(output_dir, exist_ok=True)
            with open(os.path.join(output_dir, 'program.py'), 'w') as out_prog:
                out_prog.write(source)

        # parse program into ast
        log.printer.log_status('parsing')
        try:
            tree = ast.parse(source, task.program)
        except SyntaxError as x:
            log.printer.log_result(task.program_name, 'SYNTAX_INVALID', Verdict.UNKNOWN, 'line %s: %s' % (x.lineno, x.msg))
            verdict &= Verdict.UNKNOWN
            continue

        log.printer.log_status('verifying')
        try:
            reports = verify_module(tree, task.options())
        except KeyboardInterrupt:
            log.printer.log_result(task.program_name, 'ABORTED_BY_USER', Verdict.UNKNOWN)
            return 1

        if not args.no_output:
            write_outputs(output_dir, tree, reports)

        for report in reports:
            name = '%s.%s' % (task.program_name, report.name)
            if task.print_vc and report.vc is not None:
                log.printer.log_vc(name, report.vc)
            log.printer.log_report(name, report)
            verdict &= report.verdict if report.status == Status.OK else Verdict.UNKNOWN

    if args.strict and verdict != Verdict.VALID:
        return 1
    return 0


from pywp.params import parser


def run():
    args = parser.parse_args()
    sys.exit(main(args))


if __name__ == '__main__':
    run()
