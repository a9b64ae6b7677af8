import argparse

from pywp import __version__


parser = argparse.ArgumentParser(prog='pywp', description='verifies python functions against their pre- and postconditions')
parser.add_argument('program', help='the programs (.py) or task files (.yml) to verify', nargs='+')

parser.add_argument('-o', '--output-directory', help='directory to write results to', type=str, default='out')
parser.add_argument('--no-output', help='do not write anything to the output directory', action='store_true')

parser.add_argument('-f', '--function', action='append', default=[], help='only verify the given function (may be repeated)')
parser.add_argument('--timeout', help='time limit of a single solver check in seconds', type=float)
parser.add_argument('--solver', help='name of the pysmt solver to use', type=str, default='z3')
parser.add_argument('-j', '--jobs', help='number of functions verified in parallel', type=int, default=1)

parser.add_argument('--print-vc', help='print the verification condition of each function', action='store_true')
parser.add_argument('--strict', help='exit with status 1 unless every function is valid', action='store_true')

parser.add_argument('--compact', help='print less output (only function and verdict)', action='store_true')
parser.add_argument('--log-level', help='level of debugging output', type=int, default=0)

parser.add_argument('-v', '--version', help='show version', action='version', version='%(prog)s ' + __version__)
