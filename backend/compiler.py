#!/usr/bin/env python3
"""
compiler.py
Pipeline driver: ESTree front end -> semantic analysis -> quadruple IR
-> fixed-point optimizer -> virtual machine.

Semantic errors are advisory: generation still runs unless the analyzer
itself crashed (a fatal diagnostic).
"""

import logging
import sys

from esprima import parseScript
from esprima.error_handler import Error as EsprimaError

from diagnostics import Diagnostics
from intermediate import IRGenerator
from optimizer import MAX_PASSES, optimize_tac
from semantic import AnalysisResult, SemanticAnalyzer
from vm import MAX_STEPS, run_tac

logger = logging.getLogger(__name__)


class ParseError(Exception):
    def __init__(self, message, line=0, column=0):
        self.message = message
        self.line = line
        self.column = column
        if line > 0:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)

    def as_dict(self):
        return {
            'type': 'error',
            'message': f"Syntax error: {self.message}",
            'line': self.line,
            'column': self.column,
            'node': 'unknown',
        }


# =====================================================
# FRONT END
# =====================================================
def to_plain(value):
    """Parser node objects -> nested dicts/lists."""
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if hasattr(value, '__dict__'):
        return {k: to_plain(v) for k, v in vars(value).items() if not k.startswith("_")}
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def parse_source(code):
    try:
        tree = parseScript(code, {'loc': True})
    except EsprimaError as e:
        description = getattr(e, 'description', None) or str(e)
        raise ParseError(description, getattr(e, 'lineNumber', 0) or 0,
                         getattr(e, 'column', 0) or 0) from e
    return to_plain(tree)


# =====================================================
# STAGES
# =====================================================
def analyze_program(tree):
    try:
        return SemanticAnalyzer().analyze(tree)
    except Exception as e:
        logger.exception("semantic analysis crashed")
        diagnostics = Diagnostics()
        diagnostics.error(f"Internal error during semantic analysis: {e}", fatal=True)
        return AnalysisResult(diagnostics)


def new_result():
    return {
        'ast': None,
        'analysis': None,
        'errors': [],
        'warnings': [],
        'symbol_table': [],
        'statistics': {},
        'report': '',
        'tac': [],
        'optimized_tac': [],
        'generator_warnings': [],
        'output': [],
    }


def compile_tree(tree, inputs=None, input_provider=None, optimize=True,
                 max_steps=MAX_STEPS, max_passes=MAX_PASSES):
    result = new_result()
    result['ast'] = tree

    analysis = analyze_program(tree)
    result['analysis'] = analysis
    result['errors'] = [d.as_dict() for d in analysis.errors]
    result['warnings'] = [d.as_dict() for d in analysis.warnings]
    result['symbol_table'] = analysis.symbol_rows()
    result['statistics'] = analysis.statistics()
    result['report'] = analysis.report()
    if analysis.fatal_count:
        return result

    irgen = IRGenerator()
    tac = irgen.generate(tree)
    result['tac'] = tac
    result['generator_warnings'] = list(irgen.warnings)

    optimized = optimize_tac(tac, max_passes) if optimize else list(tac)
    result['optimized_tac'] = optimized

    result['output'] = run_tac(optimized, max_steps, input_provider, inputs)
    return result


def compile_source(code, **options):
    try:
        tree = parse_source(code)
    except ParseError as e:
        result = new_result()
        result['errors'] = [e.as_dict()]
        return result
    return compile_tree(tree, **options)


# =====================================================
# SAMPLE PROGRAM
# =====================================================
TEST_PROGRAM = r'''
function square(n) {
    return n * n;
}
let total = 0;
let i = 1;
while (i <= 3) {
    total = total + square(i);
    i = i + 1;
}
console.log("total:", total);
'''

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    source = TEST_PROGRAM
    if len(sys.argv) > 1:
        with open(sys.argv[1]) as f:
            source = f.read()
    result = compile_source(source, input_provider=input)
    for d in result['errors'] + result['warnings']:
        print(f"{d['type']} [{d['line']}:{d['column']}] {d['message']}")
    for instr in result['optimized_tac']:
        print(f"{instr.index:4}  {instr!r}")
    for line in result['output']:
        print(line)
