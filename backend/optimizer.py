"""
optimizer.py
Fixed-point optimizer over quadruple lists:
constant propagation, constant folding + algebraic simplification, and
dead temporary elimination. The input list is never modified.
"""

import logging
import math
from copy import copy

from intermediate import Quadruple, is_literal, is_quoted, is_temp, quote, unquote
from jsvalues import apply_op, is_number, is_operator, to_number, UNARY_OPS

logger = logging.getLogger(__name__)

MAX_PASSES = 10

# a known user variable value does not survive these
BARRIERS = ('LABEL', 'GOTO', 'CALL', 'RETURN')
NO_RESULT_WRITE = ('LABEL', 'GOTO', 'JUMP_IF_FALSE')


def literal_value(operand):
    return unquote(operand) if is_quoted(operand) else operand


def as_operand(value):
    """Literal operand for a folded value, or None when it has none."""
    if isinstance(value, str):
        return quote(value)
    if isinstance(value, bool):
        return value
    if is_number(value) and math.isfinite(value):
        return value
    return None


def is_const(operand, number):
    return is_number(operand) and operand == number


def propagate_constants(tac):
    temps = {}
    names = {}
    changed = False
    out = []
    for instr in tac:
        instr = copy(instr)
        # CALL operands are the call target and the argument count
        if instr.op != 'CALL':
            for field in ('arg1', 'arg2'):
                operand = getattr(instr, field)
                if not isinstance(operand, str) or is_quoted(operand):
                    continue
                if operand in temps:
                    setattr(instr, field, temps[operand])
                    changed = True
                elif operand in names:
                    setattr(instr, field, names[operand])
                    changed = True
        if instr.op in BARRIERS:
            names.clear()
        target = instr.result
        if instr.op == 'ASSIGN' and is_literal(instr.arg1):
            if is_temp(target):
                temps[target] = instr.arg1
            else:
                names[target] = instr.arg1
        elif instr.op not in NO_RESULT_WRITE and target is not None:
            names.pop(target, None)
        out.append(instr)
    return out, changed


def fold(instr):
    op, a, b = instr.op, instr.arg1, instr.arg2
    if not is_operator(op):
        return instr
    unary = op in UNARY_OPS
    if is_literal(a) and (unary or is_literal(b)):
        divides = op in ('/', '%')
        if not (divides and to_number(literal_value(b)) == 0):
            if unary:
                value = apply_op(op, literal_value(a))
            else:
                value = apply_op(op, literal_value(a), literal_value(b))
            operand = as_operand(value)
            if operand is not None:
                return Quadruple('ASSIGN', operand, None, instr.result, instr.index)
    if op == '+' and is_const(b, 0):
        return Quadruple('ASSIGN', a, None, instr.result, instr.index)
    if op == '*' and is_const(b, 1):
        return Quadruple('ASSIGN', a, None, instr.result, instr.index)
    if op == '*' and is_const(b, 0):
        return Quadruple('ASSIGN', 0, None, instr.result, instr.index)
    return instr


def fold_constants(tac):
    out = []
    changed = False
    for instr in tac:
        folded = fold(instr)
        if folded is not instr:
            changed = True
        out.append(folded)
    return out, changed


def dead_code_elimination(tac):
    uses = set()
    for instr in tac:
        for operand in (instr.arg1, instr.arg2):
            if is_temp(operand):
                uses.add(operand)
    # CALL stays even when its result is unused
    result = [instr for instr in tac
              if instr.op == 'CALL' or not is_temp(instr.result) or instr.result in uses]
    return result, len(result) != len(tac)


def optimize_tac(tac, max_passes=MAX_PASSES):
    code = [copy(instr) for instr in tac]
    passes = 0
    changed = True
    while changed and passes < max_passes:
        passes += 1
        code, propagated = propagate_constants(code)
        code, folded = fold_constants(code)
        code, removed = dead_code_elimination(code)
        changed = propagated or folded or removed
    logger.debug("optimizer stopped after %d passes (%d -> %d instructions)",
                 passes, len(tac), len(code))
    for i, instr in enumerate(code):
        instr.index = i
    return code
