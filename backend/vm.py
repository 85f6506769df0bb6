"""
vm.py
Stack-based virtual machine executing quadruple lists.

Memory is one flat name -> value map shared by every call: a callee that
reuses a caller's variable or parameter name overwrites the caller's
binding, and the snapshot kept in each frame is never restored.
"""

import logging
import re
from collections import deque

from intermediate import FUNC_PREFIX, is_quoted, unquote
from jsvalues import UNDEFINED, apply_op, is_operator, to_boolean, to_string

logger = logging.getLogger(__name__)

MAX_STEPS = 20000
ERROR_PREFIX = "Execution error: "

CONSOLE_PREFIXES = {
    'console_log': '',
    'console_info': '',
    'console_debug': '',
    'console_warn': '[WARN] ',
    'console_error': '[ERROR] ',
}

NAMED_CONSTANTS = {
    'true': True,
    'false': False,
    'null': None,
    'undefined': UNDEFINED,
    'NaN': float('nan'),
    'Infinity': float('inf'),
}

INT_RE = re.compile(r'\s*([+-]?\d+)')
FLOAT_RE = re.compile(r'\s*([+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?)')


class VMError(Exception):
    pass


class StepLimitExceeded(VMError):
    def __init__(self, limit):
        self.limit = limit
        super().__init__(f"possible infinite loop: more than {limit} instructions executed")


class Frame:
    def __init__(self, return_index, target, memory_snapshot):
        self.return_index = return_index
        self.target = target
        self.memory_snapshot = memory_snapshot


class VirtualMachine:
    def __init__(self, max_steps=MAX_STEPS, input_provider=None, inputs=None):
        self.max_steps = max_steps
        self.input_provider = input_provider
        self.inputs = list(inputs) if inputs is not None else None
        self.intrinsics = {
            FUNC_PREFIX + 'prompt': self.intrinsic_prompt,
            FUNC_PREFIX + 'parseInt': self.intrinsic_parse_int,
            FUNC_PREFIX + 'parseFloat': self.intrinsic_parse_float,
        }

    def reset(self, tac):
        self.tac = list(tac)
        self.pc = 0
        self.memory = {}
        self.stack = []
        self.params = deque()
        self.output = []
        self.labels = {}
        self.pending_inputs = deque(self.inputs or [])

    def run(self, tac):
        """Execute tac and return the printed lines, plus an error line if it failed."""
        self.reset(tac)
        steps = 0
        try:
            self.map_labels()
            self.check_jumps()
            while self.pc < len(self.tac):
                steps += 1
                if steps > self.max_steps:
                    raise StepLimitExceeded(self.max_steps)
                self.step(self.tac[self.pc])
        except Exception as e:
            logger.info("execution stopped at instruction %d: %s", self.pc, e)
            self.output.append(ERROR_PREFIX + str(e))
        return self.output

    def map_labels(self):
        for i, instr in enumerate(self.tac):
            if instr.op == 'LABEL':
                self.labels[instr.result] = i

    def check_jumps(self):
        for instr in self.tac:
            if instr.op in ('GOTO', 'JUMP_IF_FALSE') and instr.result not in self.labels:
                raise VMError(f"undefined label '{instr.result}'")

    def resolve(self, operand):
        if operand is None:
            return UNDEFINED
        if isinstance(operand, (bool, int, float)):
            return operand
        if is_quoted(operand):
            return unquote(operand)
        if operand in NAMED_CONSTANTS and operand not in self.memory:
            return NAMED_CONSTANTS[operand]
        return self.memory.get(operand, UNDEFINED)

    def step(self, instr):
        op = instr.op
        if op == 'ASSIGN':
            self.memory[instr.result] = self.resolve(instr.arg1)
        elif is_operator(op):
            a = self.resolve(instr.arg1)
            b = self.resolve(instr.arg2)
            self.memory[instr.result] = apply_op(op, a, b)
        elif op == 'GOTO':
            self.pc = self.labels[instr.result]
            return
        elif op == 'JUMP_IF_FALSE':
            if not to_boolean(self.resolve(instr.arg1)):
                self.pc = self.labels[instr.result]
                return
        elif op == 'PARAM':
            self.params.append(self.resolve(instr.arg1))
        elif op == 'PARAM_RECEIVE':
            self.memory[instr.result] = self.params.popleft() if self.params else UNDEFINED
        elif op == 'CALL':
            if self.call(instr):
                return
        elif op == 'RETURN':
            self.do_return(instr)
            return
        elif op == 'LABEL':
            pass
        else:
            logger.warning("unknown opcode %r at %d ignored", op, self.pc)
        self.pc += 1

    def call(self, instr):
        """Run a CALL; True when control moved into a user function."""
        target = instr.arg1
        if target in CONSOLE_PREFIXES:
            values = list(self.params)
            self.params.clear()
            line = ' '.join(to_string(v) for v in values)
            self.output.append(CONSOLE_PREFIXES[target] + line)
            return False
        if target in self.labels:
            self.stack.append(Frame(self.pc + 1, instr.result, dict(self.memory)))
            self.pc = self.labels[target]
            return True
        if target in self.intrinsics:
            count = instr.arg2 or 0
            args = [self.params.popleft() for _ in range(min(count, len(self.params)))]
            value = self.intrinsics[target](args)
            if instr.result:
                self.memory[instr.result] = value
            return False
        name = target[len(FUNC_PREFIX):] if target.startswith(FUNC_PREFIX) else target
        raise VMError(f"undefined function '{name}'")

    def do_return(self, instr):
        value = self.resolve(instr.arg1)
        # arguments the callee never received are dropped
        self.params.clear()
        if not self.stack:
            self.pc = len(self.tac)
            return
        frame = self.stack.pop()
        self.pc = frame.return_index
        if frame.target:
            self.memory[frame.target] = value

    # -------------------------------------------------
    # intrinsics
    # -------------------------------------------------
    def read_input(self, message):
        if self.inputs is not None:
            return self.pending_inputs.popleft() if self.pending_inputs else None
        if self.input_provider is not None:
            return self.input_provider(message)
        return None

    def intrinsic_prompt(self, args):
        message = to_string(args[0]) if args else "Enter a value:"
        answer = self.read_input(message)
        return answer if answer is not None else "null"

    def intrinsic_parse_int(self, args):
        match = INT_RE.match(to_string(args[0])) if args else None
        return int(match.group(1)) if match else 0

    def intrinsic_parse_float(self, args):
        text = to_string(args[0]) if args else ''
        if text.strip().startswith('Infinity'):
            return float('inf')
        match = FLOAT_RE.match(text)
        return float(match.group(1)) if match else float('nan')


def run_tac(tac, max_steps=MAX_STEPS, input_provider=None, inputs=None):
    return VirtualMachine(max_steps, input_provider, inputs).run(tac)
