"""
intermediate.py
Lowers an ESTree tree into a flat list of quadruples (three-address code).

Operands are Python values: numbers and booleans pass through, string
literals are kept with their surrounding double quotes so they can never be
confused with a variable name, and every other string is a name (user
variable, temporary, join variable, label or intrinsic).
"""

import logging
import re

from jsvalues import BINARY_OPS, is_number, to_string
from semantic import param_name

logger = logging.getLogger(__name__)

# operand yielded by statements-as-expressions and by bare `return;`
VOID = 'undefined'

TEMP_RE = re.compile(r't\d+')

BINARY_OPMAP = {'==': 'EQ', '!=': 'NEQ', '===': 'EQ_STRICT', '!==': 'NEQ_STRICT'}
UNARY_OPMAP = {'-': 'NEG', '+': 'POS', '!': 'NOT', '~': 'BITNOT', 'typeof': 'TYPEOF'}

FUNC_PREFIX = 'FUNC_'
END_FUNC_PREFIX = 'END_FUNC_'
CONSOLE_PREFIX = 'console_'


def is_temp(operand):
    return isinstance(operand, str) and TEMP_RE.fullmatch(operand) is not None


def mangle(name):
    """Keep a source identifier from colliding with a generated temporary."""
    return '@' + name if is_temp(name) else name


def is_quoted(operand):
    return isinstance(operand, str) and len(operand) >= 2 and operand[0] == '"' and operand[-1] == '"'


def quote(text):
    return f'"{text}"'


def unquote(operand):
    return operand[1:-1]


def is_literal(operand):
    """Numbers, booleans and quoted strings are compile-time constants."""
    return isinstance(operand, bool) or is_number(operand) or is_quoted(operand)


def binary_op(operator):
    return BINARY_OPMAP.get(operator, operator)


def format_operand(operand):
    if operand is None:
        return ''
    if isinstance(operand, bool) or is_number(operand):
        return to_string(operand)
    return str(operand)


class Quadruple:
    def __init__(self, op, arg1=None, arg2=None, result=None, index=0):
        self.index = index
        self.op = op
        self.arg1 = arg1
        self.arg2 = arg2
        self.result = result

    def as_tuple(self):
        return (self.op, self.arg1, self.arg2, self.result)

    def as_dict(self):
        return {
            'index': self.index,
            'op': self.op,
            'arg1': self.arg1,
            'arg2': self.arg2,
            'result': self.result,
        }

    def __repr__(self):
        a1, a2 = format_operand(self.arg1), format_operand(self.arg2)
        if self.op == 'LABEL':
            return f"{self.result}:"
        if self.op == 'GOTO':
            return f"goto {self.result}"
        if self.op == 'JUMP_IF_FALSE':
            return f"ifFalse {a1} goto {self.result}"
        if self.op == 'ASSIGN':
            return f"{self.result} = {a1}"
        if self.op == 'PARAM':
            return f"param {a1}"
        if self.op == 'PARAM_RECEIVE':
            return f"receive {self.result}"
        if self.op == 'CALL':
            if self.result:
                return f"{self.result} = call {a1}, {a2}"
            return f"call {a1}, {a2}"
        if self.op == 'RETURN':
            return f"return {a1}"
        if self.op in UNARY_OPMAP.values():
            return f"{self.result} = {self.op} {a1}"
        return f"{self.result} = {a1} {self.op} {a2}"


class IRGenerator:
    def __init__(self):
        self.tac = []
        self.temp_count = 0
        self.label_count = 0
        self.join_count = 0
        self.loops = []
        self.warnings = []
        self.functions = set()

    def new_temp(self):
        name = f"t{self.temp_count}"
        self.temp_count += 1
        return name

    def new_label(self):
        name = f"L{self.label_count}"
        self.label_count += 1
        return name

    def new_join(self):
        # '%' cannot appear in a source identifier
        name = f"%j{self.join_count}"
        self.join_count += 1
        return name

    def emit(self, op, arg1=None, arg2=None, result=None):
        self.tac.append(Quadruple(op, arg1, arg2, result, index=len(self.tac)))

    def unsupported(self, node):
        message = f"Code generation for '{node.get('type')}' is not supported; skipped"
        logger.warning(message)
        self.warnings.append(message)

    def generate(self, tree):
        self.tac = []
        self.temp_count = 0
        self.label_count = 0
        self.join_count = 0
        self.loops = []
        self.warnings = []
        self.functions = set()
        self.gen(tree)
        return self.tac

    # =====================================================
    # statements
    # =====================================================
    def gen(self, node):
        if not node:
            return
        kind = node.get('type')
        if kind in ('Program', 'BlockStatement'):
            for stmt in node.get('body') or []:
                self.gen(stmt)
        elif kind == 'ExpressionStatement':
            self.gen_expr(node.get('expression'))
        elif kind == 'VariableDeclaration':
            for decl in node.get('declarations') or []:
                target = decl.get('id') or {}
                if target.get('type') != 'Identifier':
                    self.unsupported(target)
                elif decl.get('init'):
                    value = self.gen_expr(decl['init'])
                    self.emit('ASSIGN', value, None, mangle(target['name']))
        elif kind == 'FunctionDeclaration':
            self.gen_function(node)
        elif kind == 'IfStatement':
            l_else = self.new_label()
            l_end = self.new_label()
            cond = self.gen_expr(node.get('test'))
            self.emit('JUMP_IF_FALSE', cond, None, l_else)
            self.gen(node.get('consequent'))
            self.emit('GOTO', result=l_end)
            self.emit('LABEL', result=l_else)
            if node.get('alternate'):
                self.gen(node['alternate'])
            self.emit('LABEL', result=l_end)
        elif kind == 'WhileStatement':
            l_start = self.new_label()
            l_end = self.new_label()
            self.emit('LABEL', result=l_start)
            cond = self.gen_expr(node.get('test'))
            self.emit('JUMP_IF_FALSE', cond, None, l_end)
            self.gen_loop_body(node.get('body'), l_start, l_end)
            self.emit('GOTO', result=l_start)
            self.emit('LABEL', result=l_end)
        elif kind == 'ForStatement':
            self.gen_for(node)
        elif kind == 'ReturnStatement':
            value = VOID
            if node.get('argument'):
                value = self.gen_expr(node['argument'])
            self.emit('RETURN', value)
        elif kind in ('BreakStatement', 'ContinueStatement'):
            if not self.loops or node.get('label'):
                self.unsupported(node)
                return
            l_continue, l_break = self.loops[-1]
            self.emit('GOTO', result=l_break if kind == 'BreakStatement' else l_continue)
        elif kind == 'EmptyStatement':
            pass
        else:
            self.unsupported(node)

    def gen_loop_body(self, body, l_continue, l_break):
        self.loops.append((l_continue, l_break))
        self.gen(body)
        self.loops.pop()

    def gen_for(self, node):
        init = node.get('init')
        if init and init.get('type') == 'VariableDeclaration':
            self.gen(init)
        elif init:
            self.gen_expr(init)
        l_start = self.new_label()
        l_continue = self.new_label()
        l_end = self.new_label()
        self.emit('LABEL', result=l_start)
        if node.get('test'):
            cond = self.gen_expr(node['test'])
            self.emit('JUMP_IF_FALSE', cond, None, l_end)
        self.gen_loop_body(node.get('body'), l_continue, l_end)
        self.emit('LABEL', result=l_continue)
        if node.get('update'):
            self.gen_expr(node['update'])
        self.emit('GOTO', result=l_start)
        self.emit('LABEL', result=l_end)

    def gen_function(self, node):
        name = (node.get('id') or {}).get('name')
        if not name:
            self.unsupported(node)
            return
        l_start = FUNC_PREFIX + name
        l_end = END_FUNC_PREFIX + name
        if name in self.functions:
            message = f"Function '{name}' is declared more than once; calls reach the last declaration"
            logger.warning(message)
            self.warnings.append(message)
        self.functions.add(name)
        # straight-line execution must not fall into the body
        self.emit('GOTO', result=l_end)
        self.emit('LABEL', result=l_start)
        for param in node.get('params') or []:
            self.emit('PARAM_RECEIVE', result=mangle(param_name(param)))
        outer_loops, self.loops = self.loops, []
        self.gen(node.get('body'))
        self.loops = outer_loops
        self.emit('RETURN', VOID)
        self.emit('LABEL', result=l_end)

    # =====================================================
    # expressions
    # =====================================================
    def gen_expr(self, expr):
        if not expr:
            return VOID
        kind = expr.get('type')
        if kind == 'Literal':
            if expr.get('regex'):
                self.unsupported(expr)
                return VOID
            value = expr.get('value')
            if value is None:
                return 'null'
            if isinstance(value, str):
                return quote(value)
            return value
        if kind == 'TemplateLiteral':
            # interpolated expressions are dropped, only the static text is kept
            text = ''.join(q.get('value', {}).get('raw', '') for q in expr.get('quasis') or [])
            return quote(text)
        if kind == 'Identifier':
            return mangle(expr.get('name'))
        if kind == 'AssignmentExpression':
            return self.gen_assignment(expr)
        if kind == 'BinaryExpression':
            if binary_op(expr.get('operator')) not in BINARY_OPS:
                self.unsupported(expr)
                return VOID
            a = self.gen_expr(expr.get('left'))
            b = self.gen_expr(expr.get('right'))
            dest = self.new_temp()
            self.emit(binary_op(expr.get('operator')), a, b, dest)
            return dest
        if kind == 'UnaryExpression':
            op = expr.get('operator')
            if op == 'void':
                self.gen_expr(expr.get('argument'))
                return VOID
            if op not in UNARY_OPMAP:
                self.unsupported(expr)
                return VOID
            a = self.gen_expr(expr.get('argument'))
            dest = self.new_temp()
            self.emit(UNARY_OPMAP[op], a, None, dest)
            return dest
        if kind == 'UpdateExpression':
            return self.gen_update(expr)
        if kind == 'LogicalExpression':
            return self.gen_logical(expr)
        if kind == 'ConditionalExpression':
            return self.gen_conditional(expr)
        if kind == 'CallExpression':
            return self.gen_call(expr)
        if kind == 'SequenceExpression':
            value = VOID
            for item in expr.get('expressions') or []:
                value = self.gen_expr(item)
            return value
        self.unsupported(expr)
        return VOID

    def gen_assignment(self, expr):
        left = expr.get('left') or {}
        if left.get('type') != 'Identifier':
            self.unsupported(left)
            return VOID
        name = mangle(left['name'])
        op = expr.get('operator', '=')
        if op != '=' and binary_op(op[:-1]) not in BINARY_OPS:
            self.unsupported(expr)
            return VOID
        value = self.gen_expr(expr.get('right'))
        if op != '=':
            dest = self.new_temp()
            self.emit(binary_op(op[:-1]), name, value, dest)
            value = dest
        self.emit('ASSIGN', value, None, name)
        return name

    def gen_update(self, expr):
        target = expr.get('argument') or {}
        if target.get('type') != 'Identifier':
            self.unsupported(target)
            return VOID
        name = mangle(target['name'])
        op = '+' if expr.get('operator') == '++' else '-'
        previous = None
        if not expr.get('prefix'):
            previous = self.new_temp()
            self.emit('POS', name, None, previous)
        dest = self.new_temp()
        self.emit(op, name, 1, dest)
        self.emit('ASSIGN', dest, None, name)
        return previous if previous is not None else name

    def gen_logical(self, expr):
        op = expr.get('operator')
        join = self.new_join()
        l_end = self.new_label()
        left = self.gen_expr(expr.get('left'))
        self.emit('ASSIGN', left, None, join)
        if op == '&&':
            self.emit('JUMP_IF_FALSE', join, None, l_end)
        elif op == '||':
            negated = self.new_temp()
            self.emit('NOT', join, None, negated)
            self.emit('JUMP_IF_FALSE', negated, None, l_end)
        else:
            # ??: keep the left value unless it is null or undefined
            nullish = self.new_temp()
            self.emit('EQ', join, 'null', nullish)
            self.emit('JUMP_IF_FALSE', nullish, None, l_end)
        right = self.gen_expr(expr.get('right'))
        self.emit('ASSIGN', right, None, join)
        self.emit('LABEL', result=l_end)
        return join

    def gen_conditional(self, expr):
        join = self.new_join()
        l_else = self.new_label()
        l_end = self.new_label()
        cond = self.gen_expr(expr.get('test'))
        self.emit('JUMP_IF_FALSE', cond, None, l_else)
        self.emit('ASSIGN', self.gen_expr(expr.get('consequent')), None, join)
        self.emit('GOTO', result=l_end)
        self.emit('LABEL', result=l_else)
        self.emit('ASSIGN', self.gen_expr(expr.get('alternate')), None, join)
        self.emit('LABEL', result=l_end)
        return join

    def gen_call(self, expr):
        callee = expr.get('callee') or {}
        if callee.get('type') == 'MemberExpression' and not callee.get('computed') \
                and (callee.get('object') or {}).get('name') == 'console':
            target = CONSOLE_PREFIX + (callee.get('property') or {}).get('name', '')
        elif callee.get('type') == 'Identifier':
            target = FUNC_PREFIX + callee['name']
        else:
            self.unsupported(callee)
            return VOID
        args = [self.gen_expr(arg) for arg in expr.get('arguments') or []]
        for arg in args:
            self.emit('PARAM', arg)
        if target.startswith(CONSOLE_PREFIX):
            self.emit('CALL', target, len(args))
            return VOID
        dest = self.new_temp()
        self.emit('CALL', target, len(args), dest)
        return dest
