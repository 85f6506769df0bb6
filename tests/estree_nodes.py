"""Builders for hand-written ESTree trees used across the tests."""


def at(node, line, column=0):
    node['loc'] = {'start': {'line': line, 'column': column}}
    return node


def program(*body):
    return {'type': 'Program', 'sourceType': 'script', 'body': list(body)}


def ident(name):
    return {'type': 'Identifier', 'name': name}


def lit(value):
    return {'type': 'Literal', 'value': value, 'raw': repr(value)}


def _node(value):
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        return ident(value)
    return lit(value)


def declare(name, init=None, kind='let'):
    return {
        'type': 'VariableDeclaration',
        'kind': kind,
        'declarations': [{
            'type': 'VariableDeclarator',
            'id': ident(name),
            'init': _node(init) if init is not None else None,
        }],
    }


def let(name, init=None):
    return declare(name, init, 'let')


def const(name, init=None):
    return declare(name, init, 'const')


def var(name, init=None):
    return declare(name, init, 'var')


def expr(expression):
    return {'type': 'ExpressionStatement', 'expression': expression}


def binary(op, left, right):
    return {'type': 'BinaryExpression', 'operator': op, 'left': _node(left), 'right': _node(right)}


def logical(op, left, right):
    return {'type': 'LogicalExpression', 'operator': op, 'left': _node(left), 'right': _node(right)}


def unary(op, argument):
    return {'type': 'UnaryExpression', 'operator': op, 'prefix': True, 'argument': _node(argument)}


def update(op, name, prefix=False):
    return {'type': 'UpdateExpression', 'operator': op, 'prefix': prefix, 'argument': ident(name)}


def assign(name, value, op='='):
    return {'type': 'AssignmentExpression', 'operator': op, 'left': ident(name), 'right': _node(value)}


def conditional(test, consequent, alternate):
    return {'type': 'ConditionalExpression', 'test': _node(test),
            'consequent': _node(consequent), 'alternate': _node(alternate)}


def member(obj, prop):
    return {'type': 'MemberExpression', 'computed': False, 'object': _node(obj), 'property': ident(prop)}


def call(callee, *args):
    return {'type': 'CallExpression', 'callee': _node(callee), 'arguments': [_node(a) for a in args]}


def log(*args):
    return expr(call(member('console', 'log'), *args))


def block(*body):
    return {'type': 'BlockStatement', 'body': list(body)}


def if_(test, consequent, alternate=None):
    return {'type': 'IfStatement', 'test': _node(test), 'consequent': consequent, 'alternate': alternate}


def while_(test, body):
    return {'type': 'WhileStatement', 'test': _node(test), 'body': body}


def for_(init, test, step, body):
    return {'type': 'ForStatement', 'init': init, 'test': test, 'update': step, 'body': body}


def func(name, params, *body):
    return {
        'type': 'FunctionDeclaration',
        'id': ident(name),
        'params': [ident(p) for p in params],
        'body': block(*body),
    }


def ret(argument=None):
    return {'type': 'ReturnStatement', 'argument': _node(argument) if argument is not None else None}


def brk():
    return {'type': 'BreakStatement', 'label': None}


def cont():
    return {'type': 'ContinueStatement', 'label': None}


def template(*parts):
    quasis = [{'type': 'TemplateElement', 'value': {'raw': p, 'cooked': p}, 'tail': i == len(parts) - 1}
              for i, p in enumerate(parts)]
    return {'type': 'TemplateLiteral', 'quasis': quasis, 'expressions': []}


def class_decl(name):
    return {'type': 'ClassDeclaration', 'id': ident(name), 'superClass': None,
            'body': {'type': 'ClassBody', 'body': []}}
