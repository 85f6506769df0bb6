"""
semantic.py
Scope-aware semantic analysis for ESTree programs.

The analyzer walks the tree (plain dicts, as produced by the front end) and
records diagnostics plus an inferred value kind for every expression node.
Function declarations of a statement list are hoisted in a separate pass
before the list is walked, so sibling functions can reference each other.
"""

from diagnostics import Diagnostics, node_position
from scope import Scope, Symbol, GLOBAL, FUNCTION, BLOCK, CLASS

# name, inferred kind, return kind
BUILTINS = [
    ('console', 'object', None),
    ('window', 'object', None),
    ('document', 'object', None),
    ('Math', 'object', None),
    ('JSON', 'object', None),
    ('Array', 'function', None),
    ('Object', 'function', None),
    ('String', 'function', 'string'),
    ('Number', 'function', 'number'),
    ('Boolean', 'function', 'boolean'),
    ('Date', 'function', None),
    ('RegExp', 'function', None),
    ('parseInt', 'function', 'number'),
    ('parseFloat', 'function', 'number'),
    ('prompt', 'function', 'string'),
    ('isNaN', 'function', 'boolean'),
    ('isFinite', 'function', 'boolean'),
    ('eval', 'function', None),
    ('setTimeout', 'function', None),
    ('setInterval', 'function', None),
    ('clearTimeout', 'function', None),
    ('clearInterval', 'function', None),
    ('undefined', 'undefined', None),
    ('NaN', 'number', None),
    ('Infinity', 'number', None),
]

TERMINATORS = ('ReturnStatement', 'BreakStatement', 'ContinueStatement', 'ThrowStatement')
COMPARISON_OPS = ('==', '===', '!=', '!==', '<', '>', '<=', '>=', 'instanceof', 'in')
BITWISE_OPS = ('&', '|', '^', '<<', '>>', '>>>')
CONSOLE_METHODS = ('log', 'warn', 'error', 'info', 'debug')


def param_name(param):
    """Bound name of a simple, defaulted or rest parameter."""
    if not param:
        return None
    if param.get('type') == 'Identifier':
        return param.get('name')
    if param.get('type') == 'AssignmentPattern':
        return param_name(param.get('left'))
    if param.get('type') == 'RestElement':
        return param_name(param.get('argument'))
    return None


def literal_kind(value):
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    return 'object'


class AnalysisResult:
    def __init__(self, diagnostics, global_scope=None, kinds=None):
        self.diagnostics = diagnostics
        self.global_scope = global_scope
        self.kinds = kinds or {}

    @property
    def errors(self):
        return self.diagnostics.errors

    @property
    def warnings(self):
        return self.diagnostics.warnings

    @property
    def fatal_count(self):
        return self.diagnostics.fatal_count

    def kind_of(self, node):
        """Inferred value kind of an analyzed expression node."""
        return self.kinds.get(id(node))

    def symbol_rows(self):
        rows = []
        if self.global_scope is None:
            return rows

        def collect(scope, path, depth):
            for symbol in scope.symbols.values():
                if symbol.builtin:
                    continue
                rows.append({
                    'name': symbol.name,
                    'kind': symbol.kind,
                    'inferred': symbol.inferred,
                    'scope': path,
                    'depth': depth,
                    'used': symbol.used,
                    'initialized': symbol.initialized,
                    'line': symbol.line,
                    'column': symbol.column,
                })
            for i, child in enumerate(scope.children):
                collect(child, f"{path}.{child.kind}{i}", depth + 1)

        collect(self.global_scope, 'global', 0)
        return rows

    def statistics(self):
        stats = {'variables': 0, 'constants': 0, 'functions': 0, 'parameters': 0, 'unused': 0}
        for row in self.symbol_rows():
            if row['kind'] in ('let', 'var'):
                stats['variables'] += 1
            elif row['kind'] == 'const':
                stats['constants'] += 1
            elif row['kind'] in ('function', 'class'):
                stats['functions'] += 1
            elif row['kind'] == 'parameter':
                stats['parameters'] += 1
            if not row['used']:
                stats['unused'] += 1
        return stats

    def report(self):
        lines = ["=== SEMANTIC ANALYSIS ===", ""]
        lines.append(f"Semantic errors: {len(self.errors)}")
        lines.append(f"Warnings: {len(self.warnings)}")
        lines.append("")
        for title, items in (("ERRORS:", self.errors), ("WARNINGS:", self.warnings)):
            if not items:
                continue
            lines.append(title)
            for i, d in enumerate(items, 1):
                lines.append(f"{i}. [Line {d.line}, Column {d.column}] {d.message}")
                if d.node_kind != 'unknown':
                    lines.append(f"   Node kind: {d.node_kind}")
            lines.append("")
        lines.append("SYMBOL TABLE:")
        lines.append(f"{'Name':<24}{'Kind':<12}{'Scope':<20}Used\tInitialized")
        lines.append("-" * 80)
        for row in self.symbol_rows():
            name = "  " * row['depth'] + row['name']
            used = "yes" if row['used'] else "no"
            init = "yes" if row['initialized'] else "no"
            lines.append(f"{name:<24}{row['kind']:<12}{row['scope']:<20}{used}\t{init}")
        stats = self.statistics()
        lines.append("")
        lines.append("STATISTICS:")
        lines.append(f"Variables: {stats['variables']}")
        lines.append(f"Constants: {stats['constants']}")
        lines.append(f"Functions: {stats['functions']}")
        lines.append(f"Parameters: {stats['parameters']}")
        lines.append(f"Unused symbols: {stats['unused']}")
        return "\n".join(lines)


class SemanticAnalyzer:
    def __init__(self):
        self.global_scope = Scope(GLOBAL)
        self.scope = self.global_scope
        self.diagnostics = Diagnostics()
        self.function_stack = []
        self.kinds = {}
        self._register_builtins()
        self._dispatch = {
            'Program': self.visit_program,
            'VariableDeclaration': self.visit_variable_declaration,
            'FunctionDeclaration': self.visit_function_declaration,
            'ClassDeclaration': self.visit_class_declaration,
            'MethodDefinition': self.visit_method_definition,
            'BlockStatement': self.visit_block,
            'ExpressionStatement': self.visit_expression_statement,
            'IfStatement': self.visit_if,
            'WhileStatement': self.visit_while,
            'ForStatement': self.visit_for,
            'ReturnStatement': self.visit_return,
            'BreakStatement': self.visit_jump,
            'ContinueStatement': self.visit_jump,
            'EmptyStatement': self.visit_jump,
            'ThrowStatement': self.visit_throw,
            'Identifier': self.visit_identifier,
            'Literal': self.visit_literal,
            'TemplateLiteral': self.visit_template_literal,
            'AssignmentExpression': self.visit_assignment,
            'BinaryExpression': self.visit_binary,
            'LogicalExpression': self.visit_logical,
            'UnaryExpression': self.visit_unary,
            'UpdateExpression': self.visit_update,
            'ConditionalExpression': self.visit_conditional,
            'CallExpression': self.visit_call,
            'NewExpression': self.visit_new,
            'MemberExpression': self.visit_member,
            'ArrayExpression': self.visit_array,
            'ObjectExpression': self.visit_object,
            'ArrowFunctionExpression': self.visit_function_expression,
            'FunctionExpression': self.visit_function_expression,
            'SequenceExpression': self.visit_sequence,
            'ThisExpression': self.visit_this,
        }

    def _register_builtins(self):
        for name, inferred, returns in BUILTINS:
            kind = 'function' if inferred == 'function' else 'var'
            symbol = Symbol(name, kind, inferred, initialized=True, builtin=True)
            symbol.return_kind = returns
            self.global_scope.symbols[name] = symbol

    # -------------------------------------------------
    # driver
    # -------------------------------------------------
    def analyze(self, tree):
        self.visit(tree)
        self.check_unused()
        return AnalysisResult(self.diagnostics, self.global_scope, self.kinds)

    def visit(self, node):
        if not node:
            return None
        handler = self._dispatch.get(node.get('type'))
        if handler is None:
            self.diagnostics.warning(f"Unknown node type: {node.get('type')}", node)
            return None
        kind = handler(node)
        if kind is not None:
            self.kinds[id(node)] = kind
        return kind

    def enter_scope(self, kind=BLOCK):
        self.scope = self.scope.child(kind)

    def exit_scope(self):
        if self.scope.parent is not None:
            self.scope = self.scope.parent

    def hoist_functions(self, statements):
        for stmt in statements:
            if stmt and stmt.get('type') == 'FunctionDeclaration':
                self.hoist_function(stmt)

    def hoist_function(self, node):
        name = (node.get('id') or {}).get('name')
        if not name:
            return None
        line, column = node_position(node)
        params = [param_name(p) for p in node.get('params') or []]
        symbol = Symbol(name, 'function', 'function', initialized=True,
                        line=line, column=column, params=[p for p in params if p])
        error = self.scope.define(symbol)
        if error:
            self.diagnostics.error(error, node)
        return symbol

    def visit_statements(self, statements):
        unreachable = False
        for stmt in statements:
            if unreachable:
                self.diagnostics.warning("Unreachable code detected", stmt)
            self.visit(stmt)
            if stmt and stmt.get('type') in TERMINATORS:
                unreachable = True

    def check_unused(self):
        for scope in self.global_scope.walk():
            for name, symbol in scope.symbols.items():
                if symbol.used or symbol.builtin or symbol.kind == 'function' or symbol.has_error:
                    continue
                self.diagnostics.warning(
                    f"'{name}' is declared but its value is never used",
                    {'line': symbol.line, 'column': symbol.column})

    # -------------------------------------------------
    # statements
    # -------------------------------------------------
    def visit_program(self, node):
        self.scope.kind = GLOBAL
        body = node.get('body') or []
        self.hoist_functions(body)
        for stmt in body:
            self.visit(stmt)

    def visit_variable_declaration(self, node):
        kind = node.get('kind', 'var')
        for decl in node.get('declarations') or []:
            name = (decl.get('id') or {}).get('name')
            init = decl.get('init')
            inferred = 'undefined'
            if init:
                inferred = self.visit(init) or inferred
            if not name:
                continue
            line, column = node_position(decl)
            symbol = Symbol(name, kind, inferred, initialized=init is not None,
                            line=line, column=column)
            if kind == 'const' and init is None:
                self.diagnostics.error(f"Missing initializer in const declaration '{name}'", decl)
                symbol.has_error = True
            scope = self.scope.function_scope() if kind == 'var' else self.scope
            error = scope.define(symbol)
            if error:
                existing = scope.lookup(name)
                if existing is not None and existing.kind != kind:
                    self.diagnostics.error(
                        f"Identifier '{name}' has already been declared with a different kind", decl)
                else:
                    self.diagnostics.error(error, decl)

    def visit_function_declaration(self, node):
        name = (node.get('id') or {}).get('name')
        symbol = self.scope.lookup_local(name) if name else None
        if name and symbol is None:
            symbol = self.hoist_function(node)
        frame = self.visit_function(node, name, symbol)
        if not frame['has_return'] and name and name != 'main':
            self.diagnostics.warning(f"Function '{name}' has no return statement", node)

    def visit_function(self, node, name=None, symbol=None):
        self.enter_scope(FUNCTION)
        frame = {'name': name, 'symbol': symbol, 'has_return': False}
        self.function_stack.append(frame)
        for param in node.get('params') or []:
            pname = param_name(param)
            if param.get('type') == 'AssignmentPattern':
                self.visit(param.get('right'))
            if pname:
                line, column = node_position(param)
                self.scope.define(Symbol(pname, 'parameter', 'unknown', initialized=True,
                                         line=line, column=column))
        body = node.get('body')
        if body and body.get('type') == 'BlockStatement':
            statements = body.get('body') or []
            self.hoist_functions(statements)
            self.visit_statements(statements)
        elif body:
            # concise arrow body is its return value
            frame['has_return'] = True
            self.visit(body)
        self.function_stack.pop()
        self.exit_scope()
        return frame

    def visit_class_declaration(self, node):
        ident = node.get('id')
        if ident and ident.get('name'):
            line, column = node_position(node)
            symbol = Symbol(ident['name'], 'class', 'function', initialized=True,
                            line=line, column=column)
            error = self.scope.define(symbol)
            if error:
                self.diagnostics.error(error, node)
        if node.get('superClass'):
            self.visit(node['superClass'])
        self.enter_scope(CLASS)
        for member in (node.get('body') or {}).get('body') or []:
            self.visit(member)
        self.exit_scope()

    def visit_method_definition(self, node):
        if node.get('computed'):
            self.visit(node.get('key'))
        self.visit_function(node.get('value') or {})

    def visit_block(self, node):
        self.enter_scope(BLOCK)
        statements = node.get('body') or []
        self.hoist_functions(statements)
        self.visit_statements(statements)
        self.exit_scope()

    def visit_expression_statement(self, node):
        self.visit(node.get('expression'))

    def visit_if(self, node):
        test = node.get('test')
        if test:
            self.visit(test)
            if self.is_always_truthy(test):
                self.diagnostics.warning(
                    "Condition is always true; the else branch is never executed", node)
            elif self.is_always_falsy(test):
                self.diagnostics.warning(
                    "Condition is always false; the if branch is never executed", node)
        self.visit(node.get('consequent'))
        self.visit(node.get('alternate'))

    def visit_while(self, node):
        test = node.get('test')
        if test:
            self.visit(test)
            if self.is_always_truthy(test):
                self.diagnostics.warning("Possible infinite loop: condition is always true", node)
            elif self.is_always_falsy(test):
                self.diagnostics.warning("Loop condition is always false; the body never runs", node)
        self.visit(node.get('body'))

    def visit_for(self, node):
        self.enter_scope(BLOCK)
        self.visit(node.get('init'))
        test = node.get('test')
        if test:
            self.visit(test)
            if self.is_always_falsy(test):
                self.diagnostics.warning("For loop condition is always false; the loop never runs", node)
        self.visit(node.get('update'))
        self.visit(node.get('body'))
        self.exit_scope()

    def visit_return(self, node):
        kind = 'undefined'
        if node.get('argument'):
            kind = self.visit(node['argument']) or kind
        if not self.function_stack:
            self.diagnostics.error("'return' statement outside of a function", node)
            return None
        frame = self.function_stack[-1]
        frame['has_return'] = True
        if frame['symbol'] is not None:
            frame['symbol'].return_kind = kind
        return None

    def visit_jump(self, node):
        return None

    def visit_throw(self, node):
        self.visit(node.get('argument'))

    # -------------------------------------------------
    # expressions
    # -------------------------------------------------
    def visit_identifier(self, node):
        name = node.get('name')
        symbol = self.scope.lookup(name)
        if symbol is None:
            self.diagnostics.error(f"'{name}' is not defined", node)
            return 'unknown'
        symbol.used = True
        if not symbol.initialized and symbol.kind != 'function' and not symbol.builtin:
            self.diagnostics.error(f"Variable '{name}' is used before being initialized", node)
        return symbol.inferred

    def visit_literal(self, node):
        if node.get('regex'):
            return 'object'
        return literal_kind(node.get('value'))

    def visit_template_literal(self, node):
        for expr in node.get('expressions') or []:
            self.visit(expr)
        return 'string'

    def visit_assignment(self, node):
        right = self.visit(node.get('right'))
        left = node.get('left') or {}
        op = node.get('operator', '=')
        if left.get('type') == 'Identifier':
            name = left.get('name')
            symbol = self.scope.lookup(name)
            if symbol is None:
                self.diagnostics.error(f"Cannot assign to undeclared variable '{name}'", left)
            else:
                if symbol.kind == 'const' and symbol.initialized:
                    self.diagnostics.error(f"Cannot assign to const variable '{name}'", left)
                if symbol.kind in ('let', 'var', 'const'):
                    symbol.initialized = True
        else:
            self.visit(left)
        if op == '+=':
            self.check_arithmetic(left, node.get('right'), node)
        elif op in ('-=', '*=', '/=', '%='):
            self.check_numeric(left, node.get('right'), node)
        return right if op == '=' else 'unknown'

    def visit_binary(self, node):
        left = self.visit(node.get('left'))
        right = self.visit(node.get('right'))
        op = node.get('operator')
        if op in COMPARISON_OPS:
            return 'boolean'
        if op in BITWISE_OPS:
            return 'number'
        if left == 'number' and right == 'number':
            return 'number'
        if op == '+' and 'string' in (left, right):
            return 'string'
        return 'unknown'

    def visit_logical(self, node):
        left = self.visit(node.get('left'))
        right = self.visit(node.get('right'))
        op = node.get('operator')
        if op == '&&' and self.is_always_falsy(node.get('left')):
            self.diagnostics.warning(
                "Left side of && is always false; the right side is never evaluated", node)
        elif op == '||' and self.is_always_truthy(node.get('left')):
            self.diagnostics.warning(
                "Left side of || is always true; the right side is never evaluated", node)
        return left if left == right else 'unknown'

    def visit_unary(self, node):
        argument = node.get('argument')
        self.visit(argument)
        op = node.get('operator')
        if op == '!':
            if argument and argument.get('type') == 'UnaryExpression' and argument.get('operator') == '!':
                self.diagnostics.warning("Double negation (!!), consider using Boolean() instead", node)
            return 'boolean'
        if op == 'typeof':
            return 'string'
        if op in ('+', '-', '~'):
            self.check_numeric(argument, None, node)
            return 'number'
        if op == 'delete':
            if argument and argument.get('type') == 'Identifier':
                self.diagnostics.warning(
                    f"Deleting unqualified identifier '{argument.get('name')}' in strict mode", node)
            return 'boolean'
        if op == 'void':
            return 'undefined'
        return 'unknown'

    def visit_update(self, node):
        argument = node.get('argument') or {}
        if argument.get('type') != 'Identifier':
            self.visit(argument)
            return 'number'
        name = argument.get('name')
        symbol = self.scope.lookup(name)
        if symbol is None:
            self.diagnostics.error(f"Cannot update undeclared variable '{name}'", argument)
        elif symbol.kind == 'const':
            self.diagnostics.error(f"Cannot update const variable '{name}'", argument)
        else:
            symbol.used = True
        return 'number'

    def visit_conditional(self, node):
        test = node.get('test')
        self.visit(test)
        consequent = self.visit(node.get('consequent'))
        alternate = self.visit(node.get('alternate'))
        if self.is_always_truthy(test):
            self.diagnostics.warning(
                "Condition is always true; the alternate branch is never evaluated", node)
        elif self.is_always_falsy(test):
            self.diagnostics.warning(
                "Condition is always false; the consequent branch is never evaluated", node)
        return consequent if consequent == alternate else 'unknown'

    def visit_call(self, node):
        callee = node.get('callee') or {}
        args = node.get('arguments') or []
        symbol = None
        if callee.get('type') == 'Identifier':
            name = callee.get('name')
            symbol = self.scope.lookup(name)
            if symbol is None:
                self.diagnostics.error(f"Function '{name}' is not defined", callee)
                for arg in args:
                    self.visit(arg)
                return 'unknown'
            symbol.used = True
            if not symbol.callable:
                self.diagnostics.warning(
                    f"'{name}' is not a function, its kind is '{symbol.inferred}'", callee)
        else:
            self.visit(callee)
        for arg in args:
            self.visit(arg)
        if symbol is not None and symbol.params is not None and len(args) != len(symbol.params):
            self.diagnostics.warning(
                f"Function '{symbol.name}' expects {len(symbol.params)} arguments, "
                f"but received {len(args)}", node)
        if symbol is not None and symbol.return_kind:
            return symbol.return_kind
        return 'unknown'

    def visit_new(self, node):
        self.visit(node.get('callee'))
        for arg in node.get('arguments') or []:
            self.visit(arg)
        return 'object'

    def visit_member(self, node):
        obj = node.get('object') or {}
        prop = node.get('property') or {}
        self.visit(obj)
        if node.get('computed'):
            self.visit(prop)
        elif obj.get('type') == 'Identifier' and obj.get('name') == 'console':
            if prop.get('name') and prop['name'] not in CONSOLE_METHODS:
                self.diagnostics.warning(f"Unknown console method: {prop['name']}", node)
        return 'unknown'

    def visit_array(self, node):
        for element in node.get('elements') or []:
            if element:
                self.visit(element)
        return 'object'

    def visit_object(self, node):
        keys = set()
        for prop in node.get('properties') or []:
            key = prop.get('key') or {}
            name = None
            if key.get('type') == 'Identifier' and not prop.get('computed'):
                name = key.get('name')
            elif key.get('type') == 'Literal':
                name = key.get('value')
            if name is not None:
                if name in keys:
                    self.diagnostics.warning(f"Duplicate key '{name}' in object literal", prop)
                keys.add(name)
            if prop.get('computed'):
                self.visit(key)
            value = prop.get('value')
            if value:
                if value.get('type') in ('FunctionExpression', 'ArrowFunctionExpression'):
                    self.visit_function(value)
                else:
                    self.visit(value)
        return 'object'

    def visit_function_expression(self, node):
        self.visit_function(node)
        return 'function'

    def visit_sequence(self, node):
        kind = None
        for expr in node.get('expressions') or []:
            kind = self.visit(expr)
        return kind

    def visit_this(self, node):
        return 'object'

    # -------------------------------------------------
    # helpers
    # -------------------------------------------------
    def check_arithmetic(self, left, right, node):
        if left and right and left.get('type') == 'Literal' and right.get('type') == 'Literal':
            if isinstance(left.get('value'), str) and literal_kind(right.get('value')) == 'number':
                self.diagnostics.warning(
                    "Adding a string and a number may produce unexpected results", node)

    def check_numeric(self, left, right, node):
        for operand in (left, right):
            if operand and operand.get('type') == 'Literal' and isinstance(operand.get('value'), str):
                self.diagnostics.warning("Numeric operation on a string value", node)

    def is_always_truthy(self, node):
        if not node:
            return False
        if node.get('type') == 'Literal':
            return bool(node.get('regex')) or bool(node.get('value'))
        return node.get('type') == 'Identifier' and node.get('name') == 'true'

    def is_always_falsy(self, node):
        if not node:
            return False
        if node.get('type') == 'Literal':
            return not node.get('regex') and not node.get('value')
        return node.get('type') == 'Identifier' and node.get('name') in ('false', 'undefined', 'null')
