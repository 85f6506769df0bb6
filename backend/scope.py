"""
scope.py
Symbols and the lexical scope tree used by the semantic analyzer.
"""

GLOBAL = 'global'
FUNCTION = 'function'
BLOCK = 'block'
CLASS = 'class'

BLOCK_SCOPED = ('let', 'const')


class Symbol:
    def __init__(self, name, kind, inferred='undefined', initialized=False,
                 line=0, column=0, params=None, builtin=False):
        self.name = name
        self.kind = kind            # let | const | var | function | parameter | class
        self.inferred = inferred    # number | string | boolean | function | object | unknown | undefined
        self.initialized = initialized
        self.used = False
        self.line = line
        self.column = column
        self.params = params        # parameter names for callables, None otherwise
        self.return_kind = 'unknown' if params is not None else None
        self.builtin = builtin
        # set when the declaration itself was already reported
        self.has_error = False

    @property
    def callable(self):
        return self.builtin or self.inferred == 'function' or self.kind in ('function', 'class')

    def __repr__(self):
        return f"Symbol({self.name!r}, {self.kind}, {self.inferred})"


class Scope:
    def __init__(self, kind=BLOCK, parent=None):
        self.kind = kind
        self.parent = parent
        self.symbols = {}
        self.children = []

    def child(self, kind=BLOCK):
        scope = Scope(kind, self)
        self.children.append(scope)
        return scope

    def function_scope(self):
        """Nearest enclosing function-or-global scope (self included)."""
        scope = self
        while scope.parent is not None and scope.kind not in (FUNCTION, GLOBAL):
            scope = scope.parent
        return scope

    def define(self, symbol):
        """Bind symbol here, returning an error message on a conflicting redeclaration."""
        if symbol.kind in BLOCK_SCOPED:
            if symbol.name in self.symbols:
                return f"Cannot redeclare block-scoped variable '{symbol.name}'"
        elif symbol.kind == 'var':
            # var bindings live in the nearest function/global scope
            if symbol.name in self.function_scope().symbols:
                return f"Identifier '{symbol.name}' has already been declared"
        self.symbols[symbol.name] = symbol
        return None

    def lookup(self, name):
        scope = self
        while scope is not None:
            if name in scope.symbols:
                return scope.symbols[name]
            scope = scope.parent
        return None

    def lookup_local(self, name):
        return self.symbols.get(name)

    def walk(self):
        """Yield this scope and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()
