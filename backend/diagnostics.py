"""
diagnostics.py
Error/warning records shared by the analysis stages.
"""

ERROR = 'error'
WARNING = 'warning'


def node_position(node):
    """(line, column) of an ESTree node, (0, 0) when it carries none."""
    if not node:
        return 0, 0
    loc = node.get('loc')
    if loc and loc.get('start'):
        start = loc['start']
        return start.get('line') or 0, start.get('column') or 0
    return node.get('line') or 0, node.get('column') or 0


class Diagnostic:
    def __init__(self, severity, message, line=0, column=0, node_kind='unknown', fatal=False):
        self.severity = severity
        self.message = message
        self.line = line
        self.column = column
        self.node_kind = node_kind
        self.fatal = fatal

    def as_dict(self):
        return {
            'type': self.severity,
            'message': self.message,
            'line': self.line,
            'column': self.column,
            'node': self.node_kind,
        }

    def __repr__(self):
        return f"{self.severity} (line {self.line}, column {self.column}): {self.message}"


class Diagnostics:
    """Append-only list of diagnostics produced by one analysis run."""

    def __init__(self):
        self.items = []

    def error(self, message, node=None, fatal=False):
        self._add(ERROR, message, node, fatal)

    def warning(self, message, node=None):
        self._add(WARNING, message, node, False)

    def _add(self, severity, message, node, fatal):
        line, column = node_position(node)
        kind = node.get('type', 'unknown') if node else 'unknown'
        self.items.append(Diagnostic(severity, message, line, column, kind, fatal))

    @property
    def errors(self):
        return [d for d in self.items if d.severity == ERROR]

    @property
    def warnings(self):
        return [d for d in self.items if d.severity == WARNING]

    @property
    def fatal_count(self):
        return sum(1 for d in self.items if d.fatal)

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)
