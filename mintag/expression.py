"""
Default expression evaluator: parses expression strings with a parsimonious grammar,
converts the parse tree into a tree of expression nodes, and evaluates it against a scope.

Any callable with the signature evaluator(scope, pos, text) can replace Evaluator in a Runtime.
"""

import operator
from collections import ChainMap
from collections.abc import Mapping

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import NodeVisitor

from mintag.builtins import BUILTIN_VARS, to_text
from mintag.errors import AttributeErrorEx, LookupErrorEx, MintagError, NameErrorEx, SyntaxErrorEx, TypeErrorEx
from mintag.grammar import grammar


########################################################################################################################################################
#####
#####  EXPRESSION NODES
#####

class Expression:
    """Base class for all nodes of a compiled expression. `ns` is a mapping of names visible to the expression."""

    def evaluate(self, ns):
        raise NotImplementedError

class Literal(Expression):
    def __init__(self, value):  self.value = value
    def evaluate(self, ns):     return self.value

class Variable(Expression):
    """Occurrence (use) of a variable."""
    def __init__(self, name):
        self.name = name
    def evaluate(self, ns):
        try:
            return ns[self.name]
        except KeyError:
            raise NameErrorEx(f"variable '{self.name}' is not defined") from None


###  TAIL OPERATORS  ###

class Tail:
    """Tail operators implement apply() instead of evaluate()."""
    def apply(self, obj, ns):
        raise NotImplementedError

class Call(Tail):
    def __init__(self, args):   self.args = args
    def apply(self, obj, ns):
        return obj(*[arg.evaluate(ns) for arg in self.args])

class Index(Tail):
    def __init__(self, index):  self.index = index
    def apply(self, obj, ns):
        return obj[self.index.evaluate(ns)]

class Member(Tail):
    """Member access: a key of a mapping if present, an attribute otherwise."""
    def __init__(self, name):   self.name = name
    def apply(self, obj, ns):
        if isinstance(obj, Mapping) and self.name in obj:
            return obj[self.name]
        return getattr(obj, self.name)

class Factor(Expression):
    """An atom followed by a chain of tail operators: () [] ."""
    def __init__(self, atom, tail):
        self.atom = atom
        self.tail = tail
    def evaluate(self, ns):
        value = self.atom.evaluate(ns)
        for op in self.tail:
            value = op.apply(value, ns)
        return value


###  OPERATORS  ###

def _add(x, y):
    "x + y, with string concatenation when either operand is a string."
    if isinstance(x, str) or isinstance(y, str):
        return to_text(x) + to_text(y)
    return x + y

def _strict_eq(x, y):
    numbers = (int, float)
    if isinstance(x, numbers) and isinstance(y, numbers) and not isinstance(x, bool) and not isinstance(y, bool):
        return x == y
    return type(x) is type(y) and x == y

OPERATORS = {
    '+':        _add,
    '-':        operator.sub,
    '*':        operator.mul,
    '/':        operator.truediv,
    '%':        operator.mod,
    '==':       operator.eq,
    '!=':       operator.ne,
    '===':      _strict_eq,
    '!==':      lambda x, y: not _strict_eq(x, y),
    '<':        operator.lt,
    '<=':       operator.le,
    '>':        operator.gt,
    '>=':       operator.ge,
    'in':       lambda x, d: x in d,            # operator.contains() takes operands in reversed order
    'not in':   lambda x, d: x not in d,
}

class Chain(Expression):
    """A chain of binary operators of the same priority, applied left to right: x1 OP1 x2 OP2 x3 ..."""
    def __init__(self, head, tail):
        self.head = head
        self.tail = [(OPERATORS[op], expr) for op, expr in tail]
    def evaluate(self, ns):
        res = self.head.evaluate(ns)
        for op, expr in self.tail:
            res = op(res, expr.evaluate(ns))
        return res

class Neg(Expression):
    def __init__(self, expr):   self.expr = expr
    def evaluate(self, ns):     return -self.expr.evaluate(ns)

class Not(Expression):
    def __init__(self, expr):   self.expr = expr
    def evaluate(self, ns):     return not self.expr.evaluate(ns)

class And(Expression):
    "Lazy evaluation: the first false item is returned without evaluation of subsequent items."
    def __init__(self, items):  self.items = items
    def evaluate(self, ns):
        res = None
        for expr in self.items:
            res = expr.evaluate(ns)
            if not res: return res
        return res

class Or(Expression):
    "Lazy evaluation: the first true item is returned without evaluation of subsequent items."
    def __init__(self, items):  self.items = items
    def evaluate(self, ns):
        res = None
        for expr in self.items:
            res = expr.evaluate(ns)
            if res: return res
        return res

class IfElse(Expression):
    """test ? yes : no ... only the selected branch undergoes evaluation."""
    def __init__(self, test, yes, no):
        self.test, self.yes, self.no = test, yes, no
    def evaluate(self, ns):
        return self.yes.evaluate(ns) if self.test.evaluate(ns) else self.no.evaluate(ns)


###  COLLECTIONS  ###

class ListExpr(Expression):
    def __init__(self, items):  self.items = items
    def evaluate(self, ns):     return [item.evaluate(ns) for item in self.items]

class DictExpr(Expression):
    """Object literal; keys are identifiers or literals and are never evaluated as variables."""
    def __init__(self, pairs):  self.pairs = pairs
    def evaluate(self, ns):     return {key: value.evaluate(ns) for key, value in self.pairs}


########################################################################################################################################################
#####
#####  PARSE TREE -> EXPRESSION NODES
#####

def _optional(visited):
    """Value of an optional x? element after visiting: the child's value, or None when nothing was matched."""
    return visited[0] if isinstance(visited, list) and visited else None

def _repeated(visited):
    """Values of a repeated x* element after visiting, as a list."""
    return visited if isinstance(visited, list) else []

def _unquote(literal):
    body = literal[1:-1]
    if '\\' not in body: return body
    escapes = {'n': '\n', 't': '\t', 'r': '\r', '0': '\0'}
    out, chars = [], iter(body)
    for char in chars:
        if char == '\\':
            char = next(chars, '')
            char = escapes.get(char, char)
        out.append(char)
    return ''.join(out)


class ExpressionBuilder(NodeVisitor):
    """Rewrites a parsimonious parse tree into Expression nodes. Single-element chains are reduced to the element itself."""

    unwrapped_exceptions = (MintagError,)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    # root & operator chains

    def visit_expr(self, node, visited):
        _, expr, _ = visited
        return expr

    def visit_ternary(self, node, visited):
        test, tail = visited
        tail = _optional(tail)
        if tail is None: return test
        return IfElse(test, *tail)

    def visit_ternary_tail(self, node, visited):
        _, _, _, yes, _, _, _, no = visited
        return yes, no

    def visit_or_test(self, node, visited):
        head, tail = visited
        tail = _repeated(tail)
        return Or([head] + tail) if tail else head

    def visit_and_test(self, node, visited):
        head, tail = visited
        tail = _repeated(tail)
        return And([head] + tail) if tail else head

    def visit_or_tail(self, node, visited):     return visited[3]
    def visit_and_tail(self, node, visited):    return visited[3]

    def visit_not_test(self, node, visited):    return visited[0]
    def visit_not_op(self, node, visited):      return Not(visited[2])
    def visit_unary(self, node, visited):       return visited[0]
    def visit_neg_op(self, node, visited):      return Neg(visited[2])

    def _chain(self, node, visited):
        head, tail = visited
        tail = _repeated(tail)
        return Chain(head, tail) if tail else head

    visit_comparison = _chain
    visit_arith_expr = _chain
    visit_term       = _chain

    def _op_tail(self, node, visited):
        _, op, _, expr = visited
        return op, expr

    visit_comp_tail  = _op_tail
    visit_add_tail   = _op_tail
    visit_mul_tail   = _op_tail

    def visit_op_comp(self, node, visited):     return ' '.join(node.text.split())          # "not   in" -> "not in"
    def visit_op_additive(self, node, visited): return node.text
    def visit_op_multiplic(self, node, visited): return node.text

    # factors & tail operators

    def visit_factor(self, node, visited):
        atom, tail = visited
        tail = _repeated(tail)
        return Factor(atom, tail) if tail else atom

    def visit_trailer_tail(self, node, visited):    return visited[1]
    def visit_trailer(self, node, visited):         return visited[0]

    def visit_call(self, node, visited):
        args = _optional(visited[2])
        return Call(args or [])

    def visit_args(self, node, visited):
        head, tail = visited
        return [head] + _repeated(tail)

    def visit_arg_tail(self, node, visited):        return visited[1]
    def visit_index(self, node, visited):           return Index(visited[1])
    def visit_member(self, node, visited):          return Member(visited[2])

    # atoms & collections

    def visit_atom(self, node, visited):            return visited[0]
    def visit_subexpr(self, node, visited):         return visited[1]
    def visit_var_use(self, node, visited):         return Variable(visited[0])
    def visit_name_id(self, node, visited):         return node.text

    def visit_list(self, node, visited):
        return ListExpr(_optional(visited[2]) or [])

    visit_items     = visit_args
    visit_item_tail = visit_arg_tail

    def visit_dict(self, node, visited):
        return DictExpr(_optional(visited[2]) or [])

    visit_pairs     = visit_args
    visit_pair_tail = visit_arg_tail

    def visit_pair(self, node, visited):
        _, key, _, _, value = visited
        return key, value

    def visit_dict_key(self, node, visited):
        key = visited[0]
        return key.value if isinstance(key, Literal) else key

    # literals

    def visit_literal(self, node, visited):         return visited[0]
    def visit_string(self, node, visited):          return Literal(_unquote(node.text))
    def visit_boolean(self, node, visited):         return Literal(node.text in ('true', 'True'))
    def visit_none(self, node, visited):            return Literal(None)

    def visit_number(self, node, visited):
        text = node.text
        if '.' in text or 'e' in text or 'E' in text:
            return Literal(float(text))
        return Literal(int(text))


########################################################################################################################################################
#####
#####  EVALUATOR
#####

class Evaluator:
    """
    Default expression evaluator of a Runtime. Compiled expressions are cached by their source text,
    so that repeated renders of a template parse every expression only once.
    The cache is unbounded and grows by one entry per distinct expression text, so an application that evaluates
    generated expression strings should create a new Evaluator once in a while to discard it.
    Names are looked up in the scope first, then in built-in variables.
    """

    parser = Grammar(grammar)

    def __init__(self, builtins = None):
        self.builtins = dict(BUILTIN_VARS)
        if builtins: self.builtins.update(builtins)
        self.compiled = {}

    def __call__(self, scope, pos, text):
        return self.evaluate(scope, pos, text)

    def compile(self, text, pos = None):
        """Parse `text` into an Expression tree, or return a cached one."""
        expr = self.compiled.get(text)
        if expr is not None: return expr

        if not text or not text.strip():
            raise SyntaxErrorEx("empty expression", pos)
        try:
            tree = self.parser.parse(text)
        except ParseError as ex:
            raise SyntaxErrorEx(f"invalid expression {text!r} (column {ex.column()})", pos) from None

        expr = self.compiled[text] = ExpressionBuilder().visit(tree)
        return expr

    def evaluate(self, scope, pos, text):
        expr = self.compile(text, pos)
        try:
            return expr.evaluate(ChainMap(scope, self.builtins))
        except NameErrorEx as ex:
            raise NameErrorEx(ex.args[0], pos) from None
        except MintagError:
            raise
        except (LookupError, AttributeError, TypeError) as ex:
            # lookup misses and type mismatches get the position of the expression; the original stays as __cause__
            if isinstance(ex, LookupError):      cls = LookupErrorEx
            elif isinstance(ex, AttributeError): cls = AttributeErrorEx
            else:                                cls = TypeErrorEx
            raise cls(f"{type(ex).__name__}: {ex} in expression {text!r}", pos) from ex
