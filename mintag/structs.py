"""
Data structures shared by the renderer: nodes of a pre-parsed template tree, mixin definitions,
per-group render state and scope utilities.
"""

from collections.abc import Mapping


########################################################################################################################################################
#####
#####  TREE NODES
#####

class Node:
    """
    A single element of a parsed template tree: tag, directive, mixin definition or call, text, comment,
    include or plugin call. Nodes are produced by an external parser and treated as read-only during rendering,
    except for `html`, which holds the memoized output of a static node.
    """
    symbol    = None        # tag name, shorthand .class/#id token, directive keyword, or a prefixed symbol: :name, +name, Name
    content   = ''          # directive expression, plain text, or a path of include/plugin source, depending on node kind
    attrs     = None        # dict {name: True/False or expression string}; order of keys is significant
    children  = None        # list of child Nodes
    unescaped = False       # if True, `content` bypasses expression evaluation and is escaped once when emitted
    pos       = None        # source position, opaque; passed through to the evaluator and error messages
    html      = None        # memoized output string; once set, it's returned on every subsequent render of this node by the same Runtime
    html_config = None      # config dict of the Runtime that produced `html`; other Runtimes render the node anew

    def __init__(self, symbol = '', content = '', attrs = None, children = None, unescaped = False, pos = None):
        self.symbol    = symbol
        self.content   = content or ''
        self.attrs     = dict(attrs or {})
        self.children  = list(children or [])
        self.unescaped = unescaped
        self.pos       = pos

    @classmethod
    def from_dict(cls, data):
        """
        Build a tree from its plain-dict representation, as produced by an external parser.
        Both the original key names (tagOrSymbol, attributes) and the Python ones (symbol, attrs) are accepted.
        A list of dicts is wrapped in a synthetic root node.
        """
        if isinstance(data, cls): return data
        if isinstance(data, (list, tuple)):
            return cls(children = [cls.from_dict(child) for child in data])

        symbol = data.get('tagOrSymbol', data.get('symbol', ''))
        attrs  = data.get('attributes', data.get('attrs'))
        children = [cls.from_dict(child) for child in data.get('children') or ()]
        return cls(symbol, data.get('content', ''), attrs, children, bool(data.get('unescaped')), data.get('pos'))

    def to_dict(self):
        data = {'tagOrSymbol': self.symbol, 'content': self.content, 'attributes': dict(self.attrs),
                'children': [child.to_dict() for child in self.children]}
        if self.unescaped: data['unescaped'] = True
        if self.pos is not None: data['pos'] = self.pos
        return data

    def __repr__(self):
        return "<Node %r %r (%s children)>" % (self.symbol, self.content, len(self.children))


class Mixin:
    """Definition of a mixin: the defining node, whose children make up the body, and ordered parameter names."""

    def __init__(self, body, params):
        self.body   = body
        self.params = list(params)

    def bind(self, scope, args):
        """A new scope layered on `scope`, with positional `args` assigned to parameters; extra args are dropped."""
        return extend_scope(scope, dict(zip(self.params, args)))


class Group:
    """
    State of rendering of a single sibling group: the list of children of one parent node.
    Created anew for every group, never shared between recursive calls.
    """
    dynamic       = False       # True after any scope-dependent construct was rendered in this group, disables memoization
    awaiting_else = False       # True when an if/else-if test failed and subsequent nodes are skipped until an `else`
    branch        = None        # the `if` node whose chain is awaiting an `else`; for error reporting


########################################################################################################################################################
#####
#####  SCOPE
#####

def extend_scope(scope, bindings):
    """Return a shallow copy of `scope` extended with `bindings`; the original mapping is never modified."""
    extended = dict(scope)
    extended.update(bindings)
    return extended

def enumerate_items(collection):
    """
    Yield (key, value) pairs of a collection in its natural order: mapping keys with their values,
    or indices with items of any other iterable.
    """
    if isinstance(collection, Mapping):
        yield from collection.items()
    elif collection is not None:
        yield from enumerate(collection)
