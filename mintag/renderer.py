"""
Recursive tree-to-markup renderer. Walks a pre-parsed template tree and produces the output string,
evaluating directives (if/else, while, for), mixins, includes, plugin calls and tags along the way.
"""

import logging

from mintag.builtin_html import resolve_tag
from mintag.builtins import json_dumps, to_text
from mintag.errors import InlineCodeEx, MissingElseEx, UnknownMixinEx, die
from mintag.grammar import MARK_CALL, MARK_INLINE, MARK_PLUGIN, MARK_TEXT, RE_EQ, RE_FOR, RE_FORMAT, RE_IF, FORMAT_FUNCTION
from mintag.structs import Group, enumerate_items, extend_scope

logger = logging.getLogger(__name__)


########################################################################################################################################################
#####
#####  RENDERER
#####

class Renderer:
    """
    Renders nodes of a template tree in the context of a Runtime, which provides configuration,
    the expression evaluator, the include resolver, plugins and the mixin registry.

    Every list of siblings is rendered with its own Group state. Once a scope-dependent construct
    (directive, expression, mixin, include, plugin) occurs in a group, subsequent tags of this group
    are no longer memoized; tags rendered earlier keep their memoized output in `node.html`.
    """

    def __init__(self, runtime):
        self.runtime = runtime
        self.config  = runtime.config
        self.escape  = runtime.config['escape_function']

    def render(self, node, scope, location = None):
        """Render all children of `node` and return the concatenated output."""
        text, _ = self.render_group(node, scope, location)
        return text

    def render_group(self, parent, scope, location):
        """Render children of `parent` as one sibling group. Return (text, dynamic)."""
        if not parent.children: return '', False

        group = Group()
        out = []
        for child in parent.children:
            out.append(self.render_node(child, group, scope, location))

        if group.awaiting_else:
            raise MissingElseEx("missing else", group.branch.pos)

        return ''.join(out), group.dynamic

    def render_node(self, node, group, scope, location):

        symbol = node.symbol or ''
        if symbol == 'else':
            return self._else(node, group, scope, location)

        # skip everything until the `else` of a failed if/else-if branch
        if group.awaiting_else: return ''

        if node.html is not None and node.html_config is self.config and self.config['compact']:
            return node.html

        directive = self.DIRECTIVES.get(symbol)
        if directive: return directive(self, node, group, scope, location)

        first = symbol[:1]
        if first == MARK_INLINE:    die(node.pos, 'Error', "No inline code!", InlineCodeEx)
        if first == MARK_PLUGIN:    return self._plugin(node, group, scope, location)
        if first == MARK_CALL:      return self._call(node, group, scope, location)
        if 'A' <= first <= 'Z':     return self._define(node, group)

        return self._tag(node, group, scope, location)

    def evaluate(self, scope, node, text):
        return self.runtime.evaluate(scope, node.pos, text)


    ###  CONTROL FLOW  ###

    def _if(self, node, group, scope, location):
        group.dynamic = True
        if self.evaluate(scope, node, node.content):
            return self.render(node, scope, location)

        group.awaiting_else = True
        group.branch = node
        return ''

    def _else(self, node, group, scope, location):
        if not group.awaiting_else: return ''
        group.dynamic = True

        match = RE_IF.match(node.content)
        if match and not self.evaluate(scope, node, node.content[match.end():]):
            return ''

        group.awaiting_else = False
        group.branch = None
        return self.render(node, scope, location)

    def _while(self, node, group, scope, location):
        group.dynamic = True
        out = []
        while self.evaluate(scope, node, node.content):
            out.append(self.render(node, scope, location))
        return ''.join(out)

    def _for(self, node, group, scope, location):
        group.dynamic = True

        match = RE_FOR.match(node.content)
        targets = [name.strip() for name in match.group('targets').split(',')] if match else []
        if not targets or not targets[0]:
            die(node.pos, 'TypeError', f"missing loop variable in 'for {node.content}'")

        collection = self.evaluate(scope, node, match.group('expr'))
        key_name  = targets[0]
        item_name = targets[1] if len(targets) > 1 and targets[1] else None

        out = []
        for key, item in enumerate_items(collection):
            local = {key_name: key}
            if item_name: local[item_name] = item
            out.append(self.render(node, extend_scope(scope, local), location))
        return ''.join(out)

    def _each(self, node, group, scope, location):
        die(node.pos, 'TypeError', "Each not supported (use for)")

    def _comment(self, node, group, scope, location):
        return '<!--' + node.content + '-->'

    def _text(self, node, group, scope, location):
        return ' ' + self._value(node, group, scope)


    ###  MIXINS, PLUGINS, INCLUDES  ###

    def _define(self, node, group):
        group.dynamic = True
        self.runtime.define_mixin(node.symbol, node, list(node.attrs))
        return ''

    def _call(self, node, group, scope, location):
        group.dynamic = True
        name  = node.symbol[1:]
        mixin = self.runtime.mixins.get(name)
        if mixin is None: raise UnknownMixinEx(f"Unknown mixin '{name}'", node.pos)

        # attribute keys of a call are expressions that compute positional arguments
        args = [self.evaluate(scope, node, expr) for expr in node.attrs]
        return self.render(mixin.body, mixin.bind(scope, args), location)

    def _plugin(self, node, group, scope, location):
        group.dynamic = True
        plugins = self.runtime.plugins
        plugin  = plugins.load(node.symbol[1:], node.pos)
        source  = self.runtime.resolve(node.content.strip(), location)
        return plugins.call(plugin, source, dict(node.attrs))

    def _include(self, node, group, scope, location):
        group.dynamic = True
        path    = node.content.strip()
        runtime = self.runtime

        if runtime.watcher is not None:
            runtime.watcher(location, path)

        # a pre-rendered tree is rendered in place; anything else is spliced as plain text
        if path.endswith(self.config['prerendered_ext']):
            tree, included = runtime.resolve(path, location, prerendered = True)
            logger.debug("including tree '%s' from %s", path, location)
            return self.render(tree, scope, included)

        logger.debug("including text '%s' from %s", path, location)
        return runtime.resolve(path, location)


    ###  TAGS  ###

    def _tag(self, node, group, scope, location):

        tag = resolve_tag(node.symbol)
        out = ['<', tag.tagname]

        if tag.id:          out += [' id="', tag.id, '"']
        if tag.classname:   out += [' class="', tag.classname, '"']

        attrs = [self._attr(key, value, node, group, scope) for key, value in node.attrs.items()]
        attrs = [attr for attr in attrs if attr]
        if attrs: out += [' ', ' '.join(attrs)]
        out.append('>')

        if node.content:
            out.append(self._value(node, group, scope))

        if node.children:
            body, dynamic = self.render_group(node, scope, location)
            if dynamic: group.dynamic = True
            out.append(body)

        if tag.tagname not in self.config['void_tags']:
            out += ['</', tag.tagname, '>']

        html = ''.join(out)
        if self.config['compact'] and not group.dynamic:
            node.html = html
            node.html_config = self.config
        return html

    def _attr(self, key, value, node, group, scope):
        """Render a single key=value attribute, or None if the attribute is to be dropped."""
        if isinstance(value, bool):
            return f'{key}="{key}"'
        if not value:
            return None if key == 'class' else f'{key}=""'

        group.dynamic = True
        value = self.evaluate(scope, node, value)
        if key == 'class' and not value: return None

        value = json_dumps(value)
        if key.startswith('data-'): value = self.escape(value)
        return f'{key}={value}'

    def _value(self, node, group, scope):
        """Resolve the `content` of a tag or text node: =expression, unescaped text, or literal text."""
        content = node.content
        if node.unescaped: return self.escape(content)

        match = RE_EQ.match(content)
        if not match: return content

        group.dynamic = True
        expr = content[match.end():]
        if RE_FORMAT.search(expr): expr = f"{FORMAT_FUNCTION}({expr})"
        return self.escape(to_text(self.evaluate(scope, node, expr)))


    DIRECTIVES = {
        'if':           _if,
        'while':        _while,
        'for':          _for,
        'each':         _each,
        'comment':      _comment,
        'include':      _include,
        MARK_TEXT:      _text,
    }
