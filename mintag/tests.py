"""
Run:
$
$  pytest -v mintag/tests.py mintag/test_expression.py

"""

import pytest
from types import SimpleNamespace

from mintag import DictLoader, DependencyTracker, Node, Plugin, Runtime, render
from mintag.builtin_html import resolve_tag, TagSymbol
from mintag.errors import *
from mintag.expression import Evaluator


#####################################################################################################################################################
#####
#####  UTILITIES
#####

def N(symbol, content = '', *children, attrs = None, unescaped = False, pos = None):
    """Shorthand for building a tree node."""
    return Node(symbol, content, attrs, children, unescaped, pos)

def T(*children):
    """Root node of a template tree."""
    return Node(children = children)

def R(*nodes, scope = None, location = None, **config):
    """Render top-level `nodes` in a new Runtime."""
    return Runtime(**config).render(T(*nodes), scope, location)


#####################################################################################################################################################
#####
#####  TESTS
#####

def test_001_basic():
    assert R() == ""
    assert R(N('|', 'Ala')) == " Ala"
    assert R(N('p', 'Ala'), N('br')) == "<p>Ala</p><br>"
    assert R(N('div', '', N('span', 'x'), N('span', 'y'))) == "<div><span>x</span><span>y</span></div>"
    assert R(N('comment', ' note ')) == "<!-- note -->"
    assert R(N('p', 'a < b')) == "<p>a < b</p>"                   # literal text is emitted as is

def test_002_tag_symbols():
    assert R(N('div#main.a.b')) == '<div id="main" class="a b"></div>'
    assert R(N('.note')) == '<div class="note"></div>'
    assert R(N('#x')) == '<div id="x"></div>'
    assert R(N('span.a#b#c')) == '<span id="c" class="a"></span>'

    assert resolve_tag('p') == TagSymbol('p', None, None)
    assert resolve_tag('.a.b') == TagSymbol('div', None, 'a b')

def test_003_attributes():
    assert R(N('input', attrs = {'disabled': True})) == '<input disabled="disabled">'
    assert R(N('input', attrs = {'checked': False})) == '<input checked="checked">'
    assert R(N('input', attrs = {'type': "'text'", 'size': '10'})) == '<input type="text" size=10>'
    assert R(N('img', attrs = {'alt': ''})) == '<img alt="">'
    assert R(N('p', attrs = {'b': True, 'a': '1'})) == '<p b="b" a=1></p>'
    assert R(N('p', attrs = {'title': "'a' + n"}), scope = {'n': 1}) == '<p title="a1"></p>'

    # empty class is dropped
    assert R(N('p', attrs = {'class': "''"})) == '<p></p>'
    assert R(N('p', attrs = {'class': 'cls'}), scope = {'cls': None}) == '<p></p>'
    assert R(N('p', attrs = {'class': 'cls'}), scope = {'cls': 'big'}) == '<p class="big"></p>'

    # data-* attributes are JSON-serialized, then escaped
    assert R(N('div', attrs = {'data-x': '{a:1}'})) == '<div data-x={&#34;a&#34;:1}></div>'
    assert R(N('div', attrs = {'x': '{a:1}'})) == '<div x={"a":1}></div>'

def test_004_content():
    assert R(N('p', '= x'), scope = {'x': '<b>'}) == "<p>&lt;b&gt;</p>"
    assert R(N('p', '=x'), scope = {'x': None}) == "<p></p>"
    assert R(N('p', '= flag'), scope = {'flag': True}) == "<p>true</p>"
    assert R(N('p', '= n * 2'), scope = {'n': 1.5}) == "<p>3</p>"
    assert R(N('|', '= name'), scope = {'name': 'World'}) == " World"

    # "fmt", args... is a call of the formatting function
    assert R(N('p', '= "%s-%d", a, b'), scope = {'a': 'x', 'b': 3}) == "<p>x-3</p>"

    # unescaped content is escaped once, never evaluated
    assert R(N('p', '<i>', unescaped = True)) == "<p>&lt;i&gt;</p>"
    assert R(N('p', '= x', unescaped = True)) == "<p>= x</p>"

def test_005_void_tags():
    assert R(N('br'), N('img', attrs = {'src': "'a.png'"})) == '<br><img src="a.png">'
    assert R(N('hr', 'text')) == '<hr>text'
    assert R(N('x'), N('br'), void_tags = {'x'}) == '<x><br></br>'

def test_006_if():
    def chain(a, b):
        return [N('if', a, N('|', 'A')), N('else', 'if ' + b, N('|', 'B')), N('else', '', N('|', 'C'))]

    assert R(*chain('false', 'true')) == " B"
    assert R(*chain('true', 'true')) == " A"
    assert R(*chain('false', 'false')) == " C"
    assert R(N('if', 'x > 1', N('|', 'yes')), N('else', '', N('|', 'no')), scope = {'x': 5}) == " yes"

    # nodes between a failed `if` and its `else` are skipped
    assert R(N('if', '0', N('|', 'A')), N('p', 'x'), N('else', '', N('|', 'C'))) == " C"

    # an `else` with no pending `if` renders nothing
    assert R(N('else', '', N('|', 'C')), N('|', 'D')) == " D"

    with pytest.raises(MissingElseEx, match = 'missing else'):
        R(N('if', 'false', N('|', 'A')), N('else', 'if false', N('|', 'B')))

    with pytest.raises(MissingElseEx, match = 'at line 3, column 5'):
        R(N('if', '0', pos = (3, 5)))

    # missing else is detected in nested groups, too
    with pytest.raises(MissingElseEx):
        R(N('div', '', N('if', 'false')))

def test_007_for():
    out = R(N('for', 'a, b in {x:1, y:2}', N('|', '= a'), N('|', '= b')))
    assert out == " x 1 y 2"

    # loop variables don't leak to siblings
    out = R(N('for', 'a, b in {x:1, y:2}', N('|', '= a')), N('|', '= a'), scope = {'a': 'outer'})
    assert out == " x y outer"

    # iterables are enumerated with indices
    assert R(N('for', 'i, v in items', N('|', '= i + ":" + v')), scope = {'items': ['p', 'q']}) == " 0:p 1:q"
    assert R(N('for', 'i in items', N('|', '= i')), scope = {'items': ['p', 'q']}) == " 0 1"
    assert R(N('for', 'index in range(2)', N('|', '= index'))) == " 0 1"
    assert R(N('for', 'x in []', N('|', 'never'))) == ""

    with pytest.raises(TypeErrorEx):
        R(N('for', ' in items'), scope = {'items': []})
    with pytest.raises(TypeError):
        R(N('for', 'items'), scope = {'items': []})

    with pytest.raises(TypeErrorEx, match = r'Each not supported \(use for\)'):
        R(N('each', 'x in items'), scope = {'items': []})

def test_008_while():
    calls = iter([True, True, False])
    scope = {'more': lambda: next(calls), 'n': 'a'}
    assert R(N('while', 'more()', N('|', '= n')), scope = scope) == " a a"

    class Counter:
        value = 0
        def step(self):
            self.value += 1
            return self.value <= 3

    counter = Counter()
    assert R(N('while', 'c.step()', N('|', '= c.value')), scope = {'c': counter}) == " 1 2 3"
    assert counter.value == 4

def test_009_mixins():
    greet = N('Greet', '', N('|', 'Hello'), N('|', '= name'), attrs = {'name': True})
    call  = N('+Greet', attrs = {'"World"': True})
    assert R(greet, call) == " Hello World"

    # arguments are evaluated in the caller's scope; extra ones are dropped, missing ones stay unbound
    pair = N('Pair', '', N('|', '= a'), N('|', '= b'), attrs = {'a': True, 'b': True})
    assert R(pair, N('+Pair', attrs = {'x': True, 'x + 1': True, '99': True}), scope = {'x': 1}) == " 1 2"
    assert R(pair, N('+Pair', attrs = {'x': True}), scope = {'x': 1, 'b': 'caller'}) == " 1 caller"

    # a definition renders nothing and can be overridden
    alt = N('Greet', '', N('|', 'Hi'), attrs = {'name': True})
    assert R(greet, alt, call) == " Hi"

    with pytest.raises(UnknownMixinEx, match = 'Unknown mixin'):
        R(N('+Nope'))
    with pytest.raises(TypeError):
        R(N('+Nope'))

def test_010_mixins_runtime():
    runtime = Runtime()
    runtime.render(T(N('Box', '', N('b', '= v'), attrs = {'v': True})))
    assert 'Box' in runtime.mixins
    assert runtime.render(T(N('+Box', attrs = {'"x"': True}))) == "<b>x</b>"

    # mixins are never shared between runtimes
    with pytest.raises(UnknownMixinEx):
        Runtime().render(T(N('+Box', attrs = {'"x"': True})))

def test_011_inline_code():
    with pytest.raises(InlineCodeEx, match = 'No inline code!'):
        R(N('-', 'var x = 1'))
    with pytest.raises(MintagError):
        R(N('p'), N('-x'))

def test_012_plugins():

    class Upper(Plugin):
        name = 'upper'
        def render(self, source, attrs):
            return source.upper() + ''.join(sorted(attrs))

    loader = DictLoader({'notes/a.txt': 'hello'})
    out = R(N(':upper', 'a.txt', attrs = {'y': True, 'x': True}), location = 'notes/index.min', loader = loader, plugins = {'upper': Upper})
    assert out == "HELLOxy"

    runtime = Runtime(loader = loader)
    runtime.register_plugin(lambda source, attrs: SimpleNamespace(body = '<b>' + source + '</b>'), 'bold')
    runtime.register_plugin(lambda source, attrs: {'body': source[::-1]}, 'rev')
    assert runtime.render(T(N(':bold', 'notes/a.txt'), N(':rev', 'notes/a.txt'))) == "<b>hello</b>olleh"

    with pytest.raises(PluginNotInstalledEx, match = 'mintag-md not installed'):
        R(N(':md', 'a.txt'), loader = loader)
    with pytest.raises(PluginNotInstalledEx, match = 'mt-md not installed'):
        R(N(':md', 'a.txt'), loader = loader, plugin_prefix = 'mt-')

    # a mapping result must have a body
    runtime.register_plugin(lambda source, attrs: {'html': source}, 'nobody')
    with pytest.raises(TypeErrorEx, match = 'instead of a string'):
        runtime.render(T(N(':nobody', 'notes/a.txt')))

def test_013_includes():
    loader = DictLoader({
        'parts/footer.html':    '<footer/>',
        'parts/item.min':       [{'tagOrSymbol': 'li', 'content': '= label'}, {'tagOrSymbol': 'include', 'content': 'sub.html'}],
        'parts/sub.html':       '<i>sub</i>',
    })
    tracker = DependencyTracker()

    out = R(N('include', 'footer.html'), location = 'parts/page.min', loader = loader, watcher = tracker)
    assert out == "<footer/>"
    assert tracker.dependencies == {'parts/page.min': {'footer.html'}}

    # pre-rendered trees are rendered in the current scope, at their own location
    out = R(N('ul', '', N('include', 'item.min')), scope = {'label': 'X'}, location = 'parts/page.min', loader = loader, watcher = tracker)
    assert out == "<ul><li>X</li><i>sub</i></ul>"
    assert tracker.dependencies['parts/item.min'] == {'sub.html'}
    assert tracker.paths() == {'footer.html', 'item.min', 'sub.html'}

    with pytest.raises(IncludeNotFoundEx):
        R(N('include', 'nope.html'), loader = loader)
    with pytest.raises(IncludeNotFoundEx):
        R(N('include', 'footer.html'))

    # a plain-text include can't be used as a pre-rendered tree
    loader['page.min'] = 'plain text'
    with pytest.raises(TypeErrorEx):
        R(N('include', 'page.min'), loader = loader)

def test_014_memoization():
    static = N('p', 'static')
    tree = T(static)
    runtime = Runtime()
    assert runtime.render(tree) == "<p>static</p>"
    assert static.html == "<p>static</p>"

    # a memoized node is returned as is, without rendering again
    static.content = 'changed'
    static.children = [N('-')]
    assert runtime.render(tree) == "<p>static</p>"

    # no memoization after a dynamic sibling, nor for nodes with dynamic content or descendants
    first, late = N('p', 'first'), N('p', 'late')
    dyn_attr = N('p', attrs = {'a': 'x'})
    parent = N('div', '', N('p', '= x'))
    R(first, N('|', '= x'), late, scope = {'x': 1})
    R(dyn_attr, scope = {'x': 1})
    R(parent, scope = {'x': 1})
    assert first.html == "<p>first</p>"
    assert late.html is None
    assert dyn_attr.html is None
    assert parent.html is None

    # static nodes inside a dynamic body are memoized on their own
    inner = N('b', 'bold')
    R(N('if', 'true', inner))
    assert inner.html == "<b>bold</b>"

    # memoization is switched off with compact=False
    plain = N('p', 'plain')
    R(plain, compact = False)
    assert plain.html is None

    # memoized output belongs to the Runtime that produced it
    shared = T(N('x'))
    assert Runtime().render(shared) == "<x></x>"
    assert Runtime(void_tags = {'x'}).render(shared) == "<x>"

def test_015_memoization_evaluator():
    calls = []
    evaluator = Evaluator()
    def counting(scope, pos, text):
        calls.append(text)
        return evaluator(scope, pos, text)

    tree = T(N('div', '', N('p', 'static')), N('p', '= x'))
    runtime = Runtime(evaluator = counting)
    assert runtime.render(tree, {'x': 1}) == "<div><p>static</p></div><p>1</p>"
    assert runtime.render(tree, {'x': 2}) == "<div><p>static</p></div><p>2</p>"
    assert calls == ['x', 'x']

def test_016_collaborators():
    # any callable can serve as an expression evaluator
    evaluator = lambda scope, pos, text: scope[text.strip()]
    out = R(N('if', 'flag', N('|', '= word')), N('else', '', N('|', 'no')), scope = {'flag': True, 'word': 'yes'}, evaluator = evaluator)
    assert out == " yes"

    # ... and as an include resolver
    resolver = lambda path, location = None, prerendered = False: f"[{path}@{location}]"
    assert render(T(N('include', 'a.txt')), location = 'main', resolver = resolver) == "[a.txt@main]"

    # errors of collaborators propagate unchanged
    def failing(scope, pos, text): raise ValueError(text)
    with pytest.raises(ValueError):
        R(N('p', '= x'), evaluator = failing)

    assert R(N('p', '= x'), scope = {'x': '<b'}, escape_function = lambda s: s.replace('<', '[')) == "<p>[b</p>"

def test_017_errors():
    assert str(MintagError("boom", (1, 2))) == "boom at line 1, column 2"
    assert str(MintagError("boom", {'line': 4, 'column': 1})) == "boom at line 4, column 1"
    assert str(MintagError("boom", "main.tpl")) == "boom at main.tpl"
    assert str(MintagError("boom")) == "boom"

    with pytest.raises(TypeErrorEx) as ex_info:
        die((1, 1), 'TypeError', "bad")
    assert ex_info.value.kind == 'TypeError'
    assert ex_info.value.pos == (1, 1)
    with pytest.raises(MintagError) as ex_info:
        die(None, 'Error', "bad")
    assert ex_info.value.kind == 'Error'

    with pytest.raises(NameErrorEx, match = "'missing' is not defined at line 2, column 1"):
        R(N('p', '= missing', pos = (2, 1)))

    with pytest.raises(TypeError):
        Runtime(no_such_option = 1)

    # lookup misses in embedded expressions carry the position of the node
    with pytest.raises(MintagError, match = "at line 4, column 2"):
        R(N('p', '= user.nick', pos = (4, 2)), scope = {'user': {'name': 'Ann'}})
    with pytest.raises(LookupErrorEx, match = "at line 5, column 1"):
        R(N('p', '= items[5]', pos = (5, 1)), scope = {'items': []})

def test_018_dict_trees():
    tree = {'tagOrSymbol': '', 'children': [
        {'tagOrSymbol': 'p', 'content': 'x', 'attributes': {'title': "'a'"}},
        {'symbol': 'input', 'attrs': {'disabled': True}},
    ]}
    assert render(tree) == '<p title="a">x</p><input disabled="disabled">'
    assert render(tree['children']) == '<p title="a">x</p><input disabled="disabled">'

    node = Node.from_dict(tree)
    assert node.children[1].symbol == 'input'
    assert Node.from_dict(node.to_dict()).children[0].attrs == {'title': "'a'"}
