import pytest

from mintag.builtins import format_string, to_text
from mintag.errors import AttributeErrorEx, LookupErrorEx, NameErrorEx, SyntaxErrorEx, TypeErrorEx
from mintag.expression import Evaluator

ev = Evaluator()

def E(text, **scope):
    return ev(scope, None, text)


#####################################################################################################################################################

def test_001_arithmetic():
    assert E('1 + 2 * 3') == 7
    assert E('(1 + 2) * 3') == 9
    assert E('7 % 4') == 3
    assert E('10 / 4') == 2.5
    assert E('-2 + 5') == 3
    assert E('1.5') == 1.5
    assert E('2e3') == 2000.0
    assert E('n - 1', n = 10) == 9

def test_002_strings():
    assert E('"a" + 1') == 'a1'
    assert E("'it\\'s'") == "it's"
    assert E('"x\\ny"') == "x\ny"
    assert E('"a" + true') == 'atrue'

def test_003_logic():
    assert E('true && false') is False
    assert E('null || "x"') == 'x'
    assert E('not true') is False
    assert E('!0') is True
    assert E('a and b', a = 1, b = 2) == 2
    assert E('a or b', a = 0, b = 2) == 2
    assert E('x ? "y" : "n"', x = 0) == 'n'
    assert E('x ? "y" : "n"', x = [1]) == 'y'
    assert E('None') is None and E('undefined') is None

def test_004_comparisons():
    assert E('1 < 2') is True
    assert E('2 <= 1') is False
    assert E('"1" == 1') is False
    assert E('1 === 1.0') is True
    assert E('1 === "1"') is False
    assert E('1 !== "1"') is True
    assert E('"a" in xs', xs = ['a']) is True
    assert E('"b" not in xs', xs = ['a']) is True

def test_005_access():
    assert E('user.name', user = {'name': 'Ann'}) == 'Ann'
    assert E('a.b.c', a = {'b': {'c': 5}}) == 5
    assert E('items[1]', items = [1, 2]) == 2
    assert E('items[i + 1]', items = [1, 2], i = 0) == 2
    assert E('len(items)', items = [1, 2, 3]) == 3
    assert E('s.upper()', s = 'ab') == 'AB'
    assert E('f(1, 2)', f = lambda x, y: x + y) == 3

def test_006_collections():
    assert E('[1, "a", [true]]') == [1, 'a', [True]]
    assert E('{a: 1, "b c": [2], 3: null}') == {'a': 1, 'b c': [2], 3: None}
    assert E('{}') == {} and E('[]') == []
    assert E('JSON.stringify({a: [1, 2]})') == '{"a":[1,2]}'
    assert E('JSON.parse("[1]")') == [1]

def test_007_names():
    assert E('index', index = 1) == 1                 # names that start with a reserved word
    assert E('nota', nota = 2) == 2
    assert E('trueish', trueish = 3) == 3
    assert E('$x', **{'$x': 4}) == 4
    assert E('len', len = 5) == 5                     # scope shadows built-ins

def test_008_format():
    assert E('__format("%s=%j", "k", [1])') == 'k=[1]'
    assert format_string('%d%%', 5.7) == '5%'
    assert format_string('%s and %s', 'a') == 'a and %s'
    assert format_string('a', 1, 2) == 'a 1 2'
    assert format_string('%f', '1.5') == '1.5'

    assert to_text(None) == ''
    assert to_text(2.0) == '2'
    assert to_text(False) == 'false'

def test_009_errors():
    with pytest.raises(NameErrorEx, match = 'line 1, column 7'):
        ev({}, (1, 7), 'nope')
    with pytest.raises(SyntaxErrorEx):
        E('1 +')
    with pytest.raises(SyntaxErrorEx):
        E('   ')
    with pytest.raises(SyntaxErrorEx):
        E('a b')

    # lookup misses and type mismatches are positioned, with the original exception as the cause
    with pytest.raises(AttributeErrorEx, match = "'nick' in expression 'user.nick' at line 4, column 2") as ex_info:
        ev({'user': {'name': 'Ann'}}, (4, 2), 'user.nick')
    assert isinstance(ex_info.value.__cause__, AttributeError)
    with pytest.raises(LookupErrorEx, match = 'line 1, column 3') as ex_info:
        ev({'items': [1, 2]}, (1, 3), 'items[5]')
    assert isinstance(ex_info.value.__cause__, IndexError)
    with pytest.raises(LookupError):
        E('d["missing"]', d = {})
    with pytest.raises(TypeErrorEx):
        E('1 - "a"')

    # compiled expressions are cached by text
    assert ev.compile('a + 1') is ev.compile('a + 1')
