"""
Grammar of the default expression language, and regex patterns that recognize
directive syntax inside the `content` of tree nodes.

The expression language is a small JavaScript-flavored subset, sufficient for attribute values,
embedded text expressions and directive tests:

    name  obj.member  obj[index]  fun(arg, ...)  [1, 2]  {key: value, 'k': v}
    - ! not  * / %  + -  == != === !== < <= > >= in  && and  || or  test ? yes : no

Literals: numbers, '...' and "..." strings with backslash escapes, true/false/null, True/False/None, undefined.
"""

import re


########################################################################################################################################################
#####
#####  DIRECTIVE PATTERNS
#####

MARK_TEXT    = '|'          # pure text node
MARK_PLUGIN  = ':'          # call of a syntax-transformer plugin:  :name
MARK_CALL    = '+'          # mixin invocation:  +Name
MARK_INLINE  = '-'          # inline code, not supported

RE_IF     = re.compile(r'^\s*if\b\s*')                                  # "else if ..." inside the content of an `else` node
RE_FOR    = re.compile(r'^\s*(?P<targets>.*?)\s*\bin\b\s*(?P<expr>.*)$', re.DOTALL)      # "key[, value] in expression"
RE_FORMAT = re.compile(r'["\'](.*?)["\'], ')                            # "fmt %s", args... to be wrapped up in __format()
RE_EQ     = re.compile(r'^\s*=\s*')                                     # leading "=" of an embedded expression
RE_SYMBOL = re.compile(r'([.#])([^.#]+)')                               # .class and #id parts of a shorthand tag symbol

FORMAT_FUNCTION = '__format'


########################################################################################################################################################
#####
#####  EXPRESSION GRAMMAR
#####

# Backslashes are doubled, because parsimonious evaluates the quoted regex patterns as Python string literals.
# Rules are built bottom-up in order of decreasing operator priority; see expression.ExpressionBuilder
# for the mapping of rules onto expression node classes.

grammar = r"""

expr         =  ws ternary ws

ternary      =  or_test ternary_tail?
ternary_tail =  ws "?" ws ternary ws ":" ws ternary
or_test      =  and_test or_tail*
or_tail      =  ws op_or ws and_test
and_test     =  not_test and_tail*
and_tail     =  ws op_and ws not_test
not_test     =  not_op / comparison
not_op       =  op_not ws not_test
comparison   =  arith_expr comp_tail*
comp_tail    =  ws op_comp ws arith_expr
arith_expr   =  term add_tail*
add_tail     =  ws op_additive ws term
term         =  unary mul_tail*
mul_tail     =  ws op_multiplic ws unary
unary        =  neg_op / factor
neg_op       =  "-" ws unary
factor       =  atom trailer_tail*
trailer_tail =  ws trailer

###  TAIL OPERATORS:  call, index, member access

trailer      =  call / index / member
call         =  "(" ws args? ws ")"
args         =  expr arg_tail*
arg_tail     =  "," expr
index        =  "[" expr "]"
member       =  "." ws name_id

###  ATOMS & COLLECTIONS

atom         =  literal / var_use / subexpr / list / dict
subexpr      =  "(" expr ")"
list         =  "[" ws items? ws "]"
items        =  expr item_tail*
item_tail    =  "," expr
dict         =  "{" ws pairs? ws "}"
pairs        =  pair pair_tail*
pair_tail    =  "," pair
pair         =  ws dict_key ws ":" expr
dict_key     =  string / number / name_id
var_use      =  name_id ""                  # the empty literal keeps this rule from being merged with name_id

literal      =  number / string / boolean / none
number       =  ~"((\\.\\d+)|(\\d+(\\.\\d*)?))([eE][+-]?\\d+)?"
string       =  ~'"(?:[^"\\\\]|\\\\.)*"' / ~"'(?:[^'\\\\]|\\\\.)*'"
boolean      =  ~"(true|false|True|False)\\b"
none         =  ~"(null|None|undefined)\\b"

###  OPERATORS

op_or        =  "||" / ~"or\\b"
op_and       =  "&&" / ~"and\\b"
op_not       =  ~"not\\b" / "!"
op_comp      =  ~"===|!==|==|!=|<=|>=|<|>|not\\s+in\\b|in\\b"
op_additive  =  "+" / "-"
op_multiplic =  "*" / "/" / "%"

###  IDENTIFIERS & WHITESPACE

name_id      =  !name_reserved ~"[a-z_$][a-z0-9_$]*"i
name_reserved=  ~"(and|or|not|in|true|false|null|True|False|None|undefined)\\b"
ws           =  ~"\\s*"

"""
