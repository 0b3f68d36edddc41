"""
Built-in variables of the default expression language, and conversions of values to markup text.
"""

import json, re
from types import SimpleNamespace


########################################################################################################################################################
#####
#####  VALUE CONVERSIONS
#####

def to_text(value):
    """
    String representation of a value for embedding in markup text, before escaping.
    None renders as an empty string; booleans as lowercase true/false; integral floats without the fraction.
    """
    if value is None: return ''
    if value is True: return 'true'
    if value is False: return 'false'
    if isinstance(value, float) and value.is_integer(): return str(int(value))
    return str(value)

def json_dumps(value):
    """Compact JSON serialization, as used for attribute values."""
    return json.dumps(value, separators = (',', ':'), ensure_ascii = False, default = str)


def format_string(fmt, *args, _re_spec = re.compile(r'%[sdifjoO%]')):
    """
    printf-style formatting of `fmt` with positional `args`:  %s %d %i %f %j %o %O %%
    Arguments that are not consumed by format specifiers are appended to the output, separated by spaces.
    """
    if not isinstance(fmt, str):
        return ' '.join(to_text(arg) for arg in (fmt,) + args)

    args = list(args)

    def substitute(match):
        spec = match.group()
        if spec == '%%': return '%'
        if not args: return spec
        value = args.pop(0)
        if spec in ('%d', '%i'): return to_text(int(value))
        if spec == '%f': return to_text(float(value))
        if spec == '%j': return json_dumps(value)
        return to_text(value)

    output = _re_spec.sub(substitute, fmt)
    return ' '.join([output] + [to_text(arg) for arg in args])


########################################################################################################################################################
#####
#####  BUILTIN variables
#####

BUILTIN_VARS = {
    '__format':     format_string,      # the target of "fmt", args... content expressions
    'JSON':         SimpleNamespace(stringify = json_dumps, parse = json.loads),

    'str':          to_text,
    'len':          len,
    'int':          int,
    'float':        float,
    'range':        range,
    'list':         list,
    'dict':         dict,
}
