from collections import namedtuple

from markupsafe import escape

from mintag.grammar import RE_SYMBOL


########################################################################################################################################################
#####
#####  ESCAPING
#####

def html_escape(text):
    """Plaintext-to-HTML conversion: entity-escapes & < > " ' in `text`."""
    return str(escape(text))


########################################################################################################################################################
#####
#####  TAG SYMBOLS
#####

TagSymbol = namedtuple('TagSymbol', 'tagname id classname')

DEFAULT_TAG = 'div'

def resolve_tag(symbol):
    """
    Split a tag symbol written in shorthand notation, like "div#main.note.wide", ".note" or "#main",
    into its tag name, id and space-separated class names. A missing tag name defaults to "div";
    if the id occurs more than once, the last one wins.
    """
    symbol = symbol or ''
    cut = min([i for i in (symbol.find('.'), symbol.find('#')) if i >= 0], default = len(symbol))
    tagname = symbol[:cut] or DEFAULT_TAG

    id_, classes = None, []
    for mark, name in RE_SYMBOL.findall(symbol[cut:]):
        if mark == '#': id_ = name
        else: classes.append(name)

    return TagSymbol(tagname, id_, ' '.join(classes) or None)


########################################################################################################################################################
#####
#####  VOID elements
#####

VOID_TAGS = frozenset(          # elements that never get a closing tag
    "area base br col embed hr img input link meta param source track wbr".split())
