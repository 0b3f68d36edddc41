"""
Exceptions raised during rendering of mintag trees.
"""

########################################################################################################################################################

class MintagError(Exception):
    """
    Base class for all fatal rendering errors. Carries the source position (`pos`) of the node or expression
    that triggered the error, as received from the external parser, and a `kind` of the error: "TypeError" or "Error".
    """
    kind = 'Error'
    pos  = None         # source position, opaque; formatted into the message when it looks like (line, column)

    def __init__(self, msg = None, pos = None):
        self.pos = pos
        super().__init__(self.make_msg(msg))

    def make_msg(self, msg):
        msg = msg or ''
        if self.pos is None: return msg

        line, column = self._line_column(self.pos)
        if line is not None:
            return msg + " at line %s, column %s" % (line, column)
        return msg + " at %s" % (self.pos,)

    @staticmethod
    def _line_column(pos):
        if isinstance(pos, dict) and 'line' in pos:
            return pos['line'], pos.get('column')
        if isinstance(pos, (tuple, list)) and len(pos) == 2:
            return pos
        line = getattr(pos, 'line', None)
        return line, getattr(pos, 'column', None)

########################################################################################################################################################

class TypeErrorEx(MintagError, TypeError):          kind = 'TypeError'
class SyntaxErrorEx(MintagError, SyntaxError):      pass
class NameErrorEx(MintagError, NameError):          pass
class LookupErrorEx(MintagError, LookupError):      pass
class AttributeErrorEx(MintagError, AttributeError):pass

class MissingElseEx(MintagError):
    """An if/else-if chain ended in its sibling group without any branch being taken."""

class UnknownMixinEx(TypeErrorEx):
    """Invocation +name of a mixin that was never defined in the current Runtime."""

class InlineCodeEx(MintagError):
    """A node starts with the inline-code marker "-", which is not supported."""

class PluginNotInstalledEx(MintagError):
    """A :name node refers to a syntax-transformer plugin that is missing from the plugin registry."""

class IncludeNotFoundEx(MintagError):
    """The loader can't resolve a path of an include or plugin source."""


KINDS = {
    'Error':        MintagError,
    'TypeError':    TypeErrorEx,
}

def die(pos, kind, msg, cls = None):
    """Fatal-error reporter: raise a typed, positioned error. `cls` selects a more specific subclass of the `kind`."""
    if cls is None: cls = KINDS.get(kind, MintagError)
    raise cls(msg, pos)
