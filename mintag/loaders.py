"""
Include resolvers: map a path found in an `include` node or a plugin call, together with the location
of the including template, onto source text or a pre-rendered tree. Plus a dependency tracker
to be plugged in as the watcher of a Runtime.

Any callable resolver(path, location, prerendered = False) can be used in place of a Loader.
"""

import logging, posixpath
from collections.abc import Mapping

from mintag.errors import IncludeNotFoundEx, TypeErrorEx
from mintag.structs import Node

logger = logging.getLogger(__name__)


########################################################################################################################################################
#####
#####  LOADERS
#####

class Loader:
    """
    Base class for include resolvers. Subclasses implement load(), which returns the object stored
    under a canonical path: a source string, or a pre-parsed tree (Node, or its dict representation).
    """

    def __call__(self, path, location = None, prerendered = False):
        return self.resolve(path, location, prerendered)

    def canonical(self, path, location = None):
        """Convert a `path`, possibly relative to the `location` of the including template, to its canonical form."""
        return path

    def load(self, path):
        raise IncludeNotFoundEx(f"include path not found '{path}'")

    def resolve(self, path, location = None, prerendered = False):
        """
        Return the source text stored under `path`, or if `prerendered` is true,
        a pair (tree, location) where `tree` is a Node and `location` is the canonical path of the tree,
        to be used as a base for relative includes inside the tree.
        """
        canonical = self.canonical(path, location)
        logger.debug("resolving '%s' from %s as '%s'", path, location, canonical)
        obj = self.load(canonical)

        if not prerendered:
            if not isinstance(obj, str): raise TypeErrorEx(f"include '{path}' is a tree, not a source text")
            return obj

        if not isinstance(obj, (Node, Mapping, list)):
            raise TypeErrorEx(f"include '{path}' is not a pre-rendered tree")
        return Node.from_dict(obj), canonical


class DictLoader(Loader):
    """
    Serves sources and pre-parsed trees from a dict {path: object}. Paths are POSIX-like;
    relative ones are interpreted against the directory of the including template's location.
    Trees given as dicts are converted to Nodes once and reused, so that memoized output of static nodes
    is preserved between includes.
    """
    sources = None          # dict {canonical path: source string or tree}

    def __init__(self, sources = None):
        self.sources = {posixpath.normpath(path): obj for path, obj in (sources or {}).items()}

    def __setitem__(self, path, obj):
        self.sources[posixpath.normpath(path)] = obj

    def canonical(self, path, location = None):
        if location and not posixpath.isabs(path):
            path = posixpath.join(posixpath.dirname(location), path)
        return posixpath.normpath(path)

    def load(self, path):
        obj = self.sources.get(path)
        if obj is None: obj = self.sources.get(path.lstrip('/'))
        if obj is None: return super().load(path)

        if isinstance(obj, (Mapping, list)):
            obj = self.sources[path] = Node.from_dict(obj)
        return obj


########################################################################################################################################################
#####
#####  WATCHERS
#####

class DependencyTracker:
    """
    Watcher that records which paths get included from which locations: {location: set of paths}.
    Pass an instance as `watcher` to a Runtime, then feed `dependencies` to a file-watching tool.
    """

    def __init__(self):
        self.dependencies = {}

    def __call__(self, location, path):
        self.dependencies.setdefault(location, set()).add(path)

    def paths(self):
        """All included paths, from any location."""
        return set().union(*self.dependencies.values())
