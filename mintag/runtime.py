import logging

from mintag.builtin_html import VOID_TAGS, html_escape
from mintag.errors import IncludeNotFoundEx, TypeErrorEx
from mintag.expression import Evaluator
from mintag.plugins import PluginRegistry
from mintag.renderer import Renderer
from mintag.structs import Mixin, Node

logger = logging.getLogger(__name__)


########################################################################################################################################################
#####
#####  RUNTIME
#####

class Runtime:
    """
    A render session: configuration plus collaborators of the renderer, and the registry of mixins
    defined by templates rendered in this session. Mixins live as long as the Runtime does,
    so a mixin defined in one render() is visible to subsequent ones; separate Runtimes never share mixins.

    Collaborators:
    - evaluator(scope, pos, text) -> value; by default, an Evaluator of the built-in expression language
    - loader(path, location, prerendered = False) -> source string, or (tree, location) if `prerendered`;
      used for includes and for plugin sources; see loaders.DictLoader
    - plugins: a PluginRegistry, or a dict {name: plugin}
    - watcher(location, path): called on every include, e.g. loaders.DependencyTracker

    Rendering is recursive and synchronous. Deeply nested trees, and cycles of includes or mixin calls,
    end with Python's RecursionError; an infinite `while` loop is not detected.

    Memoized output of static tags is stored in the tree nodes together with the config of the Runtime that produced it,
    so a tree shared between Runtimes is rendered anew by every other Runtime instead of being served stale output.
    """

    config_default = {
        'escape_function':  html_escape,        # plaintext-to-markup conversion (escaping) function
        'compact':          True,               # if True, the output of static tags is memoized in the nodes and returned on subsequent renders
                                                # without recomputation; this improves performance of trees that are rendered many times
        'prerendered_ext':  '.min',             # includes with this extension are pre-rendered trees, not plain text
        'void_tags':        VOID_TAGS,          # tags that are never closed
        'plugin_prefix':    'mintag-',          # prefix of a plugin package name, for error messages
    }
    config = None

    evaluator = None
    loader    = None
    plugins   = None            # PluginRegistry
    watcher   = None
    mixins    = None            # dict {name: Mixin}

    def __init__(self, evaluator = None, loader = None, plugins = None, watcher = None, discover_plugins = False, **config):

        unknown = set(config) - set(self.config_default)
        if unknown: raise TypeError(f"unknown configuration parameter(s): {', '.join(sorted(unknown))}")

        self.config = self.config_default.copy()
        self.config.update(**config)

        self.evaluator = evaluator or Evaluator()
        self.loader    = loader
        self.watcher   = watcher
        self.mixins    = {}

        if isinstance(plugins, PluginRegistry):
            self.plugins = plugins
        else:
            self.plugins = PluginRegistry(plugins, self.config['plugin_prefix'])
        if discover_plugins:
            self.plugins.discover()

        self.renderer = Renderer(self)

    def register_plugin(self, plugin, name = None):
        return self.plugins.register(plugin, name)

    def define_mixin(self, name, body, params):
        if name in self.mixins: logger.debug("redefining mixin '%s'", name)
        else: logger.debug("defining mixin '%s' with parameters %s", name, params)
        self.mixins[name] = Mixin(body, params)

    def evaluate(self, scope, pos, text):
        return self.evaluator(scope, pos, text)

    def resolve(self, path, location = None, prerendered = False):
        if self.loader is None:
            raise IncludeNotFoundEx(f"no loader configured, can't resolve '{path}'")
        if prerendered:
            tree, location = self.loader(path, location, prerendered = True)
            return Node.from_dict(tree), location
        return self.loader(path, location)

    def render(self, tree, scope = None, location = None):
        """
        Render a template `tree` (a root Node, its dict representation, or a list of top-level nodes)
        with variables from `scope`. `location` identifies the template for relative includes and the watcher.
        """
        if tree is None: raise TypeErrorEx("no template tree to render")
        root = Node.from_dict(tree)
        return self.renderer.render(root, dict(scope or {}), location)


def render(tree, scope = None, location = None, resolver = None, **config):
    """Render a `tree` in a new Runtime, with `resolver` as its loader. Remaining keyword arguments configure the Runtime."""
    runtime = Runtime(loader = resolver, **config)
    return runtime.render(tree, scope, location)
