"""
Syntax-transformer plugins: third-party converters of embedded source (markdown, stylesheets, ...) into markup,
invoked from a template with a `:name` node whose content is a path to the source.
"""

import logging
from collections.abc import Mapping
from importlib.metadata import entry_points

from mintag.errors import PluginNotInstalledEx, TypeErrorEx

logger = logging.getLogger(__name__)


########################################################################################################################################################
#####
#####  PLUGIN
#####

class Plugin:
    """
    Base class for syntax-transformer plugins. Subclasses implement render(), which receives the source text
    as returned by the include resolver, and a dict of attributes of the calling node (unevaluated).
    The result can be a string or an object / mapping with a `body` field.
    """
    name = None             # default name under which the plugin is registered

    def render(self, source, attrs):
        raise NotImplementedError


class PluginRegistry:
    """
    Plugins available to a Runtime, indexed by name. Filled at configuration time: explicitly through register()
    or by discover(), which scans the installed distributions for the "mintag.plugins" entry-point group.
    """
    GROUP = 'mintag.plugins'

    plugins = None          # dict {name: plugin}
    prefix  = 'mintag-'     # prefix of a plugin's distribution name, reported when the plugin is missing

    def __init__(self, plugins = None, prefix = None):
        self.plugins = {}
        if prefix is not None: self.prefix = prefix
        for name, plugin in (plugins or {}).items():
            self.register(plugin, name)

    def __contains__(self, name):   return name in self.plugins
    def __len__(self):              return len(self.plugins)

    def register(self, plugin, name = None):
        """
        Add a `plugin` under a given `name`, or its `name` attribute. A Plugin subclass is instantiated first.
        Any callable that takes (source, attrs) is accepted as a plugin, too.
        """
        if isinstance(plugin, type): plugin = plugin()
        name = name or getattr(plugin, 'name', None)
        if not name: raise TypeErrorEx(f"plugin {plugin!r} has no name")
        if not (callable(plugin) or hasattr(plugin, 'render')):
            raise TypeErrorEx(f"plugin '{name}' must be callable or implement render()")

        self.plugins[name] = plugin
        logger.debug("registered plugin '%s': %r", name, plugin)
        return plugin

    def discover(self):
        """Register all plugins advertised by installed distributions under the "mintag.plugins" entry-point group."""
        for ep in entry_points(group = self.GROUP):
            logger.debug("loading plugin '%s' from entry point %s", ep.name, ep.value)
            self.register(ep.load(), ep.name)

    def load(self, name, pos = None):
        """Return the plugin registered as `name`, or raise PluginNotInstalledEx."""
        try:
            return self.plugins[name]
        except KeyError:
            raise PluginNotInstalledEx(f"{self.prefix}{name} not installed", pos) from None

    @staticmethod
    def call(plugin, source, attrs):
        """Run a `plugin` on the `source` and return the resulting markup as a string."""
        render = getattr(plugin, 'render', None) or plugin
        result = render(source, attrs)

        if isinstance(result, str): return result
        if isinstance(result, Mapping): body = result.get('body')
        else: body = getattr(result, 'body', None)
        if body is None: raise TypeErrorEx(f"plugin returned {type(result).__name__} instead of a string or an object with `body`")
        return body
