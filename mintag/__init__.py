from mintag.errors import MintagError
from mintag.loaders import DictLoader, DependencyTracker, Loader
from mintag.plugins import Plugin, PluginRegistry
from mintag.runtime import Runtime, render
from mintag.structs import Node
