"""Built-in node functions for the research and monetization graphs."""

from . import monetization, research  # noqa: F401  (populate the catalog)
from .catalog import BUILTIN_NODES, builtin_node, register_builtin_nodes

__all__ = ["BUILTIN_NODES", "builtin_node", "register_builtin_nodes"]
