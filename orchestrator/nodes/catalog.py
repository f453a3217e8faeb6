"""Catalog of built-in node functions.

Node modules decorate their functions with ``@builtin_node(name)``;
``register_builtin_nodes`` binds the whole catalog into a registry.
Importing ``orchestrator.nodes`` populates the catalog.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

BUILTIN_NODES: Dict[str, Callable[..., Any]] = {}


def builtin_node(name: str) -> Callable[[F], F]:
    """Decorator adding a node function to the built-in catalog."""

    def decorator(fn: F) -> F:
        if name in BUILTIN_NODES:
            raise ValueError(f"Built-in node '{name}' is already defined")
        BUILTIN_NODES[name] = fn
        logger.debug(f"Cataloged built-in node: {name}")
        return fn

    return decorator


def register_builtin_nodes(registry, configs: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
    """Register every cataloged node into ``registry``.

    Args:
        registry: GraphRegistry to populate
        configs: Optional node name -> runtime config
    """
    configs = configs or {}
    for name, fn in BUILTIN_NODES.items():
        registry.register_node(name, fn, configs.get(name))
    logger.info(f"Registered {len(BUILTIN_NODES)} built-in nodes")
