from .scoring import Router, RoutingConfig, score_graphs, select_graph

__all__ = ["Router", "RoutingConfig", "score_graphs", "select_graph"]
