"""
Path Finder: shortest hop path between two devices over live cables.

Only cables with connected=True are links. Cable type is ignored, so a
wireless link counts even though the canvas doesn't draw it.

Uses NetworkX BFS. Neighbor order follows cable order, which keeps tie
breaks between equal-length paths stable.
"""

from __future__ import annotations

from typing import Iterable, Optional

import networkx as nx

from models import Cable, Device


def build_link_graph(cables: Iterable[Cable]) -> nx.Graph:
    """Undirected graph of the connected cables. Duplicate cables collapse into one edge."""
    graph = nx.Graph()
    for cable in cables:
        if not cable.connected or cable.from_id == cable.to_id:
            continue
        graph.add_edge(cable.from_id, cable.to_id)
    return graph


def find_path(
    source_id: str,
    dest_id: str,
    devices: list[Device],
    cables: list[Cable],
) -> Optional[list[str]]:
    """
    First path found by breadth-first search from source to destination,
    endpoints included. None if the destination is unreachable.

    `devices` is accepted for symmetry with simulate(); existence of the
    endpoints is checked by the caller.
    """
    if source_id == dest_id:
        return [source_id]

    graph = build_link_graph(cables)
    if source_id not in graph or dest_id not in graph:
        return None

    parents: dict[str, str] = {}
    for parent, child in nx.bfs_edges(graph, source_id):
        parents[child] = parent
        if child == dest_id:
            break
    else:
        return None

    path = [dest_id]
    while path[-1] != source_id:
        path.append(parents[path[-1]])
    path.reverse()
    return path
