#!/usr/bin/env python3
"""
Contig Graph - Interface to the selected bridging paths

The graph itself (link support, branch selection, containment) is built by
an external tool. This module defines what the bridging step needs from it
and a JSON adapter for graphs written to disk:

{
    "paths": [["ctg1+", "ctg2-"]],
    "edges": [{"from": "ctg1+", "to": "ctg2-", "link_length": 12000,
               "seq_areas": [{"name": "read7", "start": 100, "end": 2100}]}],
    "contained": ["ctg9"]
}
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Protocol, Set, Tuple

from ctgbridge.utils.sequences import OrientedEnd, SeqArea, StringPool

logger = logging.getLogger(__name__)

ContigPath = List[OrientedEnd]


@dataclass
class Edge:
    """Link between two consecutive path nodes"""
    length: int
    areas: List[SeqArea] = field(default_factory=list)

    def link_length(self) -> int:
        """Length from the start of the previous anchor to the end of this anchor"""
        return self.length

    def get_seq_area(self) -> List[SeqArea]:
        return list(self.areas)


class ContigGraph(Protocol):
    def paths(self) -> List[ContigPath]:
        ...

    def edge(self, a: OrientedEnd, b: OrientedEnd) -> Edge:
        ...

    def contained_ids(self) -> Set[int]:
        ...


class GraphFile:
    """ContigGraph backed by a JSON document"""

    def __init__(self,
                 paths: List[ContigPath],
                 edges: Dict[Tuple[OrientedEnd, OrientedEnd], Edge],
                 contained: Set[int]):
        self._paths = paths
        self._edges = edges
        self._contained = contained

    def paths(self) -> List[ContigPath]:
        return self._paths

    def edge(self, a: OrientedEnd, b: OrientedEnd) -> Edge:
        try:
            return self._edges[(a, b)]
        except KeyError:
            raise KeyError(f"No edge between {a} and {b}") from None

    def contained_ids(self) -> Set[int]:
        return self._contained

    @classmethod
    def load(cls, path, pool: StringPool) -> 'GraphFile':
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Graph file not found: {path}")

        with open(path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid graph file {path}: {e}") from e

        edges: Dict[Tuple[OrientedEnd, OrientedEnd], Edge] = {}
        for i, entry in enumerate(data.get('edges', [])):
            try:
                a = OrientedEnd.parse(entry['from'], pool)
                b = OrientedEnd.parse(entry['to'], pool)
                areas = [SeqArea(pool.get_id(sa['name']), int(sa['start']), int(sa['end']))
                         for sa in entry.get('seq_areas', [])]
                edges[(a, b)] = Edge(int(entry['link_length']), areas)
            except (KeyError, TypeError) as e:
                raise ValueError(f"Invalid edge #{i} in {path}: missing or bad field {e}") from e

        paths = []
        for i, tokens in enumerate(data.get('paths', [])):
            try:
                nodes = [OrientedEnd.parse(t, pool) for t in tokens]
            except (AttributeError, TypeError) as e:
                raise ValueError(f"Invalid path #{i} in {path}: {e}") from e
            for a, b in zip(nodes, nodes[1:]):
                if (a, b) not in edges:
                    raise ValueError(f"Path #{i} in {path} uses missing edge "
                                     f"{a.format(pool)} -> {b.format(pool)}")
            paths.append(nodes)

        contained = {pool.get_id(name) for name in data.get('contained', [])}

        logger.info(f"  Graph: {len(paths)} paths, {len(edges)} edges, "
                    f"{len(contained)} contained contigs")
        return cls(paths, edges, contained)

    def referenced_ids(self) -> Set[int]:
        """Ids of every sequence used as patch material"""
        return {area.id for edge in self._edges.values() for area in edge.areas}
