"""Contact networks for staff testing experiments.

The simulator and analyzer only rely on the :class:`NetworkView` protocol.
:class:`Network` is the networkx-backed implementation used by the CLI and tests.
"""

from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Set

import networkx as nx
from loguru import logger

from outbreak_detection.errors import ValidationError

# Column separator of edge-list files, one "u,v" pair per line
EDGE_SEPARATOR = ","


class NetworkView(Protocol):
    """Read-mostly view of an undirected, unweighted network with integer vertices."""

    name: str

    def vertices(self) -> Set[int]: ...

    def neighbors(self, v: int) -> List[int]: ...

    def add_vertex(self, v: int) -> None: ...

    def add_edge(self, u: int, v: int) -> None: ...

    def copy(self) -> "NetworkView": ...


class Network:
    """Named undirected network without self-loops or multi-edges."""

    def __init__(self, name: str, graph: Optional[nx.Graph] = None):
        """
        Initialize network.

        Args:
            name: Network name, matched against simulation parameters
            graph: Existing graph to wrap (a new empty graph if None)
        """
        self.name = name
        self.graph = graph if graph is not None else nx.Graph()
        self.graph.remove_edges_from(list(nx.selfloop_edges(self.graph)))

    def __repr__(self) -> str:
        return (
            f"Network(name={self.name!r}, vertices={self.graph.number_of_nodes()}, "
            f"edges={self.graph.number_of_edges()})"
        )

    def vertices(self) -> Set[int]:
        return set(self.graph.nodes)

    def neighbors(self, v: int) -> List[int]:
        return list(self.graph.neighbors(v))

    def add_vertex(self, v: int) -> None:
        self.graph.add_node(v)

    def add_edge(self, u: int, v: int) -> None:
        if u == v:
            raise ValidationError(f"Self-loop on vertex {u} is not allowed")
        self.graph.add_edge(u, v)

    def add_edges(self, source: int, targets: Sequence[int]) -> None:
        """Connect ``source`` to every vertex in ``targets``."""
        for target in targets:
            self.add_edge(source, target)

    def copy(self) -> "Network":
        return Network(self.name, self.graph.copy())

    def min_label(self) -> int:
        if self.graph.number_of_nodes() == 0:
            raise ValidationError("Network has no vertices")
        return min(self.graph.nodes)

    def relabel(self, start: int = 2) -> "Network":
        """Shift every label so the smallest becomes ``start``, keeping gaps between labels."""
        shift = start - self.min_label()
        mapping = {v: v + shift for v in self.graph.nodes}
        return Network(self.name, nx.relabel_nodes(self.graph, mapping, copy=True))

    @classmethod
    def complete(cls, size: int, start: int = 2, name: Optional[str] = None) -> "Network":
        """Complete graph on ``size`` vertices labelled from ``start``."""
        if size < 1:
            raise ValidationError("size must be positive")
        graph = nx.complete_graph(range(start, start + size))
        return cls(name or f"completegraph_staff{size}", graph)

    @classmethod
    def circulant(
        cls,
        size: int,
        offsets: Sequence[int],
        start: int = 2,
        name: Optional[str] = None,
    ) -> "Network":
        """
        Circulant graph: vertex i is adjacent to i +/- o (mod size) for each offset o.

        Args:
            size: Number of vertices
            offsets: Jump offsets
            start: Label of the first vertex
            name: Network name
        """
        if size < 1:
            raise ValidationError("size must be positive")
        if any(o <= 0 or o >= size for o in offsets):
            raise ValidationError(f"offsets must lie in [1, {size - 1}], got {list(offsets)}")
        graph = nx.circulant_graph(size, list(offsets))
        graph = nx.relabel_nodes(graph, {i: start + i for i in range(size)})
        return cls(name or f"circulantgraph_staff{size}", graph)

    @classmethod
    def neighboring(cls, size: int, degree: int, start: int = 2) -> "Network":
        """Each vertex is adjacent to its ``degree`` nearest neighbours on a ring."""
        offsets = list(range(1, degree // 2 + 1))
        return cls.circulant(
            size, offsets, start, name=f"neighboringgraph_staff{size}_degree{degree}"
        )

    @classmethod
    def crossing(cls, size: int, degree: int, start: int = 2) -> "Network":
        """Each vertex is adjacent to the ``degree`` vertices roughly opposite it on a ring."""
        m = degree // 2
        constant = size // 2 - 1
        offsets = [constant - i for i in range(m)]
        return cls.circulant(
            size, offsets, start, name=f"crossinggraph_staff{size}_degree{degree}"
        )

    @classmethod
    def from_edge_list(
        cls,
        path: Path | str,
        name: Optional[str] = None,
        separator: Optional[str] = EDGE_SEPARATOR,
    ) -> "Network":
        """
        Load a network from a file with one ``u<separator>v`` pair per line.

        Args:
            path: Edge-list file
            name: Network name (the file stem if None)
            separator: Column separator, None for any whitespace

        Raises:
            FileNotFoundError: If the file does not exist
            ValidationError: If no edge could be parsed with ``separator``
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Network file not found: {path}")
        graph = nx.read_edgelist(path, nodetype=int, delimiter=separator, data=False)
        if graph.number_of_nodes() == 0:
            raise ValidationError(f"No edges parsed from {path} with separator {separator!r}")
        network = cls(name or path.stem, graph)
        logger.info(f"Loaded {network} from {path}")
        return network

    def write_edge_list(self, path: Path | str, delimiter: str = EDGE_SEPARATOR) -> None:
        """Write the network as one ``u<delimiter>v`` pair per line."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        nx.write_edgelist(self.graph, path, delimiter=delimiter, data=False)
        logger.info(f"Wrote {self} to {path}")
