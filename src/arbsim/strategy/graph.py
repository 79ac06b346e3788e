"""
Triangle cycle discovery using graph analysis.

Builds the triangular-cycle catalog from a universe of BASE/QUOTE pair
symbols instead of a hand-maintained list, so new instruments only need
a price source to become tradeable.
"""

import logging
from collections.abc import Iterable
from typing import Any

import networkx as nx

from arbsim.config.constants import DEFAULT_CYCLE_BASE_ASSET
from arbsim.core.types import OrderSide, TriangleCycle, TriangleLeg


logger = logging.getLogger(__name__)


def split_pair(pair: str) -> tuple[str, str]:
    """
    Split a BASE/QUOTE symbol.

    Raises:
        ValueError: If the symbol is not in BASE/QUOTE form.
    """
    base, sep, quote = pair.partition("/")
    if not sep or not base or not quote:
        raise ValueError(f"Pair {pair!r} is not in BASE/QUOTE form")
    return base, quote


class CycleDiscovery:
    """
    Discovers triangular cycles between assets.

    Uses a directed graph where:
    - Nodes are assets (BTC, ETH, USDT, etc.)
    - Edges are pairs, quote -> base for BUY and base -> quote for SELL

    A cycle is base -> A -> B -> base.
    """

    def __init__(self, pairs: Iterable[str]) -> None:
        """
        Initialize discovery.

        Args:
            pairs: Pair symbols available for trading.
        """
        self._graph: nx.DiGraph = nx.DiGraph()
        for pair in pairs:
            base, quote = split_pair(pair)
            self._graph.add_edge(quote, base, pair=pair, side=OrderSide.BUY)
            self._graph.add_edge(base, quote, pair=pair, side=OrderSide.SELL)

        logger.debug(
            f"Built pair graph with {self._graph.number_of_nodes()} assets, "
            f"{self._graph.number_of_edges()} edges"
        )

    def find_cycles(
        self,
        base_asset: str = DEFAULT_CYCLE_BASE_ASSET,
        max_cycles: int = 100,
    ) -> list[TriangleCycle]:
        """
        Find triangular cycles starting and ending at `base_asset`.

        Each unordered pair of intermediate assets yields one cycle, in
        the direction first discovered.

        Returns:
            Catalog of cycles, sorted by name.
        """
        if base_asset not in self._graph:
            logger.warning(f"Base asset {base_asset} not in pair graph")
            return []

        cycles: list[TriangleCycle] = []
        seen: set[frozenset[str]] = set()

        for first_hop in sorted(self._graph.successors(base_asset)):
            for second_hop in sorted(self._graph.successors(first_hop)):
                if second_hop in (base_asset, first_hop):
                    continue
                if not self._graph.has_edge(second_hop, base_asset):
                    continue

                key = frozenset((first_hop, second_hop))
                if key in seen:
                    continue
                seen.add(key)

                cycles.append(self._build_cycle(base_asset, first_hop, second_hop))
                if len(cycles) >= max_cycles:
                    break

            if len(cycles) >= max_cycles:
                break

        cycles.sort(key=lambda c: c.name)
        logger.info(f"Found {len(cycles)} triangular cycles from {base_asset}")
        return cycles

    def _build_cycle(self, base: str, mid1: str, mid2: str) -> TriangleCycle:
        hops = ((base, mid1), (mid1, mid2), (mid2, base))
        legs = tuple(
            TriangleLeg(
                pair=self._graph.edges[src, dst]["pair"],
                side=self._graph.edges[src, dst]["side"],
            )
            for src, dst in hops
        )
        return TriangleCycle(name=f"{base}-{mid1}-{mid2}", legs=legs)  # type: ignore[arg-type]

    def get_assets(self) -> set[str]:
        """Get all assets in the graph."""
        return set(self._graph.nodes())

    @property
    def graph(self) -> nx.DiGraph:
        """Get the underlying NetworkX graph."""
        return self._graph

    @staticmethod
    def to_dict(cycles: Iterable[TriangleCycle]) -> dict[str, list[dict[str, Any]]]:
        """Convert a catalog to serializable format."""
        return {
            "cycles": [
                {
                    "name": cycle.name,
                    "legs": [
                        {"pair": leg.pair, "side": leg.side.value} for leg in cycle.legs
                    ],
                }
                for cycle in cycles
            ]
        }
