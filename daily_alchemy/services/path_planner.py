"""
Path planner.

The catalog is read as a directed hypergraph: every record is an edge
{A, B} -> R, and the four starters are the sources. A path is a set of edges,
one per element it produces, that can be played in some order and ends at the
target; its length is the number of elements it produces.

Paths are found by iterative deepening, working backwards from the target:
every open goal is resolved by one of the edges producing it, whose
non-starter inputs become goals in turn. A branch is cut as soon as its
resolved edges plus its open goals exceed the current size, so every size is
searched exhaustively before the next one and the shortest paths always come
first. Candidates are ranked by ``(length, step signature, creation order)``.

When the target is unreachable the oracle is asked for bridging paths; their
steps that are not in the catalog become provisional edges and the search is
re-run. Provisional steps are only persisted when an admin saves a path.
"""
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from daily_alchemy.core.errors import InvalidName, PathUnreachable
from daily_alchemy.core.normalizer import (
    STARTER_NAMES,
    combination_key,
    is_admin_key,
    is_reserved,
    normalize_name,
)
from daily_alchemy.schemas import CombinationRecord, Path, Step

logger = logging.getLogger(__name__)

MAX_PATH_LENGTH = 12
# once some path is known, stop looking for longer alternatives past this many expansions
EXPANSION_BUDGET = 200_000


@dataclass(frozen=True)
class _Edge:
    key: str
    a: str
    b: str
    a_norm: str
    b_norm: str
    result_name: str
    result_emoji: str
    result_norm: str
    rank: int
    provisional: bool = False

    @property
    def signature(self) -> str:
        return f"{self.key}>{self.result_norm}"

    def to_step(self) -> Step:
        return Step(a=self.a, b=self.b, result_name=self.result_name,
                    result_emoji=self.result_emoji, provisional=self.provisional)


def _sort_key(steps: Sequence[_Edge]):
    return (
        len(steps),
        tuple(edge.signature for edge in steps),
        tuple(edge.rank for edge in steps),
    )


def _make_edge(key: str, a: str, b: str, result_name: str, result_emoji: str,
               rank: int, provisional: bool = False) -> Optional[_Edge]:
    try:
        a_norm, b_norm, result_norm = normalize_name(a), normalize_name(b), normalize_name(result_name)
    except InvalidName:
        return None
    if result_norm in STARTER_NAMES or result_norm in (a_norm, b_norm):
        return None
    # display operands in key order
    if b_norm < a_norm:
        a, b, a_norm, b_norm = b, a, b_norm, a_norm
    return _Edge(key=key, a=a.strip(), b=b.strip(), a_norm=a_norm, b_norm=b_norm,
                 result_name=result_name.strip(), result_emoji=result_emoji,
                 result_norm=result_norm, rank=rank, provisional=provisional)


def _play_order(edges: Iterable[_Edge]) -> Optional[Tuple[_Edge, ...]]:
    """Order edges so every input exists before it is used, or None if they depend on each other"""
    available = set(STARTER_NAMES)
    pending = sorted(edges, key=lambda e: (e.signature, e.rank))
    ordered = []
    while pending:
        ready = next((e for e in pending if e.a_norm in available and e.b_norm in available), None)
        if ready is None:
            return None
        pending.remove(ready)
        ordered.append(ready)
        available.add(ready.result_norm)
    return tuple(ordered)


class _HyperpathSearch:

    def __init__(self, edges: Sequence[_Edge]):
        self.depth = self._depth_bounds(edges)
        self.producers: Dict[str, List[_Edge]] = {}
        for edge in sorted(edges, key=lambda e: (e.signature, e.rank)):
            if edge.a_norm in self.depth and edge.b_norm in self.depth:
                self.producers.setdefault(edge.result_norm, []).append(edge)
        self.expansions = 0

    @staticmethod
    def _depth_bounds(edges: Sequence[_Edge]) -> Dict[str, int]:
        """Longest input chain needed by each reachable element; no path to it can be shorter"""
        depth = {starter: 0 for starter in STARTER_NAMES}
        changed = True
        while changed:
            changed = False
            for edge in edges:
                if edge.a_norm in depth and edge.b_norm in depth:
                    candidate = 1 + max(depth[edge.a_norm], depth[edge.b_norm])
                    if candidate < depth.get(edge.result_norm, candidate + 1):
                        depth[edge.result_norm] = candidate
                        changed = True
        return depth

    def paths_of_size(self, target_norm: str, size: int) -> List[Tuple[_Edge, ...]]:
        found: List[Tuple[_Edge, ...]] = []
        self._expand({}, frozenset([target_norm]), size, found)
        return found

    def _expand(self, chosen: Dict[str, _Edge], goals: FrozenSet[str], size: int, found: list) -> None:
        self.expansions += 1
        if not goals:
            if len(chosen) == size:
                ordered = _play_order(chosen.values())
                if ordered:
                    found.append(ordered)
            return
        if len(chosen) + len(goals) > size:
            return

        # every goal needs exactly one edge, so branch on the most constrained one
        goal = min(goals, key=lambda g: (len(self.producers.get(g, ())), g))
        rest = goals - {goal}
        for edge in self.producers.get(goal, ()):
            new_goals = set(rest)
            for operand in (edge.a_norm, edge.b_norm):
                if operand not in STARTER_NAMES and operand not in chosen:
                    new_goals.add(operand)
            if any(self.depth[g] > size for g in new_goals):
                continue
            chosen[goal] = edge
            self._expand(chosen, frozenset(new_goals), size, found)
            del chosen[goal]


def _search(edges: Sequence[_Edge], target_norm: str, limit: int, max_length: int) -> List[Tuple[_Edge, ...]]:
    search = _HyperpathSearch(edges)
    if target_norm not in search.depth:
        return []

    found: Dict[FrozenSet[str], Tuple[_Edge, ...]] = {}
    for size in range(max(1, search.depth[target_norm]), max_length + 1):
        for steps in search.paths_of_size(target_norm, size):
            found.setdefault(frozenset(edge.key for edge in steps), steps)
        if len(found) >= limit:
            break
        if found and search.expansions > EXPANSION_BUDGET:
            logger.warning("Planner stopped looking for longer paths to %s after %s expansions",
                           target_norm, search.expansions)
            break

    return sorted(found.values(), key=_sort_key)[:limit]


def catalog_edges(catalog: Iterable[CombinationRecord]) -> List[_Edge]:
    edges = []
    for rank, record in enumerate(catalog):
        if is_admin_key(record.key) or is_reserved(record.element_a) or is_reserved(record.element_b):
            continue
        edge = _make_edge(record.key, record.element_a, record.element_b,
                          record.result_name, record.result_emoji, rank)
        if edge:
            edges.append(edge)
    return edges


def check_path(steps: Sequence[Step], target_name: str) -> Optional[str]:
    """
    Replay a path from the starters. Returns a description of the first
    problem, or None when every step is playable and the last one makes the target.
    """
    if not steps:
        return "Path has no steps"
    bank = set(STARTER_NAMES)
    for index, step in enumerate(steps, start=1):
        try:
            a, b, result = normalize_name(step.a), normalize_name(step.b), normalize_name(step.result_name)
        except InvalidName as e:
            return f"Step {index}: {e.message}"
        for operand in (a, b):
            if operand not in bank:
                return f"Step {index}: '{operand}' is not available yet"
        bank.add(result)
    if normalize_name(steps[-1].result_name) != normalize_name(target_name):
        return f"Last step makes '{steps[-1].result_name}', not '{target_name}'"
    return None


class PathPlanner:
    """ Proposes up to `limit` distinct paths from the starters to a target"""

    def __init__(self, oracle=None, max_path_length: int = MAX_PATH_LENGTH, context_size: int = 200):
        self.oracle = oracle
        self.max_path_length = max_path_length
        self.context_size = context_size


    async def generate_paths(self, target_name: str, catalog: Sequence[CombinationRecord], limit: int = 3) -> List[Path]:
        target_norm = normalize_name(target_name)
        if target_norm in STARTER_NAMES:
            raise PathUnreachable(f"'{target_name}' is a starter element")

        catalog = list(catalog)
        edges = catalog_edges(catalog)
        found = _search(edges, target_norm, limit, self.max_path_length)
        logger.info("Planner: %s catalog edges, %s paths to %s", len(edges), len(found), target_name)

        if not found and self.oracle is not None:
            context = sorted(catalog, key=lambda r: (-r.use_count, r.key))[:self.context_size]
            proposals = await self.oracle.propose_paths(target_name, context, limit)
            bridges = self._provisional_edges(proposals, catalog, first_rank=len(catalog))
            logger.info("Planner: oracle proposed %s provisional edges for %s", len(bridges), target_name)
            found = _search(edges + bridges, target_norm, limit, self.max_path_length)

        if not found:
            raise PathUnreachable(
                f"No path to '{target_name}' within {self.max_path_length} steps"
            )
        return [Path(steps=[edge.to_step() for edge in steps]) for steps in found]


    def _provisional_edges(self, proposals: Sequence[Sequence[Step]], catalog: Sequence[CombinationRecord],
                           first_rank: int) -> List[_Edge]:
        """Proposed steps for pairs the catalog does not know yet. Known pairs keep their catalog result."""
        known = {record.key for record in catalog}
        edges = []
        rank = first_rank
        for steps in proposals:
            for step in steps:
                try:
                    key = combination_key(step.a, step.b)
                except InvalidName:
                    continue
                if key in known:
                    continue
                edge = _make_edge(key, step.a, step.b, step.result_name, step.result_emoji, rank, provisional=True)
                if edge:
                    edges.append(edge)
                    known.add(key)
                    rank += 1
        return edges
