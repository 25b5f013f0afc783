# git_graph_layout.py

from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from git_graph_data import BranchInfo, CommitNode

# Canvas defaults used when the caller has no real viewport yet
DEFAULT_CANVAS_WIDTH = 1200
DEFAULT_CANVAS_HEIGHT = 800

MARGIN_TOP = 40
MARGIN_RIGHT = 40
MARGIN_BOTTOM = 40
MARGIN_LEFT = 200
COMMIT_SPACING = 60

# Distinct levels must never collapse onto the same x, even on a tiny canvas
MIN_LEVEL_WIDTH = 1.0

# Branch label anchor, relative to the commit position
LABEL_OFFSET_X = 15
LABEL_OFFSET_Y = -10
LABEL_LINE_HEIGHT = 14

MIN_ZOOM = 0.1
MAX_ZOOM = 3.0


@dataclass(frozen=True)
class Position:
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Position":
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class CanvasSize:
    width: float = DEFAULT_CANVAS_WIDTH
    height: float = DEFAULT_CANVAS_HEIGHT
    margin_top: float = MARGIN_TOP
    margin_right: float = MARGIN_RIGHT
    margin_bottom: float = MARGIN_BOTTOM
    margin_left: float = MARGIN_LEFT
    commit_spacing: float = COMMIT_SPACING

    def level_width(self, max_level: int) -> float:
        usable = self.width - self.margin_left - self.margin_right
        return max(usable / (max_level + 1), MIN_LEVEL_WIDTH)


@dataclass(frozen=True)
class GraphEdge:
    parent: str
    child: str
    start: Position
    end: Position
    highlighted: bool = False

    def touches(self, commit_hash: Optional[str]) -> bool:
        return commit_hash is not None and commit_hash in (self.parent, self.child)


@dataclass(frozen=True)
class BranchLabel:
    name: str
    commit: str
    anchor: Position
    is_current: bool = False
    is_remote: bool = False


@dataclass
class GraphLayout:
    levels: dict[str, int] = field(default_factory=dict)
    positions: dict[str, Position] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)
    labels: list[BranchLabel] = field(default_factory=list)
    max_level: int = -1
    selected: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.positions

    def highlight(self, commit_hash: Optional[str]) -> "GraphLayout":
        """Return a copy whose edges are flagged for the given selection."""
        if commit_hash not in self.positions:
            commit_hash = None
        edges = [replace(e, highlighted=e.touches(commit_hash)) for e in self.edges]
        return replace(self, edges=edges, selected=commit_hash)

    def incident_edges(self, commit_hash: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.touches(commit_hash)]

    def to_dict(self) -> dict:
        return {
            "selected": self.selected,
            "maxLevel": self.max_level,
            "nodes": [
                {"hash": h, "level": self.levels[h], "x": p.x, "y": p.y}
                for h, p in self.positions.items()
            ],
            "edges": [
                {
                    "parent": e.parent,
                    "child": e.child,
                    "x1": e.start.x,
                    "y1": e.start.y,
                    "x2": e.end.x,
                    "y2": e.end.y,
                    "highlighted": e.highlighted,
                }
                for e in self.edges
            ],
            "labels": [
                {
                    "name": lb.name,
                    "commit": lb.commit,
                    "x": lb.anchor.x,
                    "y": lb.anchor.y,
                    "isCurrent": lb.is_current,
                    "isRemote": lb.is_remote,
                }
                for lb in self.labels
            ],
        }


class LevelCalculator:
    """
    Longest-path-from-root levels for one layout pass.

    Owns the memo map and the in-progress marker set. Walks parents with an
    explicit stack so long linear histories do not hit the recursion limit.
    A parent found in progress (only possible on a cyclic input) counts as 0.
    """

    def __init__(self, commits_map: dict[str, CommitNode]):
        self.commits_map = commits_map
        self.levels: dict[str, int] = {}
        self._in_progress: set[str] = set()

    def _resolvable_parents(self, commit_hash: str) -> list[str]:
        return [p for p in self.commits_map[commit_hash].parents if p in self.commits_map]

    def level(self, commit_hash: str) -> int:
        if commit_hash in self.levels:
            return self.levels[commit_hash]
        if commit_hash not in self.commits_map:
            return 0

        try:
            self._in_progress.add(commit_hash)
            stack = [(commit_hash, iter(self._resolvable_parents(commit_hash)))]
            while stack:
                current, pending = stack[-1]
                descended = False
                for parent in pending:
                    if parent in self.levels or parent in self._in_progress:
                        continue
                    self._in_progress.add(parent)
                    stack.append((parent, iter(self._resolvable_parents(parent))))
                    descended = True
                    break
                if descended:
                    continue

                stack.pop()
                parents = self._resolvable_parents(current)
                if parents:
                    self.levels[current] = max(self.levels.get(p, 0) for p in parents) + 1
                else:
                    self.levels[current] = 0
                self._in_progress.discard(current)
        finally:
            self._in_progress.clear()

        return self.levels[commit_hash]

    def compute_all(self, commits: Iterable[CommitNode]) -> dict[str, int]:
        for commit in commits:
            self.level(commit.hash)
        return self.levels


def _unique_commits(commits: Iterable[CommitNode]) -> list[CommitNode]:
    seen: set[str] = set()
    unique = []
    for commit in commits:
        if not commit.hash or commit.hash in seen:
            continue
        seen.add(commit.hash)
        unique.append(commit)
    return unique


def compute_layout(
    commits: Iterable[CommitNode],
    branches: Iterable[BranchInfo] = (),
    canvas: Optional[CanvasSize] = None,
    selected: Optional[str] = None,
) -> GraphLayout:
    """
    Lay out a commit graph.

    x follows the commit's level (longest parent chain from a root), y follows
    the order in which commits of the same level appear in `commits`.
    Parent and branch hashes missing from `commits` are ignored.
    """
    canvas = canvas or CanvasSize()
    ordered = _unique_commits(commits)
    if not ordered:
        return GraphLayout()

    commits_map = {c.hash: c for c in ordered}
    levels = LevelCalculator(commits_map).compute_all(ordered)

    commits_by_level: dict[int, list[str]] = {}
    for commit in ordered:
        commits_by_level.setdefault(levels[commit.hash], []).append(commit.hash)

    max_level = max(commits_by_level)
    level_width = canvas.level_width(max_level)

    slotted: dict[str, Position] = {}
    for level, level_hashes in commits_by_level.items():
        x = canvas.margin_left + level * level_width
        for slot, commit_hash in enumerate(level_hashes):
            slotted[commit_hash] = Position(x, canvas.margin_top + slot * canvas.commit_spacing)
    # keep input order for iteration
    positions = {c.hash: slotted[c.hash] for c in ordered}

    edges = []
    for commit in ordered:
        for parent in commit.parents:
            if parent not in positions:
                continue
            edges.append(GraphEdge(parent, commit.hash, positions[parent], positions[commit.hash]))

    labels = []
    labels_per_commit: dict[str, int] = {}
    for branch in branches:
        if branch.commit not in positions:
            continue
        stacked = labels_per_commit.get(branch.commit, 0)
        labels_per_commit[branch.commit] = stacked + 1
        anchor = positions[branch.commit].offset(LABEL_OFFSET_X, LABEL_OFFSET_Y - stacked * LABEL_LINE_HEIGHT)
        labels.append(BranchLabel(branch.name, branch.commit, anchor, branch.is_current, branch.is_remote))

    layout = GraphLayout(
        levels={c.hash: levels[c.hash] for c in ordered},
        positions=positions,
        edges=edges,
        labels=labels,
        max_level=max_level,
    )
    return layout.highlight(selected)


@dataclass(frozen=True)
class ViewTransform:
    """Pan/zoom applied on top of a layout. Never feeds back into positions."""

    scale: float = 1.0
    dx: float = 0.0
    dy: float = 0.0

    def zoomed(self, factor: float, min_scale: float = MIN_ZOOM, max_scale: float = MAX_ZOOM) -> "ViewTransform":
        new_scale = min(max(self.scale * factor, min_scale), max_scale)
        return replace(self, scale=new_scale)

    def translated(self, dx: float, dy: float) -> "ViewTransform":
        return replace(self, dx=self.dx + dx, dy=self.dy + dy)

    def map(self, position: Position) -> Position:
        return Position(position.x * self.scale + self.dx, position.y * self.scale + self.dy)

    @property
    def zoom_percent(self) -> int:
        return round(self.scale * 100)
