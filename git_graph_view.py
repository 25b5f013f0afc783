# git_graph_view.py

from typing import Optional

from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QAction, QBrush, QPainter
from PyQt6.QtWidgets import QApplication, QGraphicsScene, QGraphicsView, QMenu

from git_graph_data import BranchInfo, CommitNode
from git_graph_items import (
    BACKGROUND_COLOR,
    HASH_TEXT_OFFSET,
    BranchLabelItem,
    CommitCircle,
    CommitHashItem,
    EdgeLine,
)
from git_graph_layout import (
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    CanvasSize,
    GraphLayout,
    ViewTransform,
    compute_layout,
)
from utils import timeit

ZOOM_STEP = 1.1
RELAYOUT_DELAY_MS = 150


class GitGraphView(QGraphicsView):
    commit_selected = pyqtSignal(str)
    view_transform_changed = pyqtSignal(float, float, float)  # (scale, dx, dy)
    zoom_changed = pyqtSignal(int)  # percent

    def __init__(self, parent=None):
        super().__init__(parent)
        self.scene = QGraphicsScene(self)
        self.scene.setBackgroundBrush(QBrush(BACKGROUND_COLOR))
        self.setScene(self.scene)

        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)  # Enable panning
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)  # Zoom towards mouse

        self._commits: list[CommitNode] = []
        self._branches: list[BranchInfo] = []
        self.layout_result = GraphLayout()
        self.selected_commit: Optional[str] = None
        self.view_transform = ViewTransform()
        self._canvas_width: Optional[float] = None

        self._commit_items: dict[str, CommitCircle] = {}
        self._edge_items: list[EdgeLine] = []
        self._label_items: list[BranchLabelItem] = []

        # Resizes arrive in bursts, lay out once they settle
        self._relayout_timer = QTimer(self)
        self._relayout_timer.setSingleShot(True)
        self._relayout_timer.setInterval(RELAYOUT_DELAY_MS)
        self._relayout_timer.timeout.connect(self._relayout_if_resized)

        self.horizontalScrollBar().valueChanged.connect(self._emit_transform)
        self.verticalScrollBar().valueChanged.connect(self._emit_transform)

        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.customContextMenuRequested.connect(self._show_context_menu)

    def canvas_size(self) -> CanvasSize:
        viewport = self.viewport().size()
        width = viewport.width() if viewport.width() > 1 else DEFAULT_CANVAS_WIDTH
        height = viewport.height() if viewport.height() > 1 else DEFAULT_CANVAS_HEIGHT
        return CanvasSize(width=width, height=height)

    def clear_graph(self):
        self.scene.clear()
        self._commit_items.clear()
        self._edge_items.clear()
        self._label_items.clear()

    def set_graph_data(self, commits: list[CommitNode], branches: list[BranchInfo]):
        """Replace the commit/branch snapshot and lay it out again."""
        self._commits = list(commits)
        self._branches = list(branches)
        if self.selected_commit and not any(c.hash == self.selected_commit for c in self._commits):
            self.selected_commit = None
        self.relayout()

    @timeit
    def relayout(self):
        canvas = self.canvas_size()
        self._canvas_width = canvas.width
        self.layout_result = compute_layout(self._commits, self._branches, canvas, selected=self.selected_commit)
        self.populate_graph()

    def _relayout_if_resized(self):
        if self._commits and self.canvas_size().width != self._canvas_width:
            self.relayout()

    def populate_graph(self):
        self.clear_graph()
        layout = self.layout_result
        if layout.is_empty():
            return

        commits_map = {c.hash: c for c in self._commits}

        for edge in layout.edges:
            edge_item = EdgeLine(edge)
            self.scene.addItem(edge_item)
            self._edge_items.append(edge_item)

        for commit_hash, position in layout.positions.items():
            commit_node = commits_map[commit_hash]
            commit_item = CommitCircle(commit_node)
            commit_item.setPos(position.x, position.y)
            commit_item.set_highlighted(commit_hash == layout.selected)
            self.scene.addItem(commit_item)
            self._commit_items[commit_hash] = commit_item

            hash_item = CommitHashItem(commit_node)
            hash_item.setPos(position.x + HASH_TEXT_OFFSET.x(), position.y + HASH_TEXT_OFFSET.y())
            self.scene.addItem(hash_item)

        for label in layout.labels:
            label_item = BranchLabelItem(label)
            self.scene.addItem(label_item)
            self._label_items.append(label_item)

        self.scene.setSceneRect(self.scene.itemsBoundingRect().adjusted(-50, -50, 50, 50))

    def select_commit(self, commit_hash: Optional[str], notify: bool = True):
        """Highlight a commit and the edges touching it."""
        self.layout_result = self.layout_result.highlight(commit_hash)
        self.selected_commit = self.layout_result.selected

        for item_hash, item in self._commit_items.items():
            item.set_highlighted(item_hash == self.selected_commit)
        for edge_item in self._edge_items:
            edge_item.set_highlighted(edge_item.edge.touches(self.selected_commit))

        if notify and self.selected_commit:
            self.commit_selected.emit(self.selected_commit)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._relayout_timer.start()

    def wheelEvent(self, event):
        """Handle mouse wheel events for zooming."""
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            if event.angleDelta().y() > 0:
                self.zoom_in()
            else:
                self.zoom_out()
            event.accept()
        else:
            super().wheelEvent(event)

    def apply_zoom(self, factor: float):
        new_transform = self.view_transform.zoomed(factor)
        applied = new_transform.scale / self.view_transform.scale
        self.view_transform = new_transform
        if applied != 1.0:
            self.scale(applied, applied)
        self.zoom_changed.emit(self.view_transform.zoom_percent)
        self._emit_transform()

    def zoom_in(self):
        self.apply_zoom(ZOOM_STEP)

    def zoom_out(self):
        self.apply_zoom(1.0 / ZOOM_STEP)

    def reset_zoom(self):
        self.apply_zoom(1.0 / self.view_transform.scale)

    def _emit_transform(self, *_):
        dx = -float(self.horizontalScrollBar().value())
        dy = -float(self.verticalScrollBar().value())
        self.view_transform = ViewTransform(self.view_transform.scale, dx, dy)
        self.view_transform_changed.emit(self.view_transform.scale, dx, dy)

    def keyPressEvent(self, event):
        """Handle key presses for zooming or other actions."""
        ctrl = event.modifiers() & Qt.KeyboardModifier.ControlModifier
        if ctrl and event.key() in (Qt.Key.Key_Plus, Qt.Key.Key_Equal):
            self.zoom_in()
        elif ctrl and event.key() == Qt.Key.Key_Minus:
            self.zoom_out()
        elif ctrl and event.key() == Qt.Key.Key_0:
            self.reset_zoom()
        else:
            super().keyPressEvent(event)

    def commit_item_at(self, pos) -> Optional[CommitCircle]:
        item = self.itemAt(pos)
        return item if isinstance(item, CommitCircle) else None

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            commit_item = self.commit_item_at(event.pos())
            if commit_item is not None:
                self.select_commit(commit_item.commit_node.hash)
        super().mousePressEvent(event)  # keep panning

    def _show_context_menu(self, pos):
        commit_item = self.commit_item_at(pos)
        if commit_item is None:
            return

        menu = QMenu(self)
        copy_action = QAction("Copy Commit Hash", self)
        copy_action.triggered.connect(lambda: QApplication.clipboard().setText(commit_item.commit_node.hash))
        menu.addAction(copy_action)
        menu.exec(self.viewport().mapToGlobal(pos))
