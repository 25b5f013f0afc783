# git_graph_items.py

from PyQt6.QtCore import QPointF, Qt
from PyQt6.QtGui import QBrush, QColor, QFont, QPainterPath, QPen
from PyQt6.QtWidgets import QGraphicsEllipseItem, QGraphicsItem, QGraphicsPathItem, QGraphicsSimpleTextItem

from git_graph_data import CommitNode
from git_graph_layout import BranchLabel, GraphEdge, Position

# --- Configuration for items ---
COMMIT_RADIUS = 8

BACKGROUND_COLOR = QColor("#0d1117")

COMMIT_COLOR = QColor("#8b949e")
BRANCH_TIP_COLOR = QColor("#3fb950")
SELECTED_COMMIT_COLOR = QColor("#58a6ff")
HOVER_COMMIT_COLOR = QColor("#c9d1d9")
COMMIT_BORDER_COLOR = QColor("#30363d")
SELECTED_BORDER_COLOR = QColor("#79c0ff")

EDGE_COLOR = QColor("#30363d")
HIGHLIGHTED_EDGE_COLOR = QColor("#58a6ff")
EDGE_THICKNESS = 2
HIGHLIGHTED_EDGE_THICKNESS = 3

HASH_TEXT_COLOR = QColor("#c9d1d9")
HASH_TEXT_OFFSET = QPointF(15, -8)
LABEL_COLOR = QColor("#8b949e")
CURRENT_LABEL_COLOR = QColor("#58a6ff")
LABEL_FONT_FAMILY = "Arial"
LABEL_FONT_SIZE = 8


def _to_point(position: Position) -> QPointF:
    return QPointF(position.x, position.y)


class CommitCircle(QGraphicsEllipseItem):
    def __init__(self, commit_node: CommitNode, parent: QGraphicsItem = None):
        super().__init__(-COMMIT_RADIUS, -COMMIT_RADIUS, 2 * COMMIT_RADIUS, 2 * COMMIT_RADIUS, parent)
        self.commit_node = commit_node
        self.base_color = BRANCH_TIP_COLOR if commit_node.branches else COMMIT_COLOR
        self.is_highlighted = False

        self.setAcceptHoverEvents(True)
        self.setCursor(Qt.CursorShape.PointingHandCursor)
        self._apply_style()

        tooltip_text = (
            f"{self.commit_node.hash}\n"
            f"{self.commit_node.message}\n"
            f"{self.commit_node.author}\n"
            f"{self.commit_node.date}"
        )
        self.setToolTip(tooltip_text)

    def _apply_style(self):
        if self.is_highlighted:
            self.setBrush(QBrush(SELECTED_COMMIT_COLOR))
            self.setPen(QPen(SELECTED_BORDER_COLOR, 2))
        else:
            self.setBrush(QBrush(self.base_color))
            self.setPen(QPen(COMMIT_BORDER_COLOR, 1))

    def set_highlighted(self, highlighted: bool):
        self.is_highlighted = highlighted
        self._apply_style()

    def hoverEnterEvent(self, event):
        if not self.is_highlighted:
            self.setBrush(QBrush(HOVER_COMMIT_COLOR))
        super().hoverEnterEvent(event)

    def hoverLeaveEvent(self, event):
        self._apply_style()
        super().hoverLeaveEvent(event)


class EdgeLine(QGraphicsPathItem):
    """Straight line from a parent commit to a child commit."""

    def __init__(self, edge: GraphEdge, parent: QGraphicsItem = None):
        super().__init__(parent)
        self.edge = edge
        self.is_highlighted = edge.highlighted
        self.setZValue(-1)  # Draw edges behind commits

        path = QPainterPath()
        path.moveTo(_to_point(edge.start))
        path.lineTo(_to_point(edge.end))
        self.setPath(path)
        self._apply_style()

    def _apply_style(self):
        color = HIGHLIGHTED_EDGE_COLOR if self.is_highlighted else EDGE_COLOR
        width = HIGHLIGHTED_EDGE_THICKNESS if self.is_highlighted else EDGE_THICKNESS
        self.setPen(QPen(color, width, Qt.PenStyle.SolidLine, Qt.PenCapStyle.RoundCap, Qt.PenJoinStyle.RoundJoin))

    def set_highlighted(self, highlighted: bool):
        self.is_highlighted = highlighted
        self._apply_style()


class CommitHashItem(QGraphicsSimpleTextItem):
    def __init__(self, commit_node: CommitNode, parent: QGraphicsItem = None):
        super().__init__(commit_node.short_hash, parent)
        self.setFont(QFont(LABEL_FONT_FAMILY, LABEL_FONT_SIZE + 1))
        self.setBrush(QBrush(HASH_TEXT_COLOR))


class BranchLabelItem(QGraphicsSimpleTextItem):
    def __init__(self, label: BranchLabel, parent: QGraphicsItem = None):
        super().__init__(label.name, parent)
        self.label = label

        font = QFont(LABEL_FONT_FAMILY, LABEL_FONT_SIZE)
        # The checked-out branch gets the heavier weight
        font.setWeight(QFont.Weight.DemiBold if label.is_current else QFont.Weight.Normal)
        self.setFont(font)
        self.setBrush(QBrush(CURRENT_LABEL_COLOR if label.is_current else LABEL_COLOR))

        # anchor is the text baseline, as the layout describes it
        self.setPos(label.anchor.x, label.anchor.y - self.boundingRect().height())
        if label.is_remote:
            self.setToolTip(f"remote branch {label.name}")
