from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtWidgets import QFrame, QLabel, QPushButton, QSizePolicy, QVBoxLayout

HIDE_AFTER_MS = 7000

ERROR_STYLE = """
    NotificationWidget {
        background-color: #3d1f24;
        border: 1px solid #f85149;
        border-radius: 5px;
    }
    QLabel { color: #ffdcd7; }
"""
INFO_STYLE = """
    NotificationWidget {
        background-color: #161b22;
        border: 1px solid #30363d;
        border-radius: 5px;
    }
    QLabel { color: #c9d1d9; }
"""


class NotificationWidget(QFrame):
    def __init__(self, parent=None):
        super().__init__(parent)

        self.setFixedWidth(320)
        self.setMinimumHeight(50)
        self.setStyleSheet(INFO_STYLE)
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.hide()

        layout = QVBoxLayout(self)

        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        self.message_label.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

        self.close_button = QPushButton("Close")
        self.close_button.clicked.connect(self.hide_widget)
        self.close_button.setSizePolicy(QSizePolicy.Policy.Fixed, QSizePolicy.Policy.Fixed)

        layout.addWidget(self.message_label)
        layout.addWidget(self.close_button, alignment=Qt.AlignmentFlag.AlignRight)

        self.hide_timer = QTimer(self)
        self.hide_timer.setSingleShot(True)
        self.hide_timer.timeout.connect(self.hide_widget)

    def show_message(self, message: str, is_error: bool = False):
        self.setStyleSheet(ERROR_STYLE if is_error else INFO_STYLE)
        self.message_label.setText(message)
        self.adjustSize()
        # top-right corner of the parent
        if self.parentWidget():
            parent_rect = self.parentWidget().rect()
            self.move(parent_rect.right() - self.width() - 10, 10)
        self.show()
        self.hide_timer.start(HIDE_AFTER_MS)
        self.raise_()

    def show_error(self, message: str):
        self.show_message(message, is_error=True)

    def hide_widget(self):
        self.hide()
        if self.hide_timer.isActive():
            self.hide_timer.stop()
