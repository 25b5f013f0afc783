from PyQt6.QtCore import pyqtSignal
from PyQt6.QtGui import QAction
from PyQt6.QtWidgets import QFileDialog, QHBoxLayout, QLabel, QLineEdit, QMenu, QPushButton, QWidget


class RepoSelectorBar(QWidget):
    repo_path_submitted = pyqtSignal(str)
    refresh_requested = pyqtSignal()
    clear_recent_requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(50)

        self._layout = QHBoxLayout()
        self._layout.setContentsMargins(10, 5, 10, 5)
        self._layout.setSpacing(10)
        self.setLayout(self._layout)

        self._layout.addWidget(QLabel("Repository:"))

        self.path_edit = QLineEdit()
        self.path_edit.setPlaceholderText("/path/to/git/repository")
        self.path_edit.returnPressed.connect(self._submit_path)
        self._layout.addWidget(self.path_edit, 1)

        self.load_button = QPushButton("Load")
        self.load_button.clicked.connect(self._submit_path)
        self._layout.addWidget(self.load_button)

        self.browse_button = QPushButton("📁 Browse")
        self.browse_button.clicked.connect(self._browse)
        self._layout.addWidget(self.browse_button)

        # --- Recent Repositories Button and Menu ---
        self.recent_button = QPushButton("Recent")
        self.recent_menu = QMenu(self)
        self.recent_button.setMenu(self.recent_menu)
        self._layout.addWidget(self.recent_button)

        self.refresh_button = QPushButton("Refresh")
        self.refresh_button.setEnabled(False)
        self.refresh_button.clicked.connect(self.refresh_requested.emit)
        self._layout.addWidget(self.refresh_button)

        self.zoom_label = QLabel("100%")
        self.zoom_label.setToolTip("Ctrl+Wheel / Ctrl+= / Ctrl+- to zoom, Ctrl+0 to reset")
        self._layout.addWidget(self.zoom_label)

        self.update_recent_menu([])

    def _submit_path(self):
        path = self.path_edit.text().strip()
        if path:
            self.repo_path_submitted.emit(path)

    def _browse(self):
        folder_path = QFileDialog.getExistingDirectory(self, "Select Git Repository", self.path_edit.text())
        if folder_path:
            self.set_repo_path(folder_path)
            self.repo_path_submitted.emit(folder_path)

    def set_repo_path(self, path: str):
        self.path_edit.setText(path or "")

    def set_loaded(self, loaded: bool):
        self.refresh_button.setEnabled(loaded)

    def set_zoom_percent(self, percent: int):
        self.zoom_label.setText(f"{percent}%")

    def update_recent_menu(self, recent_repos):
        self.recent_menu.clear()
        for repo_path in recent_repos:
            action = QAction(repo_path, self)
            action.triggered.connect(lambda checked=False, p=repo_path: self._select_recent(p))
            self.recent_menu.addAction(action)
        if recent_repos:
            self.recent_menu.addSeparator()
        clear_action = QAction("Clear Recent", self)
        clear_action.triggered.connect(self.clear_recent_requested.emit)
        self.recent_menu.addAction(clear_action)
        self.recent_button.setEnabled(bool(recent_repos))

    def _select_recent(self, repo_path: str):
        self.set_repo_path(repo_path)
        self.repo_path_submitted.emit(repo_path)
