import logging
from datetime import datetime
from html import escape
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QSplitter,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

from git_graph_data import CommitDetails, CommitNode
from git_manager import GitManager, command_preview
from threads import CommitDetailThread
from utils import short_hash

# 常量用于分支显示
MAX_BRANCHES_TO_SHOW = 3


def format_commit_date(date: str) -> str:
    try:
        return datetime.fromisoformat(date).strftime("%Y-%m-%d %H:%M:%S")
    except (TypeError, ValueError):
        return date or ""


class CommitDetailView(QWidget):
    """
    Commit详细信息视图
    上半部分显示提交信息，下半部分列出该提交中的所有文件
    """

    file_selected = pyqtSignal(str, str)  # (file_path, commit_hash)
    checkout_requested = pyqtSignal(str)
    error_occurred = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.git_manager: Optional[GitManager] = None
        self.current_commit: Optional[CommitNode] = None
        self.details: Optional[CommitDetails] = None
        self._threads: list[CommitDetailThread] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        header_layout = QHBoxLayout()
        self.title_label = QLabel("No commit selected")
        header_layout.addWidget(self.title_label)
        header_layout.addStretch(1)
        self.checkout_button = QPushButton("Checkout commit")
        self.checkout_button.setEnabled(False)
        self.checkout_button.clicked.connect(self._on_checkout_clicked)
        header_layout.addWidget(self.checkout_button)
        layout.addLayout(header_layout)

        splitter = QSplitter(Qt.Orientation.Vertical)
        self.info_browser = QTextBrowser()
        self.info_browser.setOpenLinks(False)
        self.info_browser.setStyleSheet("font-family: monospace;")
        splitter.addWidget(self.info_browser)

        self.file_list = QListWidget()
        self.file_list.itemDoubleClicked.connect(self._on_file_activated)
        splitter.addWidget(self.file_list)
        splitter.setSizes([300, 200])
        layout.addWidget(splitter)

    def set_git_manager(self, git_manager: Optional[GitManager]):
        self.git_manager = git_manager
        self.clear()

    def clear(self):
        self.current_commit = None
        self.details = None
        self.title_label.setText("No commit selected")
        self.checkout_button.setEnabled(False)
        self.checkout_button.setToolTip("")
        self.info_browser.clear()
        self.file_list.clear()

    def show_commit(self, commit: CommitNode):
        """在后台线程加载提交详情和文件列表"""
        if self.git_manager is None:
            return
        self.current_commit = commit
        self.details = None
        self.title_label.setText(f"Commit {commit.short_hash}")
        self.checkout_button.setEnabled(True)
        self.checkout_button.setToolTip(command_preview("checkout", commit.hash))
        self.info_browser.setPlainText("Loading...")
        self.file_list.clear()

        thread = CommitDetailThread(self.git_manager.repo_path, commit.hash, parent=self)
        thread.finished.connect(self.on_details_loaded)
        thread.error.connect(self.on_details_error)
        thread.finished.connect(lambda *_, t=thread: self._forget_thread(t))
        thread.error.connect(lambda *_, t=thread: self._forget_thread(t))
        self._threads.append(thread)
        thread.start()

    def _forget_thread(self, thread: CommitDetailThread):
        if thread in self._threads:
            self._threads.remove(thread)

    def wait_for_threads(self):
        for thread in list(self._threads):
            thread.wait()

    def _is_current(self, commit_hash: str) -> bool:
        # 用户可能已经点了别的提交
        return self.current_commit is not None and self.current_commit.hash == commit_hash

    def on_details_loaded(self, commit_hash: str, details: CommitDetails, files: list, patch: str):
        if not self._is_current(commit_hash):
            return
        self.details = details
        self.info_browser.setHtml(self._render_html(self.current_commit, details, patch))
        self.file_list.clear()
        for path in files:
            item = QListWidgetItem(path)
            item.setData(Qt.ItemDataRole.UserRole, path)
            self.file_list.addItem(item)

    def on_details_error(self, commit_hash: str, message: str):
        if not self._is_current(commit_hash):
            return
        logging.error("加载提交 %s 详情失败: %s", commit_hash, message)
        self.info_browser.setPlainText(message)
        self.file_list.clear()
        self.error_occurred.emit(message)

    def _render_html(self, commit: CommitNode, details: CommitDetails, patch: str = "") -> str:
        refs = list(commit.branches)
        if len(refs) > MAX_BRANCHES_TO_SHOW:
            refs = refs[:MAX_BRANCHES_TO_SHOW] + [f"+{len(commit.branches) - MAX_BRANCHES_TO_SHOW} more"]
        rows = [
            ("Hash", details.hash),
            ("Author", f"{details.author} <{details.email}>"),
            ("Date", format_commit_date(details.date)),
            ("Parents", ", ".join(short_hash(p) for p in commit.parents) or "(root)"),
        ]
        if refs:
            rows.append(("Branches", ", ".join(refs)))
        if commit.tags:
            rows.append(("Tags", ", ".join(commit.tags)))

        html = ["<table>"]
        for name, value in rows:
            html.append(f"<tr><td><b>{name}:</b></td><td>{escape(value)}</td></tr>")
        html.append("</table>")
        html.append(f"<h3>{escape(details.subject)}</h3>")
        if details.body:
            html.append(f"<pre>{escape(details.body)}</pre>")
        if details.stat:
            html.append(f"<pre>{escape(details.stat)}</pre>")
        if details.diff:
            html.append(f"<pre>{escape(details.diff)}</pre>")
        if patch:
            html.append(f"<hr><pre>{escape(patch)}</pre>")
        return "".join(html)

    def _on_file_activated(self, item: QListWidgetItem):
        if self.current_commit is None:
            return
        self.file_selected.emit(item.data(Qt.ItemDataRole.UserRole), self.current_commit.hash)

    def _on_checkout_clicked(self):
        if self.current_commit is not None:
            self.checkout_requested.emit(self.current_commit.hash)
