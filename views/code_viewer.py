import os

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QLabel, QPlainTextEdit, QVBoxLayout, QWidget

from settings import settings
from syntax_highlighter import CodeHighlighter
from utils import short_hash


class CodeViewer(QWidget):
    """只读代码查看器，显示某个提交中的文件内容"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.file_path = None
        self.commit_hash = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.title_label = QLabel("No file selected")
        layout.addWidget(self.title_label)

        self.editor = QPlainTextEdit()
        self.editor.setReadOnly(True)
        self.editor.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.editor.setFont(QFont(settings.get_font_family(), settings.get_font_size()))
        layout.addWidget(self.editor)

        self.highlighter = CodeHighlighter(self.editor.document(), settings.get_code_style())

    def show_file(self, file_path: str, commit_hash: str, content: str):
        self.file_path = file_path
        self.commit_hash = commit_hash
        self.title_label.setText(f"{file_path} @ {short_hash(commit_hash)}")
        self.highlighter.set_file(os.path.basename(file_path), content)
        self.editor.setPlainText(content)

    def clear_file(self):
        self.file_path = None
        self.commit_hash = None
        self.title_label.setText("No file selected")
        self.editor.clear()
