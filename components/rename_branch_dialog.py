from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
)

from git_manager import command_preview


class RenameBranchDialog(QDialog):
    """重命名分支对话框，实时显示将要执行的命令"""

    def __init__(self, branch_name: str, parent=None):
        super().__init__(parent)
        self.branch_name = branch_name
        self.setWindowTitle("Rename Branch")
        self.setMinimumWidth(350)

        layout = QVBoxLayout(self)

        name_layout = QHBoxLayout()
        name_layout.addWidget(QLabel("New name:"))
        self.name_edit = QLineEdit(branch_name)
        self.name_edit.selectAll()
        self.name_edit.textChanged.connect(self._update_preview)
        name_layout.addWidget(self.name_edit)
        layout.addLayout(name_layout)

        self.preview_label = QLabel()
        self.preview_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        layout.addWidget(self.preview_label)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Cancel | QDialogButtonBox.StandardButton.Ok,
            Qt.Orientation.Horizontal,
            self,
        )
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

        self._update_preview()

    def get_new_name(self) -> str:
        return self.name_edit.text().strip()

    def _update_preview(self):
        new_name = self.get_new_name()
        valid = bool(new_name) and new_name != self.branch_name
        self.buttons.button(QDialogButtonBox.StandardButton.Ok).setEnabled(valid)
        self.preview_label.setText(command_preview("rename", self.branch_name, new_name) if valid else "")
