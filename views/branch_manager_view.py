import logging
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from components.rename_branch_dialog import RenameBranchDialog
from git_graph_data import BranchInfo
from git_manager import GitManager, command_preview
from utils import short_hash

BRANCH_ROLE = Qt.ItemDataRole.UserRole


class BranchManagerView(QWidget):
    """本地/远程分支列表，支持检出、重命名、删除"""

    branches_changed = pyqtSignal()
    error_occurred = pyqtSignal(str)
    branch_activated = pyqtSignal(str)  # commit hash of the double-clicked branch

    def __init__(self, parent=None):
        super().__init__(parent)
        self.git_manager: Optional[GitManager] = None
        self.branches: list[BranchInfo] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self.command_preview_label = QLabel()
        self.command_preview_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        self.command_preview_label.setStyleSheet("font-family: monospace; color: #58a6ff;")
        self.command_preview_label.hide()
        layout.addWidget(self.command_preview_label)

        self.tree = QTreeWidget()
        self.tree.setHeaderLabels(["Branch", "Commit"])
        self.tree.setRootIsDecorated(True)
        self.tree.currentItemChanged.connect(self._update_buttons)
        self.tree.itemDoubleClicked.connect(self._on_item_double_clicked)
        layout.addWidget(self.tree)

        button_layout = QHBoxLayout()
        self.checkout_button = QPushButton("Checkout")
        self.checkout_button.clicked.connect(self.checkout_selected)
        button_layout.addWidget(self.checkout_button)

        self.rename_button = QPushButton("Rename")
        self.rename_button.clicked.connect(self._on_rename_clicked)
        button_layout.addWidget(self.rename_button)

        self.delete_button = QPushButton("Delete")
        self.delete_button.clicked.connect(self._on_delete_clicked)
        button_layout.addWidget(self.delete_button)
        layout.addLayout(button_layout)

        self._update_buttons()

    def set_git_manager(self, git_manager: Optional[GitManager]):
        self.git_manager = git_manager

    def set_branches(self, branches: list[BranchInfo]):
        self.branches = list(branches)
        self.tree.clear()

        local_branches = [b for b in self.branches if not b.is_remote]
        remote_branches = [b for b in self.branches if b.is_remote]

        local_group = QTreeWidgetItem(self.tree, [f"Local Branches ({len(local_branches)})"])
        for branch in local_branches:
            self._add_branch_item(local_group, branch)
        local_group.setExpanded(True)

        if remote_branches:
            remote_group = QTreeWidgetItem(self.tree, [f"Remote Branches ({len(remote_branches)})"])
            for branch in remote_branches:
                self._add_branch_item(remote_group, branch)
            remote_group.setExpanded(True)

        self.tree.resizeColumnToContents(0)
        self._update_buttons()

    def _add_branch_item(self, group: QTreeWidgetItem, branch: BranchInfo):
        text = f"{branch.name}  (current)" if branch.is_current else branch.name
        item = QTreeWidgetItem(group, [text, short_hash(branch.commit)])
        item.setData(0, BRANCH_ROLE, branch)
        if branch.is_current:
            font = item.font(0)
            font.setWeight(QFont.Weight.Bold)
            item.setFont(0, font)

    def selected_branch(self) -> Optional[BranchInfo]:
        item = self.tree.currentItem()
        if item is None:
            return None
        return item.data(0, BRANCH_ROLE)

    def select_branch(self, name: str, is_remote: bool = False) -> bool:
        for i in range(self.tree.topLevelItemCount()):
            group = self.tree.topLevelItem(i)
            for j in range(group.childCount()):
                branch = group.child(j).data(0, BRANCH_ROLE)
                if branch.name == name and branch.is_remote == is_remote:
                    self.tree.setCurrentItem(group.child(j))
                    return True
        return False

    def _update_buttons(self, *_):
        branch = self.selected_branch()
        self.checkout_button.setEnabled(branch is not None and not branch.is_current)
        # 远程分支不能重命名，删除时强制
        self.rename_button.setEnabled(branch is not None and not branch.is_remote and not branch.is_current)
        self.delete_button.setEnabled(branch is not None and not branch.is_current)

    def _show_preview(self, command: str):
        self.command_preview_label.setText(f"Command to execute: {command}")
        self.command_preview_label.show()

    def _hide_preview(self):
        self.command_preview_label.clear()
        self.command_preview_label.hide()

    def _finish(self, error: Optional[str]) -> bool:
        if error:
            self.error_occurred.emit(error)
            return False
        self._hide_preview()
        self.branches_changed.emit()
        return True

    def checkout_selected(self) -> bool:
        branch = self.selected_branch()
        if branch is None or branch.is_current or self.git_manager is None:
            return False
        self._show_preview(command_preview("checkout", branch.name))
        error = self.git_manager.checkout_branch(branch.name)
        if error:
            self._hide_preview()
        return self._finish(error)

    def rename_branch(self, old_name: str, new_name: str) -> bool:
        if self.git_manager is None or not new_name or new_name == old_name:
            return False
        self._show_preview(command_preview("rename", old_name, new_name))
        return self._finish(self.git_manager.rename_branch(old_name, new_name))

    def delete_branch(self, branch: BranchInfo, force: bool = False) -> bool:
        if self.git_manager is None:
            return False
        if branch.is_current:
            self.error_occurred.emit("Cannot delete the current branch")
            return False
        self._show_preview(command_preview("delete", branch.name, force=force))
        return self._finish(self.git_manager.delete_branch(branch.name, force=force))

    def _on_rename_clicked(self):
        branch = self.selected_branch()
        if branch is None:
            return
        dialog = RenameBranchDialog(branch.name, self)
        if dialog.exec() == QDialog.DialogCode.Accepted:
            self.rename_branch(branch.name, dialog.get_new_name())

    def _on_delete_clicked(self):
        branch = self.selected_branch()
        if branch is None:
            return
        if branch.is_current:
            self.error_occurred.emit("Cannot delete the current branch")
            return

        force = branch.is_remote
        command = command_preview("delete", branch.name, force=force)
        self._show_preview(command)
        answer = QMessageBox.question(
            self,
            "Delete Branch",
            f"Are you sure you want to delete branch '{branch.name}'?\n\n{command}",
        )
        if answer != QMessageBox.StandardButton.Yes:
            self._hide_preview()
            return

        error = self.git_manager.delete_branch(branch.name, force=force) if self.git_manager else None
        if error and "not fully merged" in error and not force:
            logging.info("Branch %s is not fully merged, asking for force delete", branch.name)
            answer = QMessageBox.warning(
                self,
                "Force Delete Branch",
                f"'{branch.name}' is not fully merged. Force delete it? Unmerged changes will be lost.\n\n"
                f"{command_preview('delete', branch.name, force=True)}",
                QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            )
            if answer == QMessageBox.StandardButton.Yes:
                self.delete_branch(branch, force=True)
                return
            self._hide_preview()
            return
        self._finish(error)

    def _on_item_double_clicked(self, item: QTreeWidgetItem, column: int):
        branch = item.data(0, BRANCH_ROLE)
        if branch is not None:
            self.branch_activated.emit(branch.commit)
