import os
import shutil
import sys
import tempfile
import unittest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("REPOLENS_CONFIG_DIR", tempfile.mkdtemp())

import git
from PyQt6.QtWidgets import QApplication, QDialogButtonBox

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from components.rename_branch_dialog import RenameBranchDialog
from git_manager import GitManager
from views.branch_manager_view import BRANCH_ROLE, BranchManagerView

ACTOR = git.Actor("Tester", "tester@example.com")


class TestBranchManagerView(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QApplication.instance() or QApplication([])

    def setUp(self):
        self.repo_path = tempfile.mkdtemp()
        self.repo = git.Repo.init(self.repo_path)
        with self.repo.config_writer() as config:
            config.set_value("user", "name", ACTOR.name)
            config.set_value("user", "email", ACTOR.email)
        with open(os.path.join(self.repo_path, "a.txt"), "w") as f:
            f.write("a\n")
        self.repo.index.add(["a.txt"])
        self.root = self.repo.index.commit("Initial commit", author=ACTOR, committer=ACTOR)
        self.default_branch = self.repo.active_branch.name
        self.repo.create_head("feature", self.root)

        self.git_manager = GitManager(self.repo_path)
        self.git_manager.initialize()

        self.view = BranchManagerView()
        self.view.set_git_manager(self.git_manager)
        self.changes = []
        self.errors = []
        self.view.branches_changed.connect(lambda: self.changes.append(True))
        self.view.error_occurred.connect(self.errors.append)
        self.reload()

    def tearDown(self):
        self.view.deleteLater()
        self.repo.close()
        shutil.rmtree(self.repo_path)

    def reload(self):
        self.view.set_branches(self.git_manager.get_branches())

    def test_lists_local_branches(self):
        self.assertEqual(self.view.tree.topLevelItemCount(), 1)
        group = self.view.tree.topLevelItem(0)
        self.assertEqual(group.text(0), "Local Branches (2)")
        names = sorted(group.child(i).data(0, BRANCH_ROLE).name for i in range(group.childCount()))
        self.assertEqual(names, sorted([self.default_branch, "feature"]))

    def test_current_branch_buttons_disabled(self):
        self.assertTrue(self.view.select_branch(self.default_branch))
        self.assertIn("(current)", self.view.tree.currentItem().text(0))
        self.assertFalse(self.view.checkout_button.isEnabled())
        self.assertFalse(self.view.rename_button.isEnabled())
        self.assertFalse(self.view.delete_button.isEnabled())

        self.assertTrue(self.view.select_branch("feature"))
        self.assertTrue(self.view.checkout_button.isEnabled())
        self.assertTrue(self.view.rename_button.isEnabled())
        self.assertTrue(self.view.delete_button.isEnabled())

    def test_checkout_selected(self):
        self.view.select_branch("feature")
        self.assertTrue(self.view.checkout_selected())
        self.assertEqual(self.changes, [True])
        self.assertEqual(self.git_manager.get_current_branch(), "feature")
        self.assertTrue(self.view.command_preview_label.isHidden())

    def test_rename_branch(self):
        self.assertTrue(self.view.rename_branch("feature", "feature-2"))
        self.assertIn("feature-2", [h.name for h in self.repo.heads])
        self.assertEqual(self.changes, [True])

    def test_rename_to_existing_branch_reports_error(self):
        self.assertFalse(self.view.rename_branch("feature", self.default_branch))
        self.assertEqual(self.errors, [f"Branch '{self.default_branch}' already exists."])
        self.assertEqual(self.changes, [])
        self.assertIn("git branch -m", self.view.command_preview_label.text())

    def test_delete_branch(self):
        self.view.select_branch("feature")
        self.assertTrue(self.view.delete_branch(self.view.selected_branch()))
        self.assertNotIn("feature", [h.name for h in self.repo.heads])
        self.assertEqual(self.changes, [True])

    def test_delete_current_branch_refused(self):
        self.view.select_branch(self.default_branch)
        self.assertFalse(self.view.delete_branch(self.view.selected_branch()))
        self.assertEqual(self.errors, ["Cannot delete the current branch"])
        self.assertIn(self.default_branch, [h.name for h in self.repo.heads])


class TestRenameBranchDialog(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = QApplication.instance() or QApplication([])

    def test_preview_and_ok_button(self):
        dialog = RenameBranchDialog("feature")
        self.assertFalse(dialog.buttons.button(QDialogButtonBox.StandardButton.Ok).isEnabled())
        dialog.name_edit.setText("feature-renamed")
        self.assertTrue(dialog.buttons.button(QDialogButtonBox.StandardButton.Ok).isEnabled())
        self.assertEqual(dialog.preview_label.text(), "git branch -m feature feature-renamed")
        self.assertEqual(dialog.get_new_name(), "feature-renamed")
        dialog.name_edit.setText("  ")
        self.assertFalse(dialog.buttons.button(QDialogButtonBox.StandardButton.Ok).isEnabled())
        dialog.deleteLater()


if __name__ == "__main__":
    unittest.main()
