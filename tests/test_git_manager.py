import os
import shutil
import sys
import tempfile
import unittest

import git  # Make sure 'gitpython' is installed in the test environment

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from git_manager import GitManager, GitManagerError, command_preview, is_valid_commit_hash, validate_repo_path

ACTOR = git.Actor("Tester", "tester@example.com")


def write_file(repo_path, rel_path, content):
    abs_path = os.path.join(repo_path, rel_path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    with open(abs_path, "w") as f:
        f.write(content)


class GitRepoTestCase(unittest.TestCase):
    """Temporary repository: initial commit -> second commit on the default branch,
    `feature` at the initial commit, `topic` one unmerged commit ahead."""

    def setUp(self):
        self.repo_path = tempfile.mkdtemp()
        self.repo = git.Repo.init(self.repo_path)
        with self.repo.config_writer() as config:
            config.set_value("user", "name", ACTOR.name)
            config.set_value("user", "email", ACTOR.email)

        write_file(self.repo_path, "a.txt", "first\n")
        self.repo.index.add(["a.txt"])
        self.commit1 = self.repo.index.commit("Initial commit", author=ACTOR, committer=ACTOR)
        self.default_branch = self.repo.active_branch.name
        self.repo.create_head("feature", self.commit1)
        self.repo.create_tag("v0.1", ref=self.commit1, message="first release")

        write_file(self.repo_path, "a.txt", "first\nsecond\n")
        write_file(self.repo_path, os.path.join("src", "b.py"), "print('b')\n")
        self.repo.index.add(["a.txt", "src/b.py"])
        self.commit2 = self.repo.index.commit("Second commit\n\nBody line", author=ACTOR, committer=ACTOR)
        self.repo.create_tag("v1.0", ref=self.commit2)

        self.topic_commit = self.repo.index.commit(
            "Topic work", parent_commits=[self.commit2], head=False, author=ACTOR, committer=ACTOR
        )
        self.repo.create_head("topic", self.topic_commit)

        self.git_manager = GitManager(self.repo_path)
        self.assertTrue(self.git_manager.initialize())

    def tearDown(self):
        self.repo.close()
        shutil.rmtree(self.repo_path)


class TestGitManagerQueries(GitRepoTestCase):
    def test_initialize_rejects_non_repo(self):
        not_repo = tempfile.mkdtemp()
        try:
            self.assertFalse(GitManager(not_repo).initialize())
        finally:
            shutil.rmtree(not_repo)

    def test_current_branch(self):
        self.assertEqual(self.git_manager.get_current_branch(), self.default_branch)

    def test_current_branch_detached(self):
        self.assertIsNone(self.git_manager.checkout_commit(self.commit1.hexsha))
        self.assertEqual(self.git_manager.get_current_branch(), "HEAD")

    def test_get_branches(self):
        branches = {b.name: b for b in self.git_manager.get_branches()}
        self.assertEqual(set(branches), {self.default_branch, "feature", "topic"})
        self.assertTrue(branches[self.default_branch].is_current)
        self.assertFalse(branches["feature"].is_current)
        self.assertEqual(branches["feature"].commit, self.commit1.hexsha)
        self.assertFalse(any(b.is_remote for b in branches.values()))

    def test_remote_branches_unified_by_short_name(self):
        clone_path = tempfile.mkdtemp()
        try:
            clone = git.Repo.clone_from(self.repo_path, clone_path)
            manager = GitManager(clone_path)
            self.assertTrue(manager.initialize())
            branches = manager.get_branches()
            names = [b.name for b in branches]
            # origin/<default> is hidden behind the local branch, origin/HEAD is skipped
            self.assertEqual(names.count(self.default_branch), 1)
            self.assertNotIn("HEAD", names)
            remote = {b.name: b for b in branches if b.is_remote}
            self.assertEqual(set(remote), {"feature", "topic"})
            self.assertEqual(remote["topic"].commit, self.topic_commit.hexsha)
            clone.close()
        finally:
            shutil.rmtree(clone_path)

    def test_get_tags(self):
        tags = self.git_manager.get_tags()
        self.assertEqual(tags["v1.0"], self.commit2.hexsha)
        # annotated tags resolve to the tagged commit
        self.assertEqual(tags["v0.1"], self.commit1.hexsha)

    def test_annotated_tag_uses_repository_identity(self):
        # 不依赖全局 git 配置
        reader = self.repo.config_reader("repository")
        self.assertEqual(reader.get_value("user", "email"), ACTOR.email)
        self.assertEqual(self.repo.tags["v0.1"].tag.tagger.email, ACTOR.email)

    def test_history_from_head(self):
        history = self.git_manager.get_commit_history()
        self.assertEqual([c.hash for c in history], [self.commit2.hexsha, self.commit1.hexsha])
        newest, oldest = history
        self.assertEqual(newest.message, "Second commit")
        self.assertEqual(newest.author, "Tester")
        self.assertEqual(newest.parents, [self.commit1.hexsha])
        self.assertEqual(oldest.parents, [])
        self.assertIn(self.default_branch, newest.branches)
        self.assertEqual(newest.tags, ["v1.0"])
        self.assertEqual(oldest.branches, ["feature"])
        self.assertEqual(oldest.tags, ["v0.1"])

    def test_history_all_refs_and_limit(self):
        history = self.git_manager.get_commit_history(all_refs=True)
        self.assertIn(self.topic_commit.hexsha, [c.hash for c in history])
        self.assertEqual(len(history), 3)
        self.assertEqual(len(self.git_manager.get_commit_history(limit=1)), 1)

    def test_history_with_merge(self):
        merge = self.repo.index.commit(
            "Merge topic", parent_commits=[self.commit2, self.topic_commit], author=ACTOR, committer=ACTOR
        )
        history = self.git_manager.get_commit_history()
        self.assertEqual(history[0].hash, merge.hexsha)
        self.assertTrue(history[0].is_merge)
        self.assertEqual(history[0].parents, [self.commit2.hexsha, self.topic_commit.hexsha])
        self.assertEqual(len(history), 4)

    def test_repo_info(self):
        info = self.git_manager.get_repo_info()
        self.assertEqual(os.path.realpath(info.path), os.path.realpath(self.repo_path))
        self.assertEqual(info.current_branch, self.default_branch)
        self.assertEqual(info.total_commits, 2)
        data = info.to_dict()
        self.assertEqual(data["currentBranch"], self.default_branch)
        self.assertEqual(data["totalCommits"], 2)
        self.assertIn("isRemote", data["branches"][0])

    def test_empty_repository(self):
        empty_path = tempfile.mkdtemp()
        try:
            git.Repo.init(empty_path).close()
            manager = GitManager(empty_path)
            self.assertTrue(manager.initialize())
            self.assertEqual(manager.get_commit_history(), [])
            self.assertEqual(manager.get_file_tree(), [])
            self.assertEqual(manager.get_repo_info().total_commits, 0)
        finally:
            shutil.rmtree(empty_path)

    def test_commit_details(self):
        details = self.git_manager.get_commit_details(self.commit2.hexsha)
        self.assertEqual(details.hash, self.commit2.hexsha)
        self.assertEqual(details.author, "Tester")
        self.assertEqual(details.email, "tester@example.com")
        self.assertEqual(details.subject, "Second commit")
        self.assertEqual(details.body, "Body line")
        self.assertIn("src/b.py", details.diff)
        self.assertIn("a.txt", details.stat)

    def test_commit_details_short_hash(self):
        details = self.git_manager.get_commit_details(self.commit1.hexsha[:10])
        self.assertEqual(details.hash, self.commit1.hexsha)

    def test_commit_details_invalid_hash(self):
        with self.assertRaises(GitManagerError):
            self.git_manager.get_commit_details("not-a-hash")
        with self.assertRaises(GitManagerError):
            self.git_manager.get_commit_details("deadbeefdeadbeef")

    def test_get_diff(self):
        diff = self.git_manager.get_diff(self.commit2.hexsha)
        self.assertIn("+second", diff)

    def test_file_at_commit(self):
        self.assertEqual(self.git_manager.get_file_at_commit("a.txt", self.commit1.hexsha), "first\n")
        self.assertEqual(self.git_manager.get_file_at_commit("a.txt", self.commit2.hexsha), "first\nsecond\n")

    def test_file_at_commit_missing(self):
        with self.assertRaises(GitManagerError) as ctx:
            self.git_manager.get_file_at_commit("src/b.py", self.commit1.hexsha)
        self.assertEqual(str(ctx.exception), f"File not found at commit {self.commit1.hexsha}: src/b.py")

    def test_file_at_commit_directory(self):
        with self.assertRaises(GitManagerError):
            self.git_manager.get_file_at_commit("src", self.commit2.hexsha)

    def test_file_tree(self):
        self.assertEqual(self.git_manager.get_file_tree(), ["a.txt", "src/b.py"])
        self.assertEqual(self.git_manager.get_file_tree(self.commit1.hexsha), ["a.txt"])


class TestGitManagerBranchOperations(GitRepoTestCase):
    def test_delete_merged_branch(self):
        self.assertIsNone(self.git_manager.delete_branch("feature"))
        self.assertNotIn("feature", [h.name for h in self.repo.heads])

    def test_delete_unmerged_branch_needs_force(self):
        error = self.git_manager.delete_branch("topic")
        self.assertIsNotNone(error)
        self.assertIn("not fully merged", error)
        self.assertIsNone(self.git_manager.delete_branch("topic", force=True))
        self.assertNotIn("topic", [h.name for h in self.repo.heads])

    def test_delete_current_branch_refused(self):
        self.assertEqual(self.git_manager.delete_branch(self.default_branch), "Cannot delete the current branch")

    def test_delete_missing_branch(self):
        self.assertEqual(self.git_manager.delete_branch("nope"), "Branch 'nope' does not exist.")

    def test_rename_branch(self):
        self.assertIsNone(self.git_manager.rename_branch("feature", "feature-renamed"))
        names = [h.name for h in self.repo.heads]
        self.assertIn("feature-renamed", names)
        self.assertNotIn("feature", names)

    def test_rename_branch_errors(self):
        self.assertEqual(self.git_manager.rename_branch("feature", "  "), "Branch name cannot be empty.")
        self.assertEqual(self.git_manager.rename_branch("feature", "topic"), "Branch 'topic' already exists.")
        self.assertEqual(self.git_manager.rename_branch("nope", "other"), "Branch 'nope' does not exist.")
        self.assertIsNone(self.git_manager.rename_branch("feature", "feature"))

    def test_checkout_branch(self):
        self.assertIsNone(self.git_manager.checkout_branch("feature"))
        self.assertEqual(self.git_manager.get_current_branch(), "feature")
        # already on it
        self.assertIsNone(self.git_manager.checkout_branch("feature"))

    def test_checkout_missing_branch(self):
        error = self.git_manager.checkout_branch("nope")
        self.assertIsNotNone(error)
        self.assertIn("nope", error)

    def test_checkout_commit(self):
        self.assertIsNone(self.git_manager.checkout_commit(self.commit1.hexsha))
        self.assertTrue(self.repo.head.is_detached)
        self.assertEqual(self.repo.head.commit.hexsha, self.commit1.hexsha)

    def test_checkout_commit_invalid_hash(self):
        self.assertEqual(self.git_manager.checkout_commit("zz"), "Invalid commit hash: zz")

    def test_uninitialized_manager(self):
        manager = GitManager(self.repo_path)
        self.assertEqual(manager.get_branches(), [])
        self.assertEqual(manager.delete_branch("feature"), "Repository not initialized.")
        with self.assertRaises(GitManagerError):
            manager.get_repo_info()


class TestHelpers(unittest.TestCase):
    def test_validate_repo_path(self):
        self.assertEqual(validate_repo_path(None), (False, 400, "Invalid repository path"))
        self.assertEqual(validate_repo_path(""), (False, 400, "Invalid repository path"))
        missing = os.path.join(tempfile.gettempdir(), "repolens-missing-dir-for-test")
        self.assertEqual(validate_repo_path(missing), (False, 404, "Repository path not found or not accessible"))

        plain_dir = tempfile.mkdtemp()
        try:
            self.assertEqual(validate_repo_path(plain_dir), (False, 400, "Path is not a Git repository"))
            git.Repo.init(plain_dir).close()
            self.assertEqual(validate_repo_path(plain_dir), (True, 200, plain_dir))
        finally:
            shutil.rmtree(plain_dir)

    def test_is_valid_commit_hash(self):
        self.assertTrue(is_valid_commit_hash("abc123"))
        self.assertTrue(is_valid_commit_hash("ABCDEF"))
        self.assertFalse(is_valid_commit_hash(""))
        self.assertFalse(is_valid_commit_hash("abc; rm -rf /"))
        self.assertFalse(is_valid_commit_hash(None))

    def test_command_preview(self):
        self.assertEqual(command_preview("delete", "feature"), "git branch -d feature")
        self.assertEqual(command_preview("delete", "feature", force=True), "git branch -D feature")
        self.assertEqual(command_preview("rename", "a", "b"), "git branch -m a b")
        self.assertEqual(command_preview("checkout", "main"), "git checkout main")
        with self.assertRaises(ValueError):
            command_preview("push", "main")


if __name__ == "__main__":
    unittest.main()
