import logging
import os
import re
from typing import List, Optional

import git
import git.exc
from git import GitCommandError

from git_graph_data import BranchInfo, CommitDetails, CommitNode, RepoInfo

DEFAULT_HISTORY_LIMIT = 1000

COMMIT_HASH_RE = re.compile(r"^[a-f0-9]+$", re.IGNORECASE)


class GitManagerError(Exception):
    """查询失败，调用方需要把错误展示给用户"""


def validate_repo_path(repo_path) -> tuple[bool, int, str]:
    """检查路径是否为可访问的 Git 仓库

    返回：
        (ok, status, message)。成功时 message 为仓库路径。
    """
    if not repo_path or not isinstance(repo_path, str):
        return False, 400, "Invalid repository path"

    if not os.path.exists(repo_path) or not os.access(repo_path, os.R_OK):
        return False, 404, "Repository path not found or not accessible"

    try:
        git.Repo(repo_path)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError):
        return False, 400, "Path is not a Git repository"

    return True, 200, repo_path


def is_valid_commit_hash(commit_hash) -> bool:
    return isinstance(commit_hash, str) and bool(COMMIT_HASH_RE.match(commit_hash))


def command_preview(action: str, *args: str, force: bool = False) -> str:
    """分支操作执行前展示给用户的 git 命令"""
    if action == "delete":
        return f"git branch {'-D' if force else '-d'} {args[0]}"
    if action == "rename":
        return f"git branch -m {args[0]} {args[1]}"
    if action == "checkout":
        return f"git checkout {args[0]}"
    raise ValueError(f"Unknown branch action: {action}")


def _command_error(e: GitCommandError) -> str:
    return e.stderr.strip() if e.stderr else str(e)


class GitManager:
    def __init__(self, repo_path: str):
        self.repo_path = repo_path
        self.repo: Optional[git.Repo] = None

    def initialize(self) -> bool:
        """初始化 Git 仓库"""
        try:
            self.repo = git.Repo(self.repo_path)
            return True
        except (git.InvalidGitRepositoryError, git.NoSuchPathError):
            return False

    def _require_repo(self) -> git.Repo:
        if not self.repo:
            raise GitManagerError("Repository not initialized.")
        return self.repo

    def _has_commits(self) -> bool:
        return self.repo is not None and self.repo.head.is_valid()

    def get_current_branch(self) -> str:
        """当前分支名，detached HEAD 时返回 "HEAD" """
        repo = self._require_repo()
        if repo.head.is_detached:
            return "HEAD"
        return repo.active_branch.name

    def get_branches(self) -> List[BranchInfo]:
        """获取本地分支和远程分支

        远程分支去掉 remote 前缀；已有同名本地分支的远程分支不再单独列出。
        """
        if not self.repo:
            return []

        try:
            current = self.get_current_branch()
            branches = [
                BranchInfo(name=head.name, commit=head.commit.hexsha, is_remote=False, is_current=head.name == current)
                for head in self.repo.heads
            ]
            local_names = {b.name for b in branches}

            for remote in self.repo.remotes:
                for ref in remote.refs:
                    short_name = ref.remote_head
                    # origin/HEAD 是符号引用
                    if short_name == "HEAD":
                        continue
                    if short_name in local_names:
                        continue
                    branches.append(
                        BranchInfo(name=short_name, commit=ref.commit.hexsha, is_remote=True, is_current=False)
                    )
                    local_names.add(short_name)
            return branches
        except (GitCommandError, ValueError):
            logging.exception("获取分支列表失败")
            return []

    def get_tags(self) -> dict[str, str]:
        """获取标签到提交 hash 的映射，无法解析的标签跳过"""
        if not self.repo:
            return {}

        tag_map = {}
        for tag in self.repo.tags:
            try:
                tag_map[tag.name] = tag.commit.hexsha
            except (ValueError, GitCommandError):
                logging.debug("跳过无法解析的标签 %s", tag.name)
        return tag_map

    def get_commit_history(self, limit: int = DEFAULT_HISTORY_LIMIT, all_refs: bool = False) -> List[CommitNode]:
        """获取提交历史（新的在前），并标注指向每个提交的分支和标签

        参数：
            limit: 返回的最大提交数量
            all_refs: 为 True 时包含所有引用的历史，否则只取 HEAD 的历史
        """
        if not self._has_commits():
            return []

        try:
            commit_to_branches: dict[str, list[str]] = {}
            for branch in self.get_branches():
                commit_to_branches.setdefault(branch.commit, []).append(branch.name)

            commit_to_tags: dict[str, list[str]] = {}
            for tag_name, commit_hash in self.get_tags().items():
                commit_to_tags.setdefault(commit_hash, []).append(tag_name)

            rev = "--all" if all_refs else "HEAD"
            commits = []
            for commit in self.repo.iter_commits(rev, max_count=limit):
                commits.append(
                    CommitNode(
                        hash=commit.hexsha,
                        message=commit.summary,
                        author=commit.author.name,
                        date=commit.committed_datetime.isoformat(),
                        parents=[p.hexsha for p in commit.parents],
                        branches=commit_to_branches.get(commit.hexsha, []),
                        tags=commit_to_tags.get(commit.hexsha, []),
                    )
                )
            return commits
        except (GitCommandError, ValueError):
            logging.exception("获取提交历史失败")
            return []

    def get_repo_info(self, limit: int = DEFAULT_HISTORY_LIMIT, all_refs: bool = False) -> RepoInfo:
        repo = self._require_repo()
        return RepoInfo(
            path=repo.working_dir,
            current_branch=self.get_current_branch(),
            branches=self.get_branches(),
            commits=self.get_commit_history(limit=limit, all_refs=all_refs),
        )

    def _resolve_commit(self, commit_hash: str) -> git.Commit:
        repo = self._require_repo()
        if not is_valid_commit_hash(commit_hash):
            raise GitManagerError(f"Invalid commit hash: {commit_hash}")
        try:
            return repo.commit(commit_hash)
        except (git.exc.BadName, git.exc.BadObject, ValueError) as e:
            raise GitManagerError(f"Unknown commit: {commit_hash}") from e

    def get_commit_details(self, commit_hash: str) -> CommitDetails:
        """获取提交详情：作者、说明、变更文件列表和统计"""
        commit = self._resolve_commit(commit_hash)
        message_lines = commit.message.split("\n")
        try:
            name_status = self.repo.git.show(commit.hexsha, "--name-status", "--format=")
            stat = self.repo.git.show(commit.hexsha, "--stat", "--format=")
        except GitCommandError as e:
            raise GitManagerError(f"Failed to load commit {commit_hash}: {_command_error(e)}") from e

        return CommitDetails(
            hash=commit.hexsha,
            author=commit.author.name,
            email=commit.author.email,
            date=commit.committed_datetime.isoformat(),
            subject=message_lines[0],
            body="\n".join(message_lines[1:]).strip(),
            diff=name_status.strip(),
            stat=stat.strip(),
        )

    def get_diff(self, commit_hash: str) -> str:
        commit = self._resolve_commit(commit_hash)
        try:
            return self.repo.git.show(commit.hexsha)
        except GitCommandError as e:
            raise GitManagerError(f"Failed to load diff for {commit_hash}: {_command_error(e)}") from e

    def get_file_at_commit(self, file_path: str, commit_hash: str) -> str:
        """获取文件在指定提交时的内容"""
        commit = self._resolve_commit(commit_hash)
        try:
            blob = commit.tree / file_path.replace(os.sep, "/")
        except KeyError as e:
            raise GitManagerError(f"File not found at commit {commit_hash}: {file_path}") from e
        if blob.type != "blob":
            raise GitManagerError(f"File not found at commit {commit_hash}: {file_path}")
        return blob.data_stream.read().decode("utf-8", errors="replace")

    def get_file_tree(self, commit_hash: Optional[str] = None) -> List[str]:
        """获取指定提交（默认 HEAD）中的所有文件路径"""
        if commit_hash:
            commit = self._resolve_commit(commit_hash)
        else:
            self._require_repo()
            if not self._has_commits():
                return []
            commit = self.repo.head.commit
        return sorted(item.path for item in commit.tree.traverse() if item.type == "blob")

    def delete_branch(self, branch_name: str, force: bool = False) -> Optional[str]:
        """删除本地分支

        返回：
            None: 成功
            str: 失败时的错误信息
        """
        if not self.repo:
            return "Repository not initialized."
        if not self.repo.head.is_detached and self.repo.active_branch.name == branch_name:
            return "Cannot delete the current branch"
        if branch_name not in [head.name for head in self.repo.heads]:
            return f"Branch '{branch_name}' does not exist."

        try:
            self.repo.delete_head(branch_name, force=force)
            logging.info("Deleted branch %s (force=%s)", branch_name, force)
            return None
        except GitCommandError as e:
            error_msg = f"Failed to delete branch '{branch_name}': {_command_error(e)}"
            logging.error(error_msg)
            return error_msg

    def rename_branch(self, old_name: str, new_name: str) -> Optional[str]:
        """重命名分支"""
        if not self.repo:
            return "Repository not initialized."

        new_name = (new_name or "").strip()
        if not new_name:
            return "Branch name cannot be empty."
        if new_name == old_name:
            return None

        heads = {head.name: head for head in self.repo.heads}
        if old_name not in heads:
            return f"Branch '{old_name}' does not exist."
        if new_name in heads:
            return f"Branch '{new_name}' already exists."

        try:
            heads[old_name].rename(new_name)
            logging.info("Renamed branch %s -> %s", old_name, new_name)
            return None
        except GitCommandError as e:
            error_msg = f"Failed to rename branch '{old_name}': {_command_error(e)}"
            logging.error(error_msg)
            return error_msg

    def checkout_branch(self, branch_name: str) -> Optional[str]:
        """切换到指定分支。

        如果成功，返回 None。
        如果失败，返回错误信息字符串。
        """
        if not self.repo:
            return "Repository not initialized."
        try:
            if not self.repo.head.is_detached and self.repo.active_branch.name == branch_name:
                return None

            self.repo.git.checkout(branch_name)
            return None
        except GitCommandError as e:
            logging.error(f"切换分支 {branch_name} 失败：{e!s}")
            if "did not match any file(s) known to git" in str(e):
                return f"Branch '{branch_name}' does not exist."
            elif "would be overwritten by checkout" in str(e):
                return "Checkout would overwrite local changes; commit or stash them first."
            return f"Failed to checkout branch '{branch_name}': {_command_error(e)}"

    def checkout_commit(self, commit_hash: str) -> Optional[str]:
        """检出指定提交（detached HEAD）"""
        if not self.repo:
            return "Repository not initialized."
        if not is_valid_commit_hash(commit_hash):
            return f"Invalid commit hash: {commit_hash}"
        try:
            self.repo.git.checkout(commit_hash)
            return None
        except GitCommandError as e:
            logging.error(f"检出提交 {commit_hash} 失败：{e!s}")
            return f"Failed to checkout commit {commit_hash}: {_command_error(e)}"
