import logging

from PyQt6.QtCore import QThread, pyqtSignal

from git_manager import GitManager, GitManagerError


def open_git_manager(repo_path: str) -> GitManager:
    """每个后台线程打开自己的仓库，GitPython 的 Repo 不能跨线程共享"""
    git_manager = GitManager(repo_path)
    if not git_manager.initialize():
        raise GitManagerError("Path is not a Git repository")
    return git_manager


class RepoInfoThread(QThread):
    """在后台加载提交历史和分支，避免大仓库卡住界面"""

    finished = pyqtSignal(object)  # RepoInfo
    error = pyqtSignal(str)

    def __init__(self, repo_path: str, limit: int, all_refs: bool, parent=None):
        super().__init__(parent)
        self.repo_path = repo_path
        self.limit = limit
        self.all_refs = all_refs

    def run(self):
        git_manager = None
        try:
            git_manager = open_git_manager(self.repo_path)
            info = git_manager.get_repo_info(limit=self.limit, all_refs=self.all_refs)
            self.finished.emit(info)
        except GitManagerError as e:
            self.error.emit(str(e))
        except Exception as e:
            logging.exception("加载仓库失败")
            self.error.emit(str(e))
        finally:
            if git_manager is not None:
                git_manager.repo.close()


class CommitDetailThread(QThread):
    """读取提交详情、文件列表和补丁"""

    finished = pyqtSignal(str, object, object, str)  # (commit_hash, CommitDetails, files, patch)
    error = pyqtSignal(str, str)  # (commit_hash, message)

    def __init__(self, repo_path: str, commit_hash: str, parent=None):
        super().__init__(parent)
        self.repo_path = repo_path
        self.commit_hash = commit_hash

    def run(self):
        git_manager = None
        try:
            git_manager = open_git_manager(self.repo_path)
            details = git_manager.get_commit_details(self.commit_hash)
            files = git_manager.get_file_tree(self.commit_hash)
            patch = git_manager.get_diff(self.commit_hash)
            self.finished.emit(self.commit_hash, details, files, patch)
        except GitManagerError as e:
            self.error.emit(self.commit_hash, str(e))
        except Exception as e:
            logging.exception("加载提交 %s 详情失败", self.commit_hash)
            self.error.emit(self.commit_hash, str(e))
        finally:
            if git_manager is not None:
                git_manager.repo.close()


class FileContentThread(QThread):
    """读取某个提交中的文件内容"""

    finished = pyqtSignal(str, str, str)  # (file_path, commit_hash, content)
    error = pyqtSignal(str)

    def __init__(self, repo_path: str, file_path: str, commit_hash: str, parent=None):
        super().__init__(parent)
        self.repo_path = repo_path
        self.file_path = file_path
        self.commit_hash = commit_hash

    def run(self):
        git_manager = None
        try:
            git_manager = open_git_manager(self.repo_path)
            content = git_manager.get_file_at_commit(self.file_path, self.commit_hash)
            self.finished.emit(self.file_path, self.commit_hash, content)
        except GitManagerError as e:
            self.error.emit(str(e))
        except Exception as e:
            logging.exception("读取文件 %s 失败", self.file_path)
            self.error.emit(str(e))
        finally:
            if git_manager is not None:
                git_manager.repo.close()
