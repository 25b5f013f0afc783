import logging
import os
from typing import Optional

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QGuiApplication
from PyQt6.QtWidgets import QMainWindow, QSplitter, QTabWidget, QVBoxLayout, QWidget
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from components.notification_widget import NotificationWidget
from git_graph_data import RepoInfo
from git_graph_view import GitGraphView
from git_manager import GitManager, validate_repo_path
from settings import settings
from threads import FileContentThread, RepoInfoThread
from utils import short_hash
from views.branch_manager_view import BranchManagerView
from views.code_viewer import CodeViewer
from views.commit_detail_view import CommitDetailView
from views.repo_selector_bar import RepoSelectorBar

GIT_REFRESH_DELAY_MS = 500


def is_git_change_of_interest(git_dir: str, path: str) -> bool:
    """只关心分支引用和 HEAD 的变化"""
    rel_path = os.path.relpath(path, git_dir)
    if rel_path.startswith(".."):
        return False
    rel_path = rel_path.replace(os.sep, "/")
    return rel_path == "HEAD" or rel_path == "packed-refs" or rel_path.startswith("refs/")


class GitChangeHandler(FileSystemEventHandler, QObject):
    """Handles file system events from watchdog and signals the main window."""

    git_changed = pyqtSignal(str, str)  # (event_type, path)

    def __init__(self, git_dir: str):
        FileSystemEventHandler.__init__(self)
        QObject.__init__(self)
        self.git_dir = git_dir

    def on_any_event(self, event):
        # watchdog 在自己的线程里回调，信号会排队到 GUI 线程
        if event.is_directory:
            return
        for path in (event.src_path, getattr(event, "dest_path", "")):
            if path and is_git_change_of_interest(self.git_dir, path):
                logging.debug("Git watchdog event: %s on %s", event.event_type, path)
                self.git_changed.emit(event.event_type, path)
                return


class RepoLensWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("RepoLens")

        screen = QGuiApplication.primaryScreen()
        if screen:
            geometry = screen.availableGeometry()
            self.setGeometry(
                geometry.x() + int(geometry.width() * 0.1),
                geometry.y() + int(geometry.height() * 0.1),
                int(geometry.width() * 0.8),
                int(geometry.height() * 0.8),
            )
        else:
            self.resize(1200, 800)

        self.settings = settings
        self.git_manager: Optional[GitManager] = None
        self.repo_info: Optional[RepoInfo] = None
        self._repo_thread: Optional[RepoInfoThread] = None
        self._reload_pending = False
        self._file_threads: list[FileContentThread] = []

        self.observer = None
        self.git_refresh_timer = QTimer(self)
        self.git_refresh_timer.setSingleShot(True)
        self.git_refresh_timer.setInterval(GIT_REFRESH_DELAY_MS)
        self.git_refresh_timer.timeout.connect(self._throttled_git_refresh)

        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        self.repo_bar = RepoSelectorBar(self)
        self.repo_bar.repo_path_submitted.connect(self.open_repository)
        self.repo_bar.refresh_requested.connect(self.reload_repository)
        self.repo_bar.clear_recent_requested.connect(self.clear_recent_repos)
        main_layout.addWidget(self.repo_bar)

        self.splitter = QSplitter(Qt.Orientation.Horizontal)
        main_layout.addWidget(self.splitter)

        self.graph_view = GitGraphView()
        self.graph_view.commit_selected.connect(self.on_commit_selected)
        self.graph_view.zoom_changed.connect(self.repo_bar.set_zoom_percent)
        self.splitter.addWidget(self.graph_view)

        self.tab_widget = QTabWidget()
        self.branch_view = BranchManagerView()
        self.branch_view.branches_changed.connect(self.on_branches_changed)
        self.branch_view.error_occurred.connect(self.show_error)
        self.branch_view.branch_activated.connect(self.graph_view.select_commit)
        self.tab_widget.addTab(self.branch_view, "Branches")

        self.commit_detail_view = CommitDetailView()
        self.commit_detail_view.file_selected.connect(self.on_file_selected)
        self.commit_detail_view.checkout_requested.connect(self.checkout_commit)
        self.commit_detail_view.error_occurred.connect(self.show_error)
        self.tab_widget.addTab(self.commit_detail_view, "Commit")

        self.code_viewer = CodeViewer()
        self.tab_widget.addTab(self.code_viewer, "File")
        self.splitter.addWidget(self.tab_widget)
        self.splitter.setSizes([int(self.width() * 0.6), int(self.width() * 0.4)])

        self.notification_widget = NotificationWidget(self)

        self.repo_bar.update_recent_menu(self._existing_recent_repos())
        last_repo = self.settings.get_last_repo_path()
        if last_repo and os.path.isdir(last_repo):
            # 等事件循环启动后再加载，窗口先显示出来
            QTimer.singleShot(0, lambda: self._restore_last_repo(last_repo))

    def _restore_last_repo(self, repo_path: str):
        # 命令行已经指定了仓库时不再恢复
        if self.git_manager is None:
            self.open_repository(repo_path)

    def _existing_recent_repos(self) -> list[str]:
        return [p for p in self.settings.get_recent_repos() if os.path.exists(p)]

    def show_error(self, message: str):
        logging.warning("%s", message)
        self.notification_widget.show_error(message)

    def show_info(self, message: str):
        self.notification_widget.show_message(message)

    def open_repository(self, repo_path: str):
        """校验路径并打开仓库"""
        repo_path = os.path.abspath(os.path.expanduser(repo_path))
        ok, _, message = validate_repo_path(repo_path)
        if not ok:
            self.show_error(message)
            return

        git_manager = GitManager(repo_path)
        if not git_manager.initialize():
            self.show_error("Path is not a Git repository")
            return

        self.git_manager = git_manager
        self.repo_info = None
        self.branch_view.set_git_manager(git_manager)
        self.commit_detail_view.set_git_manager(git_manager)
        self.code_viewer.clear_file()
        self.graph_view.selected_commit = None

        self.settings.set_last_repo_path(repo_path)
        self.repo_bar.set_repo_path(repo_path)
        self.repo_bar.set_loaded(True)
        self.repo_bar.update_recent_menu(self._existing_recent_repos())
        self.setWindowTitle(f"RepoLens - {repo_path}")

        self.start_watching_repo(git_manager.repo.git_dir)
        self.reload_repository()

    def clear_recent_repos(self):
        self.settings.clear_recent_repos()
        self.repo_bar.update_recent_menu([])

    def reload_repository(self):
        """在后台线程重新加载提交历史和分支"""
        if self.git_manager is None:
            return
        if self._repo_thread is not None and self._repo_thread.isRunning():
            self._reload_pending = True
            return

        thread = RepoInfoThread(
            self.git_manager.repo_path, self.settings.get_history_limit(), self.settings.show_all_refs(), parent=self
        )
        thread.finished.connect(self.on_repo_info_loaded)
        thread.error.connect(self.on_repo_info_error)
        self._repo_thread = thread
        thread.start()

    def _after_repo_thread(self):
        self._repo_thread = None
        if self._reload_pending:
            self._reload_pending = False
            self.reload_repository()

    def on_repo_info_loaded(self, repo_info: RepoInfo):
        # 线程返回前可能已经切换了仓库
        if self.git_manager is None or os.path.realpath(repo_info.path) != os.path.realpath(
            self.git_manager.repo.working_dir
        ):
            self._after_repo_thread()
            return

        logging.info("Loaded %d commits and %d branches", repo_info.total_commits, len(repo_info.branches))
        self.repo_info = repo_info
        self.graph_view.set_graph_data(repo_info.commits, repo_info.branches)
        self.branch_view.set_branches(repo_info.branches)
        if not repo_info.commits:
            self.show_info("Repository has no commits yet")
        self._after_repo_thread()

    def on_repo_info_error(self, message: str):
        self.show_error(f"Failed to load repository: {message}")
        self._after_repo_thread()

    def on_commit_selected(self, commit_hash: str):
        if self.repo_info is None:
            return
        commit = next((c for c in self.repo_info.commits if c.hash == commit_hash), None)
        if commit is None:
            return
        self.commit_detail_view.show_commit(commit)
        self.tab_widget.setCurrentWidget(self.commit_detail_view)

    def on_file_selected(self, file_path: str, commit_hash: str):
        if self.git_manager is None:
            return
        thread = FileContentThread(self.git_manager.repo_path, file_path, commit_hash, parent=self)
        thread.finished.connect(self.on_file_loaded)
        thread.error.connect(self.show_error)
        thread.finished.connect(lambda *_, t=thread: self._forget_file_thread(t))
        thread.error.connect(lambda *_, t=thread: self._forget_file_thread(t))
        self._file_threads.append(thread)
        thread.start()

    def _forget_file_thread(self, thread: FileContentThread):
        if thread in self._file_threads:
            self._file_threads.remove(thread)

    def on_file_loaded(self, file_path: str, commit_hash: str, content: str):
        self.code_viewer.show_file(file_path, commit_hash, content)
        self.tab_widget.setCurrentWidget(self.code_viewer)

    def checkout_commit(self, commit_hash: str):
        if self.git_manager is None:
            return
        error = self.git_manager.checkout_commit(commit_hash)
        if error:
            self.show_error(error)
            return
        self.show_info(f"Checked out commit {short_hash(commit_hash)}")
        self.reload_repository()

    def on_branches_changed(self):
        self.show_info("Branches updated")
        self.reload_repository()

    def start_watching_repo(self, git_dir: str):
        """Starts the watchdog observer for the repository's .git directory."""
        self.stop_watching_repo()

        event_handler = GitChangeHandler(git_dir)
        event_handler.git_changed.connect(self.schedule_git_refresh)
        self._event_handler = event_handler

        self.observer = Observer()
        self.observer.schedule(event_handler, git_dir, recursive=True)
        self.observer.start()
        logging.info("Started watching git directory for changes: %s", git_dir)

    def stop_watching_repo(self):
        """Stops the watchdog observer if it's running."""
        if self.observer and self.observer.is_alive():
            self.observer.stop()
            self.observer.join()
            logging.info("Stopped watching git directory.")
        self.observer = None

    def schedule_git_refresh(self, event_type=None, path=None):
        """Schedules a repository reload, debouncing multiple requests."""
        logging.debug("Git change event: %s - %s", event_type, path)
        self.git_refresh_timer.start()

    def _throttled_git_refresh(self):
        if self.git_manager and self.git_manager.repo:
            logging.info("Git change detected, reloading commit graph and branches.")
            self.reload_repository()

    def closeEvent(self, event):
        """Ensure the watchdog observer and worker threads are stopped on close."""
        self.git_refresh_timer.stop()
        self.stop_watching_repo()
        if self._repo_thread is not None:
            self._repo_thread.wait()
        for thread in list(self._file_threads):
            thread.wait()
        self.commit_detail_view.wait_for_threads()
        super().closeEvent(event)
