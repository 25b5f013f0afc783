import json
import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_SETTINGS = {
    "recent_repos": [],  # 最近打开的仓库列表
    "last_repo_path": None,  # 上次打开的仓库
    "max_recent": 10,  # 最大记录数
    "font_family": "Courier New",  # 代码查看器字体
    "font_size": 12,
    "code_style": "friendly",  # Pygments 代码风格
    "history_limit": 1000,  # 每次加载的最大提交数
    "show_all_refs": False,  # False 时只显示 HEAD 的历史
    "api_host": "127.0.0.1",
    "api_port": 3001,
}


class Settings:
    def __init__(self, config_dir: Optional[str] = None):
        if config_dir is None:
            config_dir = os.getenv("REPOLENS_CONFIG_DIR") or os.path.join(str(Path.home()), ".repolens")
        self.config_dir = config_dir
        if not os.path.exists(self.config_dir):
            os.makedirs(self.config_dir)

        self.config_file = os.path.join(self.config_dir, "settings.json")

        self.settings = json.loads(json.dumps(DEFAULT_SETTINGS))

        self.load_settings()

    def load_settings(self):
        """加载设置"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, "r", encoding="utf-8") as f:
                    saved_settings = json.load(f)
                    self.settings.update(saved_settings)
        except (OSError, ValueError):
            logging.exception("加载设置失败：%s", self.config_file)

    def save_settings(self):
        """保存设置"""
        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                json.dump(self.settings, f, ensure_ascii=False, indent=2)
        except OSError:
            logging.exception("保存设置失败：%s", self.config_file)

    def get(self, key, default=None):
        return self.settings.get(key, default)

    def set_last_repo_path(self, repo_path: Optional[str]):
        """记住当前仓库；传入 None 表示清除"""
        self.settings["last_repo_path"] = repo_path
        if repo_path:
            recent = [p for p in self.settings["recent_repos"] if p != repo_path]
            recent.insert(0, repo_path)
            self.settings["recent_repos"] = recent[: self.settings["max_recent"]]
        self.save_settings()

    def get_last_repo_path(self) -> Optional[str]:
        return self.settings.get("last_repo_path")

    def get_recent_repos(self) -> list[str]:
        return list(self.settings.get("recent_repos", []))

    def clear_recent_repos(self):
        self.settings["recent_repos"] = []
        self.save_settings()

    def get_font_family(self):
        return self.settings.get("font_family", "Courier New")

    def get_font_size(self):
        return self.settings.get("font_size", 12)

    def get_code_style(self):
        return self.settings.get("code_style", "friendly")

    def get_history_limit(self) -> int:
        return int(self.settings.get("history_limit", 1000))

    def show_all_refs(self) -> bool:
        return bool(self.settings.get("show_all_refs", False))

    def get_api_address(self) -> tuple[str, int]:
        port = os.getenv("REPOLENS_API_PORT") or self.settings.get("api_port", 3001)
        return self.settings.get("api_host", "127.0.0.1"), int(port)


# 创建全局settings实例
settings = Settings()
