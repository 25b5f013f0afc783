import sys

from PyQt6.QtWidgets import QApplication

from repolens_window import RepoLensWindow
from utils import setup_logging


def main():
    setup_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("RepoLens")

    window = RepoLensWindow()
    if len(sys.argv) > 1:
        window.open_repository(sys.argv[1])
    window.show()

    # 启动后窗口可能没有焦点
    window.activateWindow()
    window.raise_()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
