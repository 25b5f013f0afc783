import logging
import os
import time
from functools import wraps


def short_hash(commit_hash: str, length: int = 7) -> str:
    return (commit_hash or "")[:length]


def timeit(func):
    """装饰器，用于测量函数执行时间

    Args:
        func: 被装饰的函数

    Returns:
        wrapper: 包装后的函数
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.perf_counter()
        result = func(*args, **kwargs)
        logging.debug("函数 %s 执行耗时：%.4f秒", func.__name__, time.perf_counter() - start_time)
        return result

    return wrapper


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


def setup_logging(log_file: str = "repolens.log"):
    # 根据环境变量设置日志级别
    log_level = logging.DEBUG if os.getenv("DEBUG") == "1" else logging.INFO
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    # add file handler
    if os.getenv("LOG_TO_FILE") == "1":
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)
