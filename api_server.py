import asyncio
import functools
import json
import logging
import math
from typing import Dict

from aiohttp import web

from git_graph_layout import DEFAULT_CANVAS_HEIGHT, DEFAULT_CANVAS_WIDTH, CanvasSize, compute_layout
from git_manager import (
    DEFAULT_HISTORY_LIMIT,
    GitManager,
    GitManagerError,
    is_valid_commit_hash,
    validate_repo_path,
)
from settings import settings
from utils import setup_logging


class RequestError(Exception):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


def _cors_headers() -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


@web.middleware
async def error_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(headers=_cors_headers())
    try:
        response = await handler(request)
    except RequestError as exc:
        response = web.json_response({"error": exc.message}, status=exc.status)
    except GitManagerError as exc:
        response = web.json_response({"error": str(exc)}, status=400)
    except web.HTTPException:
        raise
    except Exception as exc:  # noqa: BLE001
        logging.exception("Unhandled error on %s", request.path)
        response = web.json_response({"error": str(exc)}, status=500)
    response.headers.update(_cors_headers())
    return response


async def _read_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise RequestError("Request body must be JSON") from None
    if not isinstance(body, dict):
        raise RequestError("Request body must be a JSON object")
    return body


def _require_str(body: dict, key: str) -> str:
    value = body.get(key)
    if not isinstance(value, str) or not value:
        raise RequestError(f"'{key}' is required")
    return value


def _require_hash(body: dict, key: str) -> str:
    value = _require_str(body, key)
    if not is_valid_commit_hash(value):
        raise RequestError(f"'{key}' must be a hexadecimal commit hash")
    return value


def _optional_hash(body: dict, key: str):
    value = body.get(key)
    if value is None or value == "":
        return None
    if not is_valid_commit_hash(value):
        raise RequestError(f"'{key}' must be a hexadecimal commit hash")
    return value


def _optional_number(body: dict, key: str, default):
    value = body.get(key)
    if value is None:
        return default
    # request.json() 会接受 NaN 和 Infinity
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or not math.isfinite(value)
        or value <= 0
    ):
        raise RequestError(f"'{key}' must be a positive number")
    return value


def _optional_limit(body: dict, default: int) -> int:
    value = _optional_number(body, "limit", default)
    if isinstance(value, float):
        if not value.is_integer():
            raise RequestError("'limit' must be a positive integer")
        value = int(value)
    return value


async def _run_git(func, *args, **kwargs):
    """GitPython 是阻塞调用，放到线程池里执行"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def _open_manager(body: dict) -> GitManager:
    repo_path = _require_str(body, "repoPath")
    ok, status, message = await _run_git(validate_repo_path, repo_path)
    if not ok:
        raise RequestError(message, status)
    git_manager = GitManager(repo_path)
    if not await _run_git(git_manager.initialize):
        raise RequestError("Path is not a Git repository")
    return git_manager


def _mutation_response(error, message: str) -> web.Response:
    if error:
        raise RequestError(error)
    return web.json_response({"success": True, "message": message})


async def health_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def validate_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    repo_path = body.get("repoPath")
    ok, status, message = await _run_git(validate_repo_path, repo_path)
    if not ok:
        raise RequestError(message, status)
    return web.json_response({"valid": True, "path": repo_path})


async def info_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    info = await _run_git(
        git_manager.get_repo_info, limit=settings.get_history_limit(), all_refs=settings.show_all_refs()
    )
    return web.json_response(info.to_dict())


async def history_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    limit = _optional_limit(body, DEFAULT_HISTORY_LIMIT)
    commits = await _run_git(git_manager.get_commit_history, limit=limit, all_refs=settings.show_all_refs())
    return web.json_response([c.to_dict() for c in commits])


async def branches_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    branches = await _run_git(git_manager.get_branches)
    return web.json_response([b.to_dict() for b in branches])


async def commit_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    details = await _run_git(git_manager.get_commit_details, _require_hash(body, "hash"))
    return web.json_response(details.to_dict())


async def file_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    file_path = _require_str(body, "filePath")
    commit_hash = _require_hash(body, "commitHash")
    content = await _run_git(git_manager.get_file_at_commit, file_path, commit_hash)
    return web.json_response({"content": content, "filePath": file_path, "commitHash": commit_hash})


async def tree_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    commit_hash = _optional_hash(body, "commitHash")
    tree = await _run_git(git_manager.get_file_tree, commit_hash)
    return web.json_response(tree)


async def delete_branch_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    branch_name = _require_str(body, "branchName")
    error = await _run_git(git_manager.delete_branch, branch_name, bool(body.get("force", False)))
    return _mutation_response(error, f"Branch {branch_name} deleted successfully")


async def rename_branch_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    old_name = _require_str(body, "oldName")
    new_name = _require_str(body, "newName")
    error = await _run_git(git_manager.rename_branch, old_name, new_name)
    return _mutation_response(error, f"Branch {old_name} renamed to {new_name}")


async def checkout_commit_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    commit_hash = _require_hash(body, "hash")
    error = await _run_git(git_manager.checkout_commit, commit_hash)
    return _mutation_response(error, f"Checked out commit {commit_hash}")


async def checkout_branch_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    branch_name = _require_str(body, "branchName")
    error = await _run_git(git_manager.checkout_branch, branch_name)
    return _mutation_response(error, f"Checked out branch {branch_name}")


async def layout_handler(request: web.Request) -> web.Response:
    body = await _read_body(request)
    git_manager = await _open_manager(body)
    limit = _optional_limit(body, settings.get_history_limit())
    canvas = CanvasSize(
        width=_optional_number(body, "width", DEFAULT_CANVAS_WIDTH),
        height=_optional_number(body, "height", DEFAULT_CANVAS_HEIGHT),
    )
    info = await _run_git(git_manager.get_repo_info, limit=limit, all_refs=settings.show_all_refs())
    layout = compute_layout(info.commits, info.branches, canvas, selected=_optional_hash(body, "selected"))
    return web.json_response(layout.to_dict())


def create_app() -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app.router.add_route("GET", "/health", health_handler)
    app.router.add_route("POST", "/api/repo/validate", validate_handler)
    app.router.add_route("POST", "/api/git/info", info_handler)
    app.router.add_route("POST", "/api/git/history", history_handler)
    app.router.add_route("POST", "/api/git/branches", branches_handler)
    app.router.add_route("POST", "/api/git/commit", commit_handler)
    app.router.add_route("POST", "/api/git/file", file_handler)
    app.router.add_route("POST", "/api/git/tree", tree_handler)
    app.router.add_route("POST", "/api/git/branch/delete", delete_branch_handler)
    app.router.add_route("POST", "/api/git/branch/rename", rename_branch_handler)
    app.router.add_route("POST", "/api/git/checkout/commit", checkout_commit_handler)
    app.router.add_route("POST", "/api/git/checkout/branch", checkout_branch_handler)
    app.router.add_route("POST", "/api/git/layout", layout_handler)
    return app


def main():
    setup_logging("repolens-api.log")
    host, port = settings.get_api_address()
    logging.info("RepoLens API listening on http://%s:%s", host, port)
    web.run_app(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()
