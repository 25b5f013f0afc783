import os
import shutil
import sys
import tempfile

import git
from aiohttp.test_utils import AioHTTPTestCase

os.environ.setdefault("REPOLENS_CONFIG_DIR", tempfile.mkdtemp())
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from api_server import create_app

ACTOR = git.Actor("Tester", "tester@example.com")


class TestApiServer(AioHTTPTestCase):
    async def asyncSetUp(self):
        self.repo_path = tempfile.mkdtemp()
        self.repo = git.Repo.init(self.repo_path)
        with self.repo.config_writer() as config:
            config.set_value("user", "name", ACTOR.name)
            config.set_value("user", "email", ACTOR.email)
        with open(os.path.join(self.repo_path, "readme.md"), "w") as f:
            f.write("# hello\n")
        self.repo.index.add(["readme.md"])
        self.root = self.repo.index.commit("Initial commit", author=ACTOR, committer=ACTOR)
        with open(os.path.join(self.repo_path, "readme.md"), "a") as f:
            f.write("more\n")
        self.repo.index.add(["readme.md"])
        self.tip = self.repo.index.commit("Update readme", author=ACTOR, committer=ACTOR)
        self.default_branch = self.repo.active_branch.name
        self.repo.create_head("feature", self.root)
        await super().asyncSetUp()

    async def asyncTearDown(self):
        await super().asyncTearDown()
        self.repo.close()
        shutil.rmtree(self.repo_path)

    async def get_application(self):
        return create_app()

    async def post(self, path, body):
        resp = await self.client.request("POST", path, json=body)
        return resp.status, await resp.json()

    async def test_health(self):
        resp = await self.client.request("GET", "/health")
        self.assertEqual(resp.status, 200)
        self.assertEqual(await resp.json(), {"status": "ok"})
        self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    async def test_options_preflight(self):
        resp = await self.client.request("OPTIONS", "/api/git/info")
        self.assertEqual(resp.status, 200)
        self.assertIn("POST", resp.headers["Access-Control-Allow-Methods"])

    async def test_validate(self):
        status, data = await self.post("/api/repo/validate", {"repoPath": self.repo_path})
        self.assertEqual(status, 200)
        self.assertEqual(data, {"valid": True, "path": self.repo_path})

        status, data = await self.post("/api/repo/validate", {"repoPath": self.repo_path + "-missing"})
        self.assertEqual(status, 404)
        self.assertEqual(data["error"], "Repository path not found or not accessible")

        status, data = await self.post("/api/repo/validate", {})
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "Invalid repository path")

    async def test_invalid_json_body(self):
        resp = await self.client.request("POST", "/api/git/info", data="not json")
        self.assertEqual(resp.status, 400)
        self.assertEqual((await resp.json())["error"], "Request body must be JSON")

    async def test_info(self):
        status, data = await self.post("/api/git/info", {"repoPath": self.repo_path})
        self.assertEqual(status, 200)
        self.assertEqual(data["currentBranch"], self.default_branch)
        self.assertEqual(data["totalCommits"], 2)
        self.assertEqual(data["commits"][0]["hash"], self.tip.hexsha)
        self.assertEqual({b["name"] for b in data["branches"]}, {self.default_branch, "feature"})

    async def test_history_limit(self):
        status, data = await self.post("/api/git/history", {"repoPath": self.repo_path, "limit": 1})
        self.assertEqual(status, 200)
        self.assertEqual([c["hash"] for c in data], [self.tip.hexsha])

        status, data = await self.post("/api/git/history", {"repoPath": self.repo_path, "limit": -1})
        self.assertEqual(status, 400)

    async def test_branches(self):
        status, data = await self.post("/api/git/branches", {"repoPath": self.repo_path})
        self.assertEqual(status, 200)
        current = [b for b in data if b["isCurrent"]]
        self.assertEqual([b["name"] for b in current], [self.default_branch])

    async def test_commit_details(self):
        status, data = await self.post("/api/git/commit", {"repoPath": self.repo_path, "hash": self.tip.hexsha})
        self.assertEqual(status, 200)
        self.assertEqual(data["subject"], "Update readme")
        self.assertIn("readme.md", data["diff"])

        status, data = await self.post("/api/git/commit", {"repoPath": self.repo_path, "hash": "nothex!"})
        self.assertEqual(status, 400)

    async def test_file(self):
        body = {"repoPath": self.repo_path, "filePath": "readme.md", "commitHash": self.root.hexsha}
        status, data = await self.post("/api/git/file", body)
        self.assertEqual(status, 200)
        self.assertEqual(data["content"], "# hello\n")
        self.assertEqual(data["filePath"], "readme.md")

        body["filePath"] = "missing.txt"
        status, data = await self.post("/api/git/file", body)
        self.assertEqual(status, 400)
        self.assertIn("File not found at commit", data["error"])

    async def test_tree(self):
        status, data = await self.post("/api/git/tree", {"repoPath": self.repo_path})
        self.assertEqual(status, 200)
        self.assertEqual(data, ["readme.md"])

    async def test_delete_branch(self):
        body = {"repoPath": self.repo_path, "branchName": "feature"}
        status, data = await self.post("/api/git/branch/delete", body)
        self.assertEqual(status, 200)
        self.assertEqual(data, {"success": True, "message": "Branch feature deleted successfully"})

        body["branchName"] = self.default_branch
        status, data = await self.post("/api/git/branch/delete", body)
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "Cannot delete the current branch")

    async def test_rename_branch(self):
        body = {"repoPath": self.repo_path, "oldName": "feature", "newName": "renamed"}
        status, data = await self.post("/api/git/branch/rename", body)
        self.assertEqual(status, 200)
        self.assertEqual(data["message"], "Branch feature renamed to renamed")
        self.assertIn("renamed", [h.name for h in self.repo.heads])

    async def test_checkout(self):
        status, data = await self.post("/api/git/checkout/branch", {"repoPath": self.repo_path, "branchName": "feature"})
        self.assertEqual(status, 200)
        self.assertEqual(data["message"], "Checked out branch feature")

        body = {"repoPath": self.repo_path, "hash": self.tip.hexsha}
        status, data = await self.post("/api/git/checkout/commit", body)
        self.assertEqual(status, 200)
        self.assertEqual(data["message"], f"Checked out commit {self.tip.hexsha}")
        self.assertTrue(self.repo.head.is_detached)

    async def test_layout(self):
        body = {"repoPath": self.repo_path, "width": 800, "height": 600, "selected": self.tip.hexsha}
        status, data = await self.post("/api/git/layout", body)
        self.assertEqual(status, 200)
        self.assertEqual(data["maxLevel"], 1)
        self.assertEqual(data["selected"], self.tip.hexsha)
        levels = {n["hash"]: n["level"] for n in data["nodes"]}
        self.assertEqual(levels, {self.tip.hexsha: 1, self.root.hexsha: 0})
        self.assertEqual(len(data["edges"]), 1)
        self.assertTrue(data["edges"][0]["highlighted"])
        labels = {lb["name"]: lb for lb in data["labels"]}
        self.assertTrue(labels[self.default_branch]["isCurrent"])
        self.assertEqual(labels["feature"]["commit"], self.root.hexsha)

    async def test_missing_repo_path(self):
        status, data = await self.post("/api/git/branches", {})
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "'repoPath' is required")

    async def test_layout_rejects_non_finite_numbers(self):
        body = {"repoPath": self.repo_path, "width": float("nan")}
        status, data = await self.post("/api/git/layout", body)
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "'width' must be a positive number")

        body = {"repoPath": self.repo_path, "height": float("inf")}
        status, data = await self.post("/api/git/layout", body)
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "'height' must be a positive number")

    async def test_history_rejects_bad_limits(self):
        status, data = await self.post("/api/git/history", {"repoPath": self.repo_path, "limit": float("inf")})
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "'limit' must be a positive number")

        status, data = await self.post("/api/git/history", {"repoPath": self.repo_path, "limit": 0.5})
        self.assertEqual(status, 400)
        self.assertEqual(data["error"], "'limit' must be a positive integer")

        status, data = await self.post("/api/git/history", {"repoPath": self.repo_path, "limit": 2.0})
        self.assertEqual(status, 200)
        self.assertEqual(len(data), 2)
