# git_graph_data.py

from dataclasses import dataclass, field


@dataclass
class CommitNode:
    hash: str
    message: str = ""
    author: str = ""
    date: str = ""  # ISO 8601
    parents: list[str] = field(default_factory=list)
    branches: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "message": self.message,
            "author": self.author,
            "date": self.date,
            "parents": list(self.parents),
            "branches": list(self.branches),
            "tags": list(self.tags),
        }

    def __repr__(self) -> str:
        return (
            f"CommitNode(hash='{self.short_hash}', "
            f"parents={[p[:7] for p in self.parents]}, "
            f"branches={self.branches}, tags={self.tags}, "
            f"message='{self.message[:20]}...')"
        )


@dataclass
class BranchInfo:
    name: str
    commit: str
    is_remote: bool = False
    is_current: bool = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "commit": self.commit,
            "isRemote": self.is_remote,
            "isCurrent": self.is_current,
        }


@dataclass
class RepoInfo:
    path: str
    current_branch: str
    branches: list[BranchInfo]
    commits: list[CommitNode]

    @property
    def total_commits(self) -> int:
        return len(self.commits)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "currentBranch": self.current_branch,
            "branches": [b.to_dict() for b in self.branches],
            "commits": [c.to_dict() for c in self.commits],
            "totalCommits": self.total_commits,
        }


@dataclass
class CommitDetails:
    hash: str
    author: str
    email: str
    date: str
    subject: str
    body: str
    diff: str  # --name-status
    stat: str  # --stat

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "author": self.author,
            "email": self.email,
            "date": self.date,
            "subject": self.subject,
            "body": self.body,
            "diff": self.diff,
            "stat": self.stat,
        }
