"""Branch setup for tag mode.

Open pull requests are worked on in place: the head branch is fetched and
checked out. Issues and closed pull requests get a fresh branch named
``<prefix><issue|pr>-<number>-<YYYYMMDD-HHMM>`` cut from the base branch.
With commit signing enabled the branch is only named here; commits go
through the API, so no local checkout is made.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from agent_action.errors import PrepareError
from agent_action.github.client import GitHubClient
from agent_action.github.context import EntityContext
from agent_action.github.data import FetchDataResult

logger = structlog.get_logger()


class GitCommandError(PrepareError):
    """Raised when a git subprocess exits with a non-zero code."""


class BranchInfo(BaseModel):
    """Branches the agent works with.

    Attributes:
        base_branch: Branch the work is based on.
        current_branch: Branch checked out for the agent.
        claude_branch: Branch created for this run, if any.
    """

    model_config = ConfigDict(frozen=True)

    base_branch: str
    current_branch: str
    claude_branch: Optional[str] = None


class GitRunner:
    """Runs git as an async subprocess in the workspace."""

    def __init__(self, cwd: Optional[Path] = None, git_path: str = "git"):
        self.cwd = cwd
        self.git_path = git_path

    async def run(self, *args: str) -> str:
        """Run a git command and return its stdout.

        Raises:
            GitCommandError: If git exits with a non-zero code.
        """
        logger.debug("Running git", args=list(args))
        process = await asyncio.create_subprocess_exec(
            self.git_path,
            *args,
            cwd=str(self.cwd) if self.cwd else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise GitCommandError(
                f"git {' '.join(args)} failed with exit code "
                f"{process.returncode}: {stderr.decode(errors='replace').strip()}"
            )
        return stdout.decode(errors="replace")


def new_branch_name(
    context: EntityContext, now: Optional[datetime] = None
) -> str:
    now = now or datetime.now(timezone.utc)
    entity_type = "pr" if context.is_pr else "issue"
    timestamp = now.strftime("%Y%m%d-%H%M")
    return (
        f"{context.inputs.branch_prefix}{entity_type}-"
        f"{context.entity_number}-{timestamp}"
    ).lower()


async def setup_branch(
    client: GitHubClient,
    github_data: FetchDataResult,
    context: EntityContext,
    git: GitRunner,
) -> BranchInfo:
    """Check out the branch the agent will work on.

    Args:
        client: Authenticated GitHub client.
        github_data: Fetched issue or pull request data.
        context: The entity context of the run.
        git: Runner for local git commands.

    Returns:
        BranchInfo describing the checked-out branch.
    """
    data = github_data.context_data
    inputs = context.inputs

    if context.is_pr and data.get("state") == "open":
        head = data.get("head_ref", "")
        depth = max(int(data.get("commits") or 0), 20)
        logger.info("Checking out pull request branch", branch=head, depth=depth)
        await git.run("fetch", "origin", f"--depth={depth}", head)
        await git.run("checkout", head, "--")
        return BranchInfo(
            base_branch=data.get("base_ref", ""),
            current_branch=head,
        )

    source_branch = inputs.base_branch
    if not source_branch:
        repository = await client.get_repository(
            context.repository.owner, context.repository.repo
        )
        source_branch = repository.get("default_branch", "main")

    branch = new_branch_name(context)

    if inputs.use_commit_signing:
        logger.info("Commit signing enabled, branch will be created via API", branch=branch)
    else:
        logger.info("Creating local branch", branch=branch, source_branch=source_branch)
        await git.run("fetch", "origin", source_branch, "--depth=1")
        await git.run("checkout", source_branch, "--")
        await git.run("checkout", "-b", branch)

    return BranchInfo(
        base_branch=source_branch,
        current_branch=branch,
        claude_branch=branch,
    )
