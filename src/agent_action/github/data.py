"""Fetch issue and pull request data for prompt generation."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from agent_action.github.client import GitHubClient
from agent_action.github.context import Repository

logger = structlog.get_logger()


@dataclass
class ChangedFile:
    """A file touched by a pull request.

    Attributes:
        path: Repository-relative file path.
        change_type: GitHub status (added, modified, removed, renamed).
        additions: Added line count.
        deletions: Deleted line count.
        sha: Blob SHA of the file at the PR head.
    """

    path: str
    change_type: str
    additions: int
    deletions: int
    sha: str = ""


@dataclass
class Review:
    """A submitted pull request review with its inline comments."""

    id: int
    author: str
    body: str
    state: str
    submitted_at: str
    comments: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class FetchDataResult:
    """GitHub data a prompt is built from.

    Attributes:
        context_data: Issue or pull request metadata.
        comments: Conversation comments on the issue or pull request.
        changed_files: Files changed by the pull request (empty for issues).
        reviews: Pull request reviews (empty for issues).
        trigger_display_name: Display name of the triggering user, if known.
    """

    context_data: Dict[str, Any]
    comments: List[Dict[str, Any]] = field(default_factory=list)
    changed_files: List[ChangedFile] = field(default_factory=list)
    reviews: List[Review] = field(default_factory=list)
    trigger_display_name: Optional[str] = None


async def fetch_github_data(
    client: GitHubClient,
    repository: Repository,
    number: int,
    is_pr: bool,
    trigger_username: Optional[str] = None,
) -> FetchDataResult:
    """Fetch the issue or pull request the run is about.

    Calls are made one after another; any API failure propagates.

    Args:
        client: Authenticated GitHub client.
        repository: Repository coordinates.
        number: Issue or pull request number.
        is_pr: Whether the entity is a pull request.
        trigger_username: Login of the user who triggered the run.

    Returns:
        FetchDataResult for prompt generation.
    """
    owner, repo = repository.owner, repository.repo
    logger.info("Fetching GitHub data", repository=repository.full_name, number=number, is_pr=is_pr)

    if is_pr:
        pr = await client.get_pull_request(owner, repo, number)
        context_data = _pull_request_data(pr)
        files = await client.list_pull_request_files(owner, repo, number)
        changed_files = [
            ChangedFile(
                path=f.get("filename", ""),
                change_type=f.get("status", "modified"),
                additions=f.get("additions", 0),
                deletions=f.get("deletions", 0),
                sha=f.get("sha") or "",
            )
            for f in files
        ]
        reviews = _group_reviews(
            await client.list_pull_request_reviews(owner, repo, number),
            await client.list_review_comments(owner, repo, number),
        )
    else:
        issue = await client.get_issue(owner, repo, number)
        context_data = _issue_data(issue)
        changed_files = []
        reviews = []

    comments = await client.list_issue_comments(owner, repo, number)

    trigger_display_name = None
    if trigger_username:
        user = await client.get_user(trigger_username)
        trigger_display_name = user.get("name") or None

    return FetchDataResult(
        context_data=context_data,
        comments=comments,
        changed_files=changed_files,
        reviews=reviews,
        trigger_display_name=trigger_display_name,
    )


def _login(obj: Any) -> str:
    if isinstance(obj, dict):
        return (obj.get("user") or {}).get("login", "")
    return ""


def _issue_data(issue: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": issue.get("title", ""),
        "body": issue.get("body") or "",
        "author": _login(issue),
        "state": issue.get("state", ""),
        "created_at": issue.get("created_at", ""),
    }


def _pull_request_data(pr: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": pr.get("title", ""),
        "body": pr.get("body") or "",
        "author": _login(pr),
        "state": pr.get("state", ""),
        "merged": bool(pr.get("merged")),
        "created_at": pr.get("created_at", ""),
        "base_ref": (pr.get("base") or {}).get("ref", ""),
        "head_ref": (pr.get("head") or {}).get("ref", ""),
        "head_sha": (pr.get("head") or {}).get("sha", ""),
        "additions": pr.get("additions", 0),
        "deletions": pr.get("deletions", 0),
        "changed_files": pr.get("changed_files", 0),
        "commits": pr.get("commits", 0),
    }


def _group_reviews(
    reviews: List[Dict[str, Any]],
    review_comments: List[Dict[str, Any]],
) -> List[Review]:
    by_review: Dict[Any, List[Dict[str, Any]]] = {}
    for comment in review_comments:
        by_review.setdefault(comment.get("pull_request_review_id"), []).append(comment)

    return [
        Review(
            id=review.get("id", 0),
            author=_login(review),
            body=review.get("body") or "",
            state=review.get("state", ""),
            submitted_at=review.get("submitted_at") or "",
            comments=by_review.get(review.get("id"), []),
        )
        for review in reviews
    ]
