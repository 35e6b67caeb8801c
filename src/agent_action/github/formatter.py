"""Plain-text formatting of fetched GitHub data for prompts."""

from typing import Any, Dict, List

from agent_action.github.data import ChangedFile, Review


def format_context(context_data: Dict[str, Any], is_pr: bool) -> str:
    if is_pr:
        return (
            f"PR Title: {context_data.get('title', '')}\n"
            f"PR Author: {context_data.get('author', '')}\n"
            f"PR Branch: {context_data.get('head_ref', '')} -> {context_data.get('base_ref', '')}\n"
            f"PR State: {str(context_data.get('state', '')).upper()}\n"
            f"PR Additions: {context_data.get('additions', 0)}\n"
            f"PR Deletions: {context_data.get('deletions', 0)}\n"
            f"Total Commits: {context_data.get('commits', 0)}\n"
            f"Changed Files: {context_data.get('changed_files', 0)} files"
        )
    return (
        f"Issue Title: {context_data.get('title', '')}\n"
        f"Issue Author: {context_data.get('author', '')}\n"
        f"Issue State: {str(context_data.get('state', '')).upper()}"
    )


def format_body(body: str) -> str:
    return body.strip()


def format_comments(comments: List[Dict[str, Any]]) -> str:
    return "\n\n".join(
        f"[{(c.get('user') or {}).get('login', 'unknown')} at {c.get('created_at', '')}]: "
        f"{(c.get('body') or '').strip()}"
        for c in comments
    )


def format_review_comments(reviews: List[Review]) -> str:
    blocks = []
    for review in reviews:
        lines = [
            f"[Review by {review.author} at {review.submitted_at}]: {review.state}"
        ]
        if review.body:
            lines.append(review.body.strip())
        for comment in review.comments:
            location = comment.get("path", "")
            line = comment.get("line") or comment.get("original_line")
            if line:
                location = f"{location}:{line}"
            lines.append(
                f"  [Comment on {location}]: {(comment.get('body') or '').strip()}"
            )
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def format_changed_files_with_sha(changed_files: List[ChangedFile]) -> str:
    return "\n".join(
        f"- {f.path} ({f.change_type}) +{f.additions}/-{f.deletions} SHA: {f.sha}"
        for f in changed_files
    )
