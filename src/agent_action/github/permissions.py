"""Actor authorization checks.

The orchestrator only lets entity events proceed when the actor can write
to the repository. Tag mode additionally refuses to act for bot accounts.
"""

import structlog

from agent_action.errors import HumanActorError
from agent_action.github.client import GitHubClient
from agent_action.github.context import EntityContext

logger = structlog.get_logger()

WRITE_PERMISSIONS = {"admin", "write"}


async def check_write_permissions(
    client: GitHubClient, context: EntityContext
) -> bool:
    """Check whether the actor has write or admin access.

    Args:
        client: Authenticated GitHub client.
        context: The entity context of the run.

    Returns:
        True if the actor may write to the repository.
    """
    repository = context.repository
    logger.info("Checking permissions for actor", actor=context.actor)

    permission = await client.get_collaborator_permission(
        repository.owner, repository.repo, context.actor
    )
    logger.info("Permission level retrieved", actor=context.actor, permission=permission)

    if permission in WRITE_PERMISSIONS:
        logger.info("Actor has write access", actor=context.actor)
        return True

    logger.warning("Actor has insufficient permissions", actor=context.actor, permission=permission)
    return False


async def check_human_actor(client: GitHubClient, context: EntityContext) -> None:
    """Verify the actor is a user account rather than a bot.

    Raises:
        HumanActorError: If GitHub reports a non-User account type.
    """
    user = await client.get_user(context.actor)
    actor_type = user.get("type")
    if actor_type != "User":
        raise HumanActorError(
            f"Workflow initiated by non-human actor: {context.actor} "
            f"(type: {actor_type})."
        )
    logger.info("Verified human actor", actor=context.actor)
