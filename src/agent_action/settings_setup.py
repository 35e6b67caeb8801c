"""Agent settings file setup.

Merges the workflow's settings input into ``<home>/.claude/settings.json``
before the agent starts. The input is either a JSON object or the path of
a JSON file. Existing keys are kept unless the input replaces them, and
``enableAllProjectMcpServers`` is always forced on so the MCP servers
configured by the prepare step are loaded.
"""

import json
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog

from agent_action.config import get_settings
from agent_action.errors import ConfigError
from agent_action.logs import configure_logging
from agent_action.outputs import ActionOutputs

logger = structlog.get_logger()

FORCED_SETTINGS = {"enableAllProjectMcpServers": True}


def load_settings_input(settings_input: str) -> Dict[str, Any]:
    """Parse the settings input as inline JSON or as a JSON file path.

    Raises:
        ConfigError: If the input is neither a JSON object nor the path of
            a file holding one.
    """
    try:
        parsed = json.loads(settings_input)
    except json.JSONDecodeError:
        path = Path(settings_input.strip())
        if not path.is_file():
            raise ConfigError(
                f"Settings input is not valid JSON and no file exists at: {path}"
            ) from None
        logger.info("Reading agent settings from file", path=str(path))
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Settings file {path} is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise ConfigError("Settings input must be a JSON object")
    return parsed


def setup_agent_settings(
    settings_input: Optional[str],
    home_dir: Union[str, Path],
    slash_commands_dir: Optional[Union[str, Path]] = None,
) -> Path:
    """Write the merged agent settings file.

    Args:
        settings_input: JSON object string, JSON file path, or empty.
        home_dir: Home directory holding the ``.claude`` directory.
        slash_commands_dir: Directory whose ``*.md`` files are copied next
            to the settings file, if it exists.

    Returns:
        Path of the written settings file.

    Raises:
        ConfigError: If a non-empty input cannot be parsed.
    """
    claude_dir = Path(home_dir) / ".claude"
    claude_dir.mkdir(parents=True, exist_ok=True)
    settings_path = claude_dir / "settings.json"

    settings: Dict[str, Any] = {}
    if settings_path.is_file():
        try:
            existing = json.loads(settings_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Existing settings file is not valid JSON, starting fresh", path=str(settings_path))
        else:
            if isinstance(existing, dict):
                settings = existing

    if settings_input and settings_input.strip():
        settings.update(load_settings_input(settings_input))

    settings.update(FORCED_SETTINGS)
    settings_path.write_text(json.dumps(settings, indent=2), encoding="utf-8")
    logger.info("Agent settings written", path=str(settings_path), keys=sorted(settings))

    if slash_commands_dir:
        copy_slash_commands(Path(slash_commands_dir), claude_dir)
    return settings_path


def copy_slash_commands(source: Path, target: Path) -> int:
    """Copy ``*.md`` slash command files; a missing source is skipped."""
    if not source.is_dir():
        logger.info("Slash commands directory not found, skipping", path=str(source))
        return 0
    copied = 0
    for command_file in sorted(source.glob("*.md")):
        if command_file.is_file():
            shutil.copy2(command_file, target / command_file.name)
            copied += 1
    logger.info("Slash commands copied", count=copied, source=str(source))
    return copied


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    home = settings.home or str(Path.home())
    try:
        setup_agent_settings(
            settings.agent_settings, home, settings.slash_commands_dir or None
        )
    except ConfigError as e:
        ActionOutputs().set_failed(f"Failed to set up agent settings: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
