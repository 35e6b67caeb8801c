"""Workflow outputs for the prepare step.

Publishes step outputs and exported variables through the files the
Actions runner provides (GITHUB_OUTPUT, GITHUB_ENV) and emits workflow
commands for warnings and failures on stdout.

Every published value is also recorded in memory so callers and tests can
inspect what the run produced without parsing the runner files.
"""

import sys
import uuid
from typing import Dict, List, Optional, TextIO

import structlog

logger = structlog.get_logger()


class ActionOutputs:
    """Writer for step outputs, exported variables and workflow commands.

    Attributes:
        output_path: Path of the GITHUB_OUTPUT file, if any.
        env_path: Path of the GITHUB_ENV file, if any.
        outputs: Step outputs published so far.
        exported: Variables exported so far.
        warnings: Warning messages emitted so far.
        failed: Failure message once set_failed was called.
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        env_path: Optional[str] = None,
        stream: Optional[TextIO] = None,
    ):
        self.output_path = output_path or None
        self.env_path = env_path or None
        self._stream = stream
        self.outputs: Dict[str, str] = {}
        self.exported: Dict[str, str] = {}
        self.warnings: List[str] = []
        self.failed: Optional[str] = None

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def set_output(self, name: str, value: str) -> None:
        """Set a step output for the workflow."""
        self.outputs[name] = value
        if self.output_path:
            _append_key_value(self.output_path, name, value)
        else:
            logger.debug("No GITHUB_OUTPUT file, output kept in memory", name=name)

    def export_variable(self, name: str, value: str) -> None:
        """Export an environment variable for subsequent workflow steps."""
        self.exported[name] = value
        if self.env_path:
            _append_key_value(self.env_path, name, value)
        else:
            logger.debug("No GITHUB_ENV file, variable kept in memory", name=name)

    def warning(self, message: str) -> None:
        """Emit a workflow warning annotation."""
        self.warnings.append(message)
        self.stream.write(f"::warning::{_escape_data(message)}\n")

    def set_failed(self, message: str) -> None:
        """Emit a workflow error annotation and mark the step as failed."""
        self.failed = message
        self.stream.write(f"::error::{_escape_data(message)}\n")


def _append_key_value(path: str, name: str, value: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            f.write(f"{name}={value}\n")


def _escape_data(message: str) -> str:
    return (
        message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    )
