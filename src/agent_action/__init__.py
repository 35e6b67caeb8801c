"""Prepare step for the repository coding agent action.

This package implements the decision layer that runs before the coding
agent is invoked, providing:
- Normalization of GitHub event payloads into a typed context
- Pluggable execution modes (tag, agent, experimental-review)
- Trigger evaluation and write-permission checks
- Tool scope, prompt file and MCP configuration preparation
- Workflow outputs for the downstream agent step
"""
