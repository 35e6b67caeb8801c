"""MCP configuration and the stdio tool servers handed to the agent.

- config: builds the ``mcpServers`` JSON document for the agent step
- comment_server: ``update_claude_comment`` for the tracking comment
- inline_comment_server: ``create_inline_comment`` for PR review comments
"""
