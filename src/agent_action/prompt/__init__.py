"""Prompt preparation: the flattened prompt context and the prompt file."""
