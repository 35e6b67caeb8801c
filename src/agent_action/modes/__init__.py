"""Execution modes for the prepare step.

Each mode bundles a trigger predicate, tool grants, tracking-comment policy,
prompt generation and an async prepare operation. Modes are looked up by
name through agent_action.modes.registry.

To add a new mode:
1. Add the name to ModeName in names.py
2. Implement the Mode base class in a new module
3. Register the instance in registry.py
"""
