"""Prompt Workbench: shared agents, rules and hooks for projects."""
