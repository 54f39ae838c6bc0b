"""
SKILL-RUNTIME: Rule Matching & Activation Engine for assistant skills

This package decides when a skill (a bundle of instructions for an AI coding
assistant) should be auto-loaded, suggested, or used to block a tool call,
based on declarative trigger rules evaluated against:
- the submitted prompt text
- files modified during the session (paths and content)
- tool names and tool arguments
- per-session activation history and cooldowns
"""

__version__ = "0.1.0"
