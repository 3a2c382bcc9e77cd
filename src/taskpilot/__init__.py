"""Taskpilot - autonomous task execution on top of a chat-completions model API."""

__version__ = "0.1.0"
