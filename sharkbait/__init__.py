"""Sharkbait: an AI coding assistant with a multi-agent orchestration engine."""

__version__ = "0.1.0"
