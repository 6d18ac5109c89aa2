"""Rapid response claim agent: vision damage assessment and agent-to-agent settlement."""

__version__ = "0.1.0"
