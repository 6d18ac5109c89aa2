"""Data models for evidence, damage reports, handshake messages and claim results."""
