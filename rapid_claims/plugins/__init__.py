"""Gateways to external collaborators used by the claim workflow."""

from .damage_analyzer import AnalysisGateway, BedrockDamageAnalyzer

__all__ = [
    'AnalysisGateway',
    'BedrockDamageAnalyzer'
]
