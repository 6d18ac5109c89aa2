"""Configuration management for the claim agent."""

import math
import os
import yaml
from dataclasses import dataclass, field

from .errors import ConfigurationError


DEFAULT_APPROVAL_THRESHOLD = 5000.0


@dataclass
class BedrockConfig:
    """AWS Bedrock configuration."""
    model_id: str
    timeout: int


@dataclass
class AnalysisConfig:
    """Vision analysis request settings."""
    max_tokens: int = 2048
    temperature: float = 0.0


@dataclass
class PacingConfig:
    """Simulated latency between handshake phases, in seconds."""
    enabled: bool = True
    proposal_seconds: float = 1.5
    evaluation_seconds: float = 1.5
    settlement_seconds: float = 1.0


@dataclass
class NegotiationConfig:
    """Handshake protocol configuration."""
    approval_threshold: float = DEFAULT_APPROVAL_THRESHOLD
    currency: str = "USD"
    settlement_network: str = "FED_INSTANT_SETTLEMENT"
    agent_version: str = "Vision-Claims-Handshake-V1"
    pacing: PacingConfig = field(default_factory=PacingConfig)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    format: str
    file: str


@dataclass
class Config:
    """Main configuration class."""
    aws_region: str
    bedrock: BedrockConfig
    analysis: AnalysisConfig
    negotiation: NegotiationConfig
    logging: LoggingConfig

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - APPROVAL_THRESHOLD
        - HANDSHAKE_PACING ("0"/"false" turns pacing off)
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            ConfigurationError: If the file is missing or a value is invalid
        """
        if not os.path.exists(config_path):
            raise ConfigurationError.missing(config_path)

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        aws_region = os.getenv("AWS_REGION", config_data["aws"]["region"])

        bedrock_config = BedrockConfig(
            model_id=os.getenv("BEDROCK_MODEL_ID", config_data["aws"]["bedrock"]["model_id"]),
            timeout=_number("aws.bedrock.timeout", config_data["aws"]["bedrock"].get("timeout", 120), int)
        )

        an = config_data.get("analysis", {}) or {}
        analysis_config = AnalysisConfig(
            max_tokens=_number("analysis.max_tokens", an.get("max_tokens", 2048), int),
            temperature=_number("analysis.temperature", an.get("temperature", 0.0))
        )

        # Negotiation configuration (threshold and pacing are the tunables)
        neg = config_data.get("negotiation", {}) or {}
        pace = neg.get("pacing", {}) or {}
        pacing_config = PacingConfig(
            enabled=_parse_bool(os.getenv("HANDSHAKE_PACING", pace.get("enabled", True))),
            proposal_seconds=_number("negotiation.pacing.proposal_seconds", pace.get("proposal_seconds", 1.5)),
            evaluation_seconds=_number("negotiation.pacing.evaluation_seconds", pace.get("evaluation_seconds", 1.5)),
            settlement_seconds=_number("negotiation.pacing.settlement_seconds", pace.get("settlement_seconds", 1.0))
        )
        negotiation_config = NegotiationConfig(
            approval_threshold=_number(
                "negotiation.approval_threshold",
                os.getenv("APPROVAL_THRESHOLD", neg.get("approval_threshold", DEFAULT_APPROVAL_THRESHOLD))
            ),
            currency=neg.get("currency", "USD"),
            settlement_network=neg.get("settlement_network", "FED_INSTANT_SETTLEMENT"),
            agent_version=neg.get("agent_version", "Vision-Claims-Handshake-V1"),
            pacing=pacing_config
        )

        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", config_data["logging"]["level"]),
            format=config_data["logging"]["format"],
            file=config_data["logging"].get("file", "")
        )

        config = cls(
            aws_region=aws_region,
            bedrock=bedrock_config,
            analysis=analysis_config,
            negotiation=negotiation_config,
            logging=logging_config,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the workflow cannot run with."""
        threshold = self.negotiation.approval_threshold
        if not math.isfinite(threshold) or threshold < 0:
            raise ConfigurationError.invalid(
                "negotiation.approval_threshold", threshold, "must be a finite non-negative amount"
            )

        pacing = self.negotiation.pacing
        for key in ("proposal_seconds", "evaluation_seconds", "settlement_seconds"):
            value = getattr(pacing, key)
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError.invalid(
                    f"negotiation.pacing.{key}", value, "must be non-negative"
                )


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("0", "false", "no", "off", "")


def _number(key: str, value, cast=float):
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError.invalid(key, value, f"expected a {cast.__name__}") from e
