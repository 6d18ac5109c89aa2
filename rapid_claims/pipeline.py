"""
Main entry point wiring the claim workflow together.

Builds the vision gateway, the handshake protocol and the workflow
controller from configuration. The shared controller is created lazily on
first use so importing the package never touches AWS.
"""

from __future__ import annotations

import logging
from typing import Optional

from dotenv import load_dotenv

from .orchestration.handshake import HandshakeProtocol
from .orchestration.pacing import PacingStrategy
from .orchestration.workflow import WorkflowController
from .plugins.damage_analyzer import AnalysisGateway, BedrockDamageAnalyzer
from .utils.bedrock_client import BedrockClient
from .utils.config import Config
from .utils.errors import ClaimsProcessingError, ConfigurationError, ErrorContext, ErrorType
from .utils.logging import setup_logging

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Global instances (initialized on first use)
_config: Optional[Config] = None
_controller: Optional[WorkflowController] = None


def build_gateway(config: Config) -> AnalysisGateway:
    """Create the Bedrock-backed vision gateway described by configuration."""
    client = BedrockClient(
        region=config.aws_region,
        model_id=config.bedrock.model_id,
        timeout=config.bedrock.timeout,
    )
    return BedrockDamageAnalyzer(
        bedrock_client=client,
        max_tokens=config.analysis.max_tokens,
        temperature=config.analysis.temperature,
    )


def build_controller(
    config: Config,
    gateway: Optional[AnalysisGateway] = None,
    pacing: Optional[PacingStrategy] = None
) -> WorkflowController:
    """
    Assemble a workflow controller.

    Args:
        config: Loaded configuration
        gateway: Optional vision gateway (defaults to Bedrock)
        pacing: Optional pacing override (defaults to the configured delays)

    Returns:
        WorkflowController in the IDLE step
    """
    protocol = HandshakeProtocol.from_config(config.negotiation, pacing=pacing)
    return WorkflowController(gateway=gateway or build_gateway(config), protocol=protocol)


def _initialize_system(config_path: str = "config.yaml") -> None:
    """
    Initialize configuration, logging and the shared controller.

    Called lazily on the first get_controller invocation.
    """
    global _config, _controller

    if _controller is not None:
        return

    try:
        logger.info("Initializing claim agent")

        _config = Config.load(config_path)
        setup_logging(
            level=_config.logging.level,
            log_format=_config.logging.format,
            log_file=_config.logging.file or None,
        )
        logger.info(
            f"Configuration loaded: region={_config.aws_region}, model={_config.bedrock.model_id}, "
            f"threshold={_config.negotiation.approval_threshold}"
        )

        _controller = build_controller(_config)
        logger.info("System initialization complete")

    except ConfigurationError:
        raise

    except Exception as e:
        logger.error(f"System initialization failed: {str(e)}", exc_info=True)
        raise ClaimsProcessingError(
            ErrorContext(
                error_type=ErrorType.UNKNOWN_ERROR,
                message=f"Failed to initialize claim agent: {str(e)}",
                recoverable=False,
                original_exception=e
            )
        ) from e


def get_controller() -> WorkflowController:
    """Return the process-wide workflow controller, creating it on first use."""
    _initialize_system()
    return _controller
