"""AWS Bedrock client wrapper for single-shot vision requests."""

import asyncio
import logging
import os
from typing import Dict, List, Optional, Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, BotoCoreError
from dotenv import load_dotenv

from .errors import BedrockAPIError, ErrorType, ErrorContext

# Ensure environment variables are loaded
load_dotenv()

logger = logging.getLogger(__name__)


class BedrockClient:
    """
    Wrapper for the AWS Bedrock Runtime Converse API.

    Every call is a single attempt: botocore retries are disabled and no
    backoff is applied, so a failure surfaces to the caller immediately.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        model_id: str = "amazon.nova-pro-v1:0",
        timeout: int = 120,
        runtime: Optional[Any] = None
    ):
        """
        Initialize Bedrock client.

        Args:
            region: AWS region for Bedrock service
            model_id: Multimodal model used for damage assessment
            timeout: Connect/read timeout in seconds
            runtime: Optional pre-built bedrock-runtime client
        """
        self.region = region
        self.model_id = model_id

        if runtime is not None:
            self.runtime = runtime
        else:
            config_kwargs: Dict[str, Any] = {
                "region_name": region,
                "connect_timeout": timeout,
                "read_timeout": timeout,
                "retries": {"max_attempts": 0},
            }

            # Bedrock API keys are honoured through bearer-token auth
            if os.getenv("AWS_BEARER_TOKEN_BEDROCK") or os.getenv("BEDROCK_API_KEY"):
                if not os.getenv("AWS_BEARER_TOKEN_BEDROCK"):
                    os.environ["AWS_BEARER_TOKEN_BEDROCK"] = os.environ["BEDROCK_API_KEY"].strip()
                config_kwargs["signature_version"] = "bearer"
                logger.info("BedrockClient configured to use Amazon Bedrock API key authentication")
            else:
                logger.info("BedrockClient configured to use AWS IAM credentials (SigV4)")

            self.runtime = boto3.client("bedrock-runtime", config=Config(**config_kwargs))

        logger.info(f"Initialized BedrockClient: region={region}, model={model_id}")

    async def converse(
        self,
        messages: List[Dict[str, Any]],
        temperature: float = 0.0,
        max_tokens: int = 2048,
        system_prompts: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Invoke the configured model via the Converse API.

        The blocking boto3 call runs in a worker thread so the event loop
        stays free while the collaborator works.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0.0 = deterministic)
            max_tokens: Maximum tokens to generate
            system_prompts: Optional system prompts

        Returns:
            Parsed response dict with 'text', 'stop_reason' and 'usage'

        Raises:
            BedrockAPIError: If the call fails for any reason
        """
        params = {
            "modelId": self.model_id,
            "messages": messages,
            "inferenceConfig": {
                "temperature": temperature,
                "maxTokens": max_tokens
            }
        }

        if system_prompts:
            params["system"] = system_prompts

        try:
            response = await asyncio.to_thread(self.runtime.converse, **params)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning(f"Bedrock converse failed: code={error_code}")
            raise BedrockAPIError.from_client_error(
                error=e,
                operation="converse",
                recoverable=True,
                fallback_action="Return to IDLE"
            ) from e
        except BotoCoreError as e:
            logger.error(f"Bedrock transport error: {str(e)}")
            raise BedrockAPIError(
                ErrorContext(
                    error_type=ErrorType.BEDROCK_SERVICE_ERROR,
                    message=f"Bedrock transport error during converse: {str(e)}",
                    recoverable=True,
                    original_exception=e
                )
            ) from e

        logger.info(
            f"Bedrock converse successful: "
            f"stop_reason={response.get('stopReason')}, "
            f"usage={response.get('usage')}"
        )

        return self._parse_converse_response(response)

    def _parse_converse_response(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten a Converse API response into text plus bookkeeping fields."""
        message = response.get("output", {}).get("message", {})
        content = message.get("content", [])

        text_parts = [block["text"] for block in content if "text" in block]

        return {
            "content": content,
            "text": "\n".join(text_parts),
            "stop_reason": response.get("stopReason", "unknown"),
            "usage": response.get("usage", {}),
        }
