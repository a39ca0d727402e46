# souldeep/services/factory.py
import logging
from typing import Any

from souldeep.config import AppConfig

logger = logging.getLogger(__name__)


def get_service(service_type: str, config: AppConfig) -> Any:
    """
    Factory method to get appropriate service implementation
    based on local mode or AWS mode.
    """
    if service_type == "storage":
        if config.is_local_mode():
            from .local_storage import LocalPersonaStore

            logger.info("Using local persona storage")
            return LocalPersonaStore(config.LOCAL_STORAGE_PATH)
        else:
            from .persona_store import DynamoDBPersonaStore

            logger.info("Using DynamoDB persona storage")
            return DynamoDBPersonaStore(
                table_name=config.PERSONA_TABLE_NAME,
                region_name=config.AWS_DEFAULT_REGION,
            )
    elif service_type == "synthesizer":
        if config.uses_mock_synthesizer():
            from .mock_synthesizer import MockSynthesizer

            logger.info("Using mock persona synthesizer")
            return MockSynthesizer()
        else:
            from .synthesizer import OpenAISynthesizer

            logger.info(f"Using OpenAI persona synthesizer ({config.OPENAI_MODEL})")
            return OpenAISynthesizer(
                api_key=config.OPENAI_API_KEY,
                model=config.OPENAI_MODEL,
                timeout=config.SYNTHESIS_TIMEOUT,
                max_retries=config.SYNTHESIS_MAX_RETRIES,
            )

    raise ValueError(f"Unknown service type: {service_type}")
