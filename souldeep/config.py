# souldeep/config.py
import os
import logging
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv
from pydantic import BaseModel

from souldeep.errors import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Load environment variables from .env file
load_dotenv()


class AppConfig(BaseModel):
    ENV_TIER: str = "local"
    CLIENT_ID: str = "souldeep"
    AWS_DEFAULT_REGION: str = "us-east-2"
    LOCAL_MODE: bool = False
    LOCAL_STORAGE_PATH: str = "./local_storage"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    PERSONA_TABLE_NAME: str = "souldeep-personas"
    SYNTHESIS_TIMEOUT: float = 30.0
    SYNTHESIS_MAX_RETRIES: int = 2

    def is_local_mode(self) -> bool:
        return self.LOCAL_MODE

    def uses_mock_synthesizer(self) -> bool:
        """Local mode without an API key synthesizes personas offline."""
        return self.LOCAL_MODE and not self.OPENAI_API_KEY

    @classmethod
    def load(cls) -> "AppConfig":
        local_mode = os.getenv("LOCAL_MODE", "false").lower() == "true"

        required_vars = ["OPENAI_API_KEY", "PERSONA_TABLE_NAME"]
        optional_vars = [
            "OPENAI_MODEL",
            "SYNTHESIS_TIMEOUT",
            "SYNTHESIS_MAX_RETRIES",
            "LOCAL_STORAGE_PATH",
        ]

        config = {
            var: os.environ[var]
            for var in required_vars + optional_vars
            if os.environ.get(var)
        }

        if not local_mode:
            try:
                client_id = os.environ["CLIENT_ID"]
                env_tier = os.environ["ENV_TIER"]
                region = os.environ["AWS_DEFAULT_REGION"]
            except KeyError as e:
                raise ConfigurationError(f"Missing environment variable: {e}")

            config.update(cls._load_ssm_parameters(client_id, env_tier, region, required_vars))
            config.update(
                {"CLIENT_ID": client_id, "ENV_TIER": env_tier, "AWS_DEFAULT_REGION": region}
            )

            missing = [var for var in required_vars if not config.get(var)]
            if missing:
                raise ConfigurationError(f"Missing required configuration: {missing}")
        else:
            config["ENV_TIER"] = os.getenv("ENV_TIER", "local")

        config["LOCAL_MODE"] = local_mode
        try:
            instance = cls(**config)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

        logger.info(
            f"Configuration loaded (env: {instance.ENV_TIER}, local mode: {instance.LOCAL_MODE})"
        )
        return instance

    @staticmethod
    def _load_ssm_parameters(client_id, env_tier, region, names):
        """Read parameters from AWS Parameter Store under {CLIENT_ID}/{ENV_TIER}/."""
        ssm = boto3.client("ssm", region_name=region)
        param_paths = [f"{client_id}/{env_tier}/{var}" for var in names]

        try:
            response = ssm.get_parameters(Names=param_paths, WithDecryption=True)
        except (ClientError, BotoCoreError) as e:
            raise ConfigurationError(f"AWS Error: {e}")

        aws_params = {param["Name"]: param["Value"] for param in response["Parameters"]}
        return {
            var: aws_params[f"{client_id}/{env_tier}/{var}"]
            for var in names
            if f"{client_id}/{env_tier}/{var}" in aws_params
        }
