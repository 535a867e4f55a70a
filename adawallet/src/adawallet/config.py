"""
Configuration management for the wallet service.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from adawallet.backends.blockfrost import BLOCKFROST_URLS, BlockfrostBackend


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    blockfrost_project_id: str = ""
    blockfrost_network: Literal["mainnet", "preprod", "preview"] = "preview"
    blockfrost_url: str | None = None  # Self-hosted instance; overrides the network URL

    http_host: str = "0.0.0.0"
    http_port: int = 5000

    log_level: str = "INFO"

    signing_timeout: float = 300.0
    ttl_slots: int = 7200  # ~2 hours
    request_timeout: float = 30.0

    def get_blockfrost_url(self) -> str:
        return self.blockfrost_url or BLOCKFROST_URLS[self.blockfrost_network]

    def create_backend(self) -> BlockfrostBackend:
        return BlockfrostBackend(
            project_id=self.blockfrost_project_id,
            network=self.blockfrost_network,
            base_url=self.get_blockfrost_url(),
            timeout=self.request_timeout,
        )


def get_settings() -> Settings:
    return Settings()
