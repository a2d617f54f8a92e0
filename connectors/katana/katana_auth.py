"""Katana MRP Authentication Provider.

Katana authenticates every call with a static API key sent as a bearer
token. Keys are generated under Katana -> Settings -> API -> API keys.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

API_KEY_ENV_VAR = "KATANA_API_KEY"

# Project root .env, same place the rest of the tooling reads it from
ENV_PATH = Path(__file__).resolve().parents[2] / ".env"


def load_env(env_path: Optional[Path] = None) -> None:
    """Load a .env file into the process environment if it exists."""
    path = env_path or ENV_PATH
    if path.exists():
        load_dotenv(path)


@dataclass
class KatanaAuthConfig:
    """Configuration for Katana authentication.

    Attributes:
        api_key: Katana API key
    """
    api_key: str = field(repr=False)

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "KatanaAuthConfig":
        """Build the config from the environment.

        Reads KATANA_API_KEY after loading the project .env file.

        Raises:
            ValueError: If the API key is not set
        """
        load_env(env_path)
        api_key = os.getenv(API_KEY_ENV_VAR)
        if not api_key:
            raise ValueError(
                f"{API_KEY_ENV_VAR} environment variable not set. "
                "Generate a key under Katana -> Settings -> API -> API keys"
            )
        return cls(api_key=api_key)


class KatanaAuthProvider:
    """Authentication provider for Katana.

    Usage:
        auth = KatanaAuthProvider(KatanaAuthConfig.from_env())
        headers = auth.get_auth_headers()
    """

    def __init__(self, config: KatanaAuthConfig):
        if not config.api_key:
            raise ValueError("Katana API key must not be empty")
        self.config = config

    def get_authorization_header(self) -> str:
        """Get the Authorization header value ("Bearer <apiKey>")."""
        return f"Bearer {self.config.api_key}"

    def get_auth_headers(self) -> Dict[str, str]:
        """Get headers for an authenticated JSON request."""
        return {
            "Authorization": self.get_authorization_header(),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
