from typing import Annotated, Any

from pydantic import Field, HttpUrl, StringConstraints
from pydantic_settings import BaseSettings, SettingsConfigDict

from ._util import DEFAULT_BRANCH_NAME, NEON_API_URL


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="trifecta_", env_file=".env", extra="ignore", case_sensitive=False)

    neon_api_key: Annotated[str, Field(default="", description="Neon API key used as bearer token.")]
    neon_project_id: Annotated[str, Field(default="", description="Neon project that owns the branches.")]
    neon_api_url: Annotated[HttpUrl, Field(default=NEON_API_URL, description="Base URL of the Neon API.")]
    api_timeout: float = 10.0
    branch_name: Annotated[
        str,
        StringConstraints(min_length=1, max_length=256),
    ] = DEFAULT_BRANCH_NAME
    force: bool = False  # Replace an existing branch of the same name
    connection_string: str | None = None
    use_serverless: bool = True
    pool_size: int = 5

    def provision_kwargs(self) -> dict[str, Any]:
        return {
            "api_key": self.neon_api_key,
            "project_id": self.neon_project_id,
            "api_url": str(self.neon_api_url).rstrip("/"),
            "timeout": self.api_timeout,
        }
