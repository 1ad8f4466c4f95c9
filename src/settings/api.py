"""API configuration settings.

FastAPI, security (JWT), and CORS settings.
"""

from dataclasses import dataclass

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """FastAPI configuration.

    Attributes:
        host: API host address.
        port: API port.
        reload: Enable auto-reload in development.
        workers: Number of worker processes.
        public_url: Public URL for the API.
    """

    host: str = Field(default="0.0.0.0", alias="API_HOST")
    port: int = Field(default=8000, alias="API_PORT")
    reload: bool = Field(default=True, alias="API_RELOAD")
    workers: int = Field(default=4, alias="API_WORKERS")
    public_url: str = Field(default="http://localhost:8000", alias="API_PUBLIC_URL")
    title: str = Field(default="Compilo Compliance API", alias="API_TITLE")
    version: str = Field(default="1.0.0", alias="API_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@dataclass(frozen=True)
class DemoUser:
    """Demo account bound to one organization.

    Attributes:
        username: Login name.
        password: Plain demo password.
        organization_slug: Slug of the tenant the token is issued for.
    """

    username: str
    password: str
    organization_slug: str


class SecuritySettings(BaseSettings):
    """JWT configuration.

    Attributes:
        jwt_secret_key: Secret key for JWT signing.
        jwt_algorithm: JWT algorithm (HS256, RS256).
        jwt_expire_minutes: Token expiration time.
    """

    jwt_secret_key: str = Field(alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expire_minutes: int = Field(default=30, alias="JWT_EXPIRE_MINUTES")

    # Demo authentication (format: "user1:pass1:org-slug,user2:pass2:org-slug")
    demo_users_raw: str = Field(default="", alias="AUTH_DEMO_USERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_configured(self) -> bool:
        """Check if JWT secret is configured and secure."""
        return bool(self.jwt_secret_key and len(self.jwt_secret_key) >= 32)

    @property
    def demo_users(self) -> dict[str, DemoUser]:
        """Parse demo users from 'user:pass:org-slug,...' format."""
        if not self.demo_users_raw:
            return {}
        users = {}
        for entry in self.demo_users_raw.split(","):
            parts = [part.strip() for part in entry.strip().split(":")]
            if len(parts) != 3 or not all(parts):
                continue
            username, password, org_slug = parts
            users[username] = DemoUser(username, password, org_slug)
        return users


class CORSSettings(BaseSettings):
    """CORS configuration.

    Attributes:
        origins_raw: Comma-separated allowed origins.
    """

    origins_raw: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def origins(self) -> list[str]:
        """Parse origins from comma-separated string."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]
