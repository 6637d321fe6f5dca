"""StreamGate Server Configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "StreamGate API"
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False
    allowed_origins: list[str] = []

    # Paths
    data_dir: Path = Path.home() / "streamgate" / "data"

    # Database
    db_path: Path = Path.home() / "streamgate" / "data" / "streamgate.db"

    # JWT
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    session_token_expire_hours: int = 12

    # Playback tokens
    playback_token_ttl: int = 3600
    playback_ttl_min: int = 60
    playback_ttl_max: int = 86400
    playback_audience: str = "playback"
    playback_issuer: str = "streamgate-api"
    playback_base_url: str = ""  # public origin used in minted playback links

    # Upstream panel
    upstream_base_url: str = ""  # fallback when a device has no stored base URL

    # Vault (base64-encoded 32-byte key, never generated)
    vault_key: str = ""

    # Operator access
    admin_api_key: str = ""

    # Registration
    device_code_attempts: int = 10

    model_config = {"env_prefix": "STREAMGATE_"}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate signing/admin secrets if not set, persist them so they survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)
        if not self.admin_api_key:
            self.admin_api_key = saved.get("admin_api_key", "") or secrets.token_urlsafe(24)

        # Persist for next restart
        secrets_file.write_text(
            f"jwt_secret={self.jwt_secret}\nadmin_api_key={self.admin_api_key}\n"
        )


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
