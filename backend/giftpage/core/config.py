import json
import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Digital Gifts API"
    environment: str = "local"
    api_prefix: str = ""
    backend_cors_origins_raw: str = ""  # Comma-separated or JSON array

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "allow",
    }

    @property
    def backend_cors_origins(self) -> list[str]:
        """Parse CORS origins from raw string. Empty means every origin."""
        raw = os.getenv("BACKEND_CORS_ORIGINS", self.backend_cors_origins_raw).strip()
        if not raw:
            return ["*"]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except ValueError:
                pass
        return [item.strip() for item in raw.split(",") if item.strip()]

    # Record store: redis (default) | sql | memory
    gift_store_backend: str = "redis"
    redis_dsn: str = "redis://localhost:6379/0"
    gift_key_prefix: str = "gift:"
    # sqlite+aiosqlite:///./gifts.db (dev) | postgresql+asyncpg://... (prod)
    database_dsn: str = "sqlite+aiosqlite:///./gifts.db"

    # Blob store: any S3-compatible endpoint (Cloudflare R2 by default)
    s3_endpoint_url: str = ""
    s3_account_id: str = ""
    s3_region: str = "auto"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_bucket_name: str = ""
    s3_public_url: str = ""
    s3_presign_expires_seconds: int = 360

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    slug_max_length: int = 120

    log_level: str = "INFO"
    log_file: str = ""

    @property
    def s3_endpoint(self) -> str | None:
        """Explicit endpoint wins; otherwise derive the R2 endpoint from the account id."""
        if self.s3_endpoint_url:
            return self.s3_endpoint_url
        if self.s3_account_id:
            return f"https://{self.s3_account_id}.r2.cloudflarestorage.com"
        return None

    def missing_storage_settings(self) -> list[str]:
        """Names of settings required by the gift service that are not set."""
        missing: list[str] = []
        backend = (self.gift_store_backend or "").strip().lower()
        if backend == "redis" and not self.redis_dsn.strip():
            missing.append("REDIS_DSN")
        elif backend == "sql" and not self.database_dsn.strip():
            missing.append("DATABASE_DSN")
        elif backend not in {"redis", "sql", "memory"}:
            missing.append("GIFT_STORE_BACKEND")
        required = {
            "S3_BUCKET_NAME": self.s3_bucket_name,
            "S3_PUBLIC_URL": self.s3_public_url,
            "S3_ACCESS_KEY_ID": self.s3_access_key_id,
            "S3_SECRET_ACCESS_KEY": self.s3_secret_access_key,
        }
        missing.extend(name for name, value in required.items() if not value.strip())
        if self.s3_endpoint is None:
            missing.append("S3_ENDPOINT_URL or S3_ACCOUNT_ID")
        return missing


settings = Settings()
