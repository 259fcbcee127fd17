"""
Configuration management for the FastAPI backend
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    """Application settings"""

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # Application
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # Supabase (backend-as-a-service)
    # SUPABASE_URL doubles as the endpoint prefix used to recognise storage links
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").rstrip("/")
    SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
    # Optional: when set, storage calls use it instead of the caller's token
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Signed URL refresh
    SIGNED_URL_EXPIRY: int = int(os.getenv("SIGNED_URL_EXPIRY", str(7 * 24 * 60 * 60)))  # 7 days in seconds
    SIGNED_URL_MAX_CONCURRENCY: int = int(os.getenv("SIGNED_URL_MAX_CONCURRENCY", "0"))  # 0 = unbounded

    # Storage HTTP client
    STORAGE_REQUEST_TIMEOUT: float = float(os.getenv("STORAGE_REQUEST_TIMEOUT", "30"))
    STORAGE_MAX_RETRIES: int = int(os.getenv("STORAGE_MAX_RETRIES", "3"))

    def validate_storage_config(self) -> None:
        """
        Validate storage configuration at startup.
        Raises ValueError if the Supabase endpoint is missing or malformed.
        """
        if not self.SUPABASE_URL:
            raise ValueError("SUPABASE_URL is required for signed URL refresh")
        if not self.SUPABASE_URL.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must be an http(s) URL")
        if self.SIGNED_URL_EXPIRY <= 0:
            raise ValueError("SIGNED_URL_EXPIRY must be a positive number of seconds")

    @property
    def cors_origins_list(self) -> list:
        """Parse CORS origins into a list"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]


# Global settings instance
settings = Settings()
