"""
Core settings and environment variables for SevaSetu.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "SevaSetu"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Storage backends: "memory" (default) or "firestore" / "firebase"
    STORE_BACKEND: str = "memory"
    EVIDENCE_BACKEND: str = "memory"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # Service area (Jaipur municipal box)
    SERVICE_AREA_MIN_LAT: float = 26.8
    SERVICE_AREA_MAX_LAT: float = 27.0
    SERVICE_AREA_MIN_LNG: float = 75.7
    SERVICE_AREA_MAX_LNG: float = 75.9

    # Lifecycle
    SLA_HOURS: int = 48
    GEOFENCE_TOLERANCE_METERS: float = 20.0

    # Verification engine
    VERIFICATION_CONCURRENCY: int = 1  # In-flight slots
    VERIFICATION_QUEUE_CAPACITY: int = 100
    VERIFICATION_STAGE_BUDGET_SECONDS: float = 2.0
    VERIFICATION_TOTAL_BUDGET_SECONDS: float = 8.0
    VERIFICATION_STAGE_DELAY_SECONDS: float = 0.8  # Simulated analysis time per stage
    VERIFICATION_SUCCESS_BIAS: float = 0.9  # Probability that visual change is detected
    VERIFICATION_APPROVED_SCORE_MIN: int = 85
    VERIFICATION_APPROVED_SCORE_MAX: int = 98
    VERIFICATION_FLAGGED_SCORE: int = 45
    VERIFICATION_AUTOSTART: bool = True  # Start worker threads on app startup

    # Demo data
    SEED_DEMO_DATA: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origin_list(self) -> list:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
