"""Configuration management using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Object store (MinIO / S3) settings
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    # HTTP timeouts and retries for object reads; keep the worst case below
    # arq_job_timeout so a slow read fails the job instead of timing it out
    minio_connect_timeout: float = 5.0
    minio_read_timeout: float = 15.0
    minio_max_retries: int = 1

    # Current search cluster (version-gated writes)
    current_index_url: str = "http://localhost:9200"
    current_index_name: str = "items"
    current_index_doc_type: str = "_doc"
    current_index_username: str = ""
    current_index_password: str = ""

    # Legacy search cluster (last write wins)
    legacy_index_url: str = "http://localhost:9201"
    legacy_index_name: str = "items"
    legacy_index_doc_type: str = "item"
    legacy_index_username: str = ""
    legacy_index_password: str = ""

    search_timeout: float = 10.0
    search_verify_certs: bool = True

    # Treat a not-found on delete as success (replayed removals)
    delete_ignore_missing: bool = True

    # Redis settings (retry queue and arq job queue)
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 5.0

    # Retry queue (dead-lettered object events)
    retry_queue_name: str = "index-sync:retry"
    retry_visibility_hold_seconds: int = 10

    # Trigger job retries before an event is dead-lettered
    trigger_max_tries: int = 3
    trigger_retry_delay_seconds: int = 30

    # ARQ worker settings
    arq_queue_name: str = "arq:index-sync"
    arq_job_timeout: int = 60

    # Drain re-trigger: runs at these minutes (comma-separated, 0-59)
    # Set to empty string "" to disable the cron and rely on POST /api/drain
    drain_cron_minutes: str = "0,15,30,45"

    # Bounded local drain loop (scripts/drain_retry_queue.py)
    drain_max_hops: int = 1000
    drain_max_seconds: float = 240.0

    # Shared secret sent by the bucket notification webhook target
    webhook_auth_token: str = ""

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def minio_worst_case_seconds(self) -> float:
        """Longest a single object read can take, counting retries."""
        attempts = self.minio_max_retries + 1
        return attempts * (self.minio_connect_timeout + self.minio_read_timeout)


# Global settings instance
settings = Settings()
