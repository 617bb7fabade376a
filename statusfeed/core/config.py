from shared.config import BaseServiceConfig


class Settings(BaseServiceConfig):
    # Staging cache
    staging_ttl_seconds: int = 172800  # 48h: one extra day for a late flush
    staging_merge_max_retries: int = 10  # WATCH conflicts before giving up

    # Flush coordinator
    flush_page_size: int = 50
    flush_user_interval_seconds: float = 0.5  # throttle between per-user drains
    flush_lock_grace_seconds: int = 3600  # lock outlives next midnight by 1h
    flush_day_offset: int = 1  # flush the previous calendar day

    # Flush triggers
    flush_scheduler_enabled: bool = True
    flush_interval_seconds: float = 300.0
    flush_on_ingest: bool = False  # legacy: also fire an attempt per ingest call

    # Durable sink
    sink_table: str = "user_operation_record"

    # HTTP
    http_host: str = "0.0.0.0"
    http_port: int = 8000

    service_name: str = "statusfeed"


settings = Settings()
