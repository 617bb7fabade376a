USER_OPERATION_RECORD_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    user_id String,
    source Int32,
    video_id String,
    show_count UInt64,
    tap_count UInt64,
    watch_count UInt64,
    is_complete_show UInt8,
    video_wait_time UInt64,
    send_whatsapp_count UInt64,
    share_count UInt64,
    download_count UInt64,
    return_count UInt64,
    data_time Date,
    create_time DateTime
) ENGINE = MergeTree()
PARTITION BY toYYYYMM(data_time)
ORDER BY (data_time, user_id)
"""


def all_ddls(table: str) -> list[str]:
    return [USER_OPERATION_RECORD_DDL.format(table=table)]
