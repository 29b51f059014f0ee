from dataclasses import dataclass

DEFAULT_LOG_FILE = "stress-test.log"
DEFAULT_LOG_LEVEL = "info"


@dataclass(frozen=True)
class Config:
    api_key: str
    api_secret: str
    api_host: str
    default_image_id: str = ""
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str = DEFAULT_LOG_FILE
    timeout_seconds: int = 30
    poll_interval_seconds: float = 10.0
    ready_timeout_seconds: float = 600.0
    stuck_requested_seconds: float = 180.0
    stuck_cooldown_seconds: float = 300.0
    stuck_retries: int = 1
    destroy_attempts: int = 3
    status_tick_seconds: float = 1.0
    cpu_command: str = "dd if=/dev/zero of=/dev/null bs=1M count=1000"
    network_command: str = (
        "wget -O /dev/null "
        "https://releases.ubuntu.com/22.04/ubuntu-22.04.3-live-server-amd64.iso"
    )


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
