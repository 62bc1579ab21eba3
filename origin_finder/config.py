"""
Run configuration shared by the fetchers, the finder and the reporter
"""

from dataclasses import dataclass

DEFAULT_URL = "https://example.org"
DEFAULT_LIMIT = 500
DEFAULT_THRESHOLD = 50
DEFAULT_WORKERS = 200
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ProbeConfig:
    """Immutable settings for one run against one target URL"""
    url: str
    user_agent: str
    timeout: float = DEFAULT_TIMEOUT
    limit: int = DEFAULT_LIMIT
    threshold: int = DEFAULT_THRESHOLD
    workers: int = DEFAULT_WORKERS
    show_samples: bool = False

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError(f"limit must be at least 1 byte, got {self.limit}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
