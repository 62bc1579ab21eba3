"""
Origin Finder - Discovers which candidate IPs serve a URL behind a CDN/proxy
"""

from .assessment import Assessment, Reporter, assess, classify
from .config import ProbeConfig
from .finder import OriginFinder, parse_candidates
from .fetcher import FetchResult, fetch_baseline, probe
from .transport import FixedRoute, SystemRoute

__version__ = "0.1.0"

__all__ = [
    "Assessment",
    "FetchResult",
    "FixedRoute",
    "OriginFinder",
    "ProbeConfig",
    "Reporter",
    "SystemRoute",
    "assess",
    "classify",
    "fetch_baseline",
    "parse_candidates",
    "probe",
]
