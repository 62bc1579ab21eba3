"""
Scoring, classification and reporting of a single candidate
"""

import logging
import sys
import threading
from dataclasses import dataclass
from typing import TextIO

from . import similarity
from .config import ProbeConfig
from .fetcher import FetchResult

logger = logging.getLogger(__name__)

MATCH = "match"
MISS = "miss"


@dataclass(frozen=True)
class Assessment:
    """Outcome of comparing one candidate against the baseline"""
    candidate: str
    comparable_length: int
    distance: int
    percentage: int
    outcome: str
    skipped: bool = False
    baseline_sample: bytes = b""
    probe_sample: bytes = b""

    @property
    def is_match(self) -> bool:
        return self.outcome == MATCH


def classify(percentage: int, threshold: int) -> str:
    """Strictly above the threshold is a match, equal is a miss"""
    return MATCH if percentage > threshold else MISS


def insufficient(candidate: str) -> Assessment:
    return Assessment(candidate=candidate, comparable_length=0, distance=0,
                      percentage=0, outcome=MISS, skipped=True)


def assess(config: ProbeConfig, candidate: str, baseline: bytes,
           result: FetchResult) -> Assessment:
    """Score a probe result against the baseline and classify it"""
    body = result.body if result.success else b""
    length = similarity.comparable_length(config.limit, baseline, body)

    if length < similarity.MIN_COMPARABLE_LENGTH:
        logger.warning("[!] %s==%s Not enough bytes to be meaningful. "
                       "len(baseline): %d len(probe): %d",
                       candidate, config.url, len(baseline), len(body))
        return insufficient(candidate)

    scored = similarity.score(baseline, body, length)
    logger.info("[*] %s==%s Similarity in first %d bytes computed as: %d%% @ distance: %d",
                candidate, config.url, length, scored.percentage, scored.distance)

    return Assessment(
        candidate=candidate,
        comparable_length=length,
        distance=scored.distance,
        percentage=scored.percentage,
        outcome=classify(scored.percentage, config.threshold),
        baseline_sample=baseline[:length],
        probe_sample=body[:length],
    )


class Reporter:
    """Write one result line per candidate, safe to call from worker threads"""

    def __init__(self, config: ProbeConfig, stream: TextIO = None):
        self.config = config
        self.stream = stream
        self._lock = threading.Lock()

    def format(self, assessment: Assessment) -> str:
        return (f"{assessment.outcome} {assessment.candidate} {self.config.url} "
                f"{assessment.percentage} percent in {assessment.comparable_length} bytes")

    def report(self, assessment: Assessment):
        line = self.format(assessment)
        with self._lock:
            # Asked for explicitly, so still shown under --quiet
            if self.config.show_samples and not assessment.skipped:
                logger.warning("[D] Original Sample:\n%s",
                               assessment.baseline_sample.decode('utf-8', errors='replace'))
                logger.warning("[D] Measurement Sample:\n%s",
                               assessment.probe_sample.decode('utf-8', errors='replace'))
            print(line, file=self.stream or sys.stdout, flush=True)
