"""
Candidate dispatch: baseline once, then one probe job per candidate IP
"""

import ipaddress
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, List, Optional

from . import fetcher
from .assessment import Assessment, Reporter, assess, insufficient
from .config import ProbeConfig

logger = logging.getLogger(__name__)


def parse_candidates(lines: Iterable[str]) -> List[str]:
    """Keep the lines that are IPv4 or IPv6 addresses, in canonical form"""
    ips = []
    for line in lines:
        try:
            ips.append(str(ipaddress.ip_address(line.strip())))
        except ValueError:
            continue
    return ips


class OriginFinder:
    """Find which candidate IPs serve the same content as the target URL"""

    def __init__(self, config: ProbeConfig, reporter: Optional[Reporter] = None):
        self.config = config
        self.reporter = reporter or Reporter(config)

    def _worker_id(self) -> str:
        return threading.current_thread().name.rsplit('_', 1)[-1]

    def test_ip(self, ip: str, baseline: bytes) -> Assessment:
        """Probe one candidate, score it against `baseline` and report it"""
        logger.info("[*] [T@%s] Is %s hosted on %s?", self._worker_id(), self.config.url, ip)
        result = fetcher.probe(self.config, ip)
        assessment = assess(self.config, ip, baseline, result)
        self.reporter.report(assessment)
        return assessment

    def scan(self, lines: Iterable[str]) -> List[Assessment]:
        """
        Assess every valid candidate and return once all have been reported.

        The baseline is fetched before any job is submitted; a failed baseline
        leaves it empty, so every candidate then comes out as a miss.
        """
        ip_list = parse_candidates(lines)
        baseline = fetcher.fetch_baseline(self.config).body

        logger.info("[*] Testing %d IP(s) with %d worker(s)", len(ip_list), self.config.workers)

        results = []
        with ThreadPoolExecutor(max_workers=self.config.workers,
                                thread_name_prefix='probe') as executor:
            future_to_ip = {executor.submit(self.test_ip, ip, baseline): ip for ip in ip_list}

            for future in as_completed(future_to_ip):
                ip = future_to_ip[future]
                try:
                    results.append(future.result())
                except Exception:
                    logger.exception("[-] Assessment of %s failed", ip)
                    assessment = insufficient(ip)
                    self.reporter.report(assessment)
                    results.append(assessment)

        matches = sum(1 for r in results if r.is_match)
        logger.info("[*] Assessed %d IP(s), %d match(es)", len(results), matches)
        return results
