"""
Agent runner — discovery → features → score → attest, once per identity per pass.

run_once() performs one pass: identities are processed concurrently and the
pass returns only after every submitted identity has finished. A failure in
one identity is logged and counted; it never cancels its siblings. Nothing is
carried between passes except what the store persists.

run_forever() repeats passes on a fixed interval until the stop event is set.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from backend_veritas.analysis_engine.features import FeatureExtractor
from backend_veritas.analysis_engine.scorer import Scorer, flag_names
from backend_veritas.core.exceptions import VeritasError
from backend_veritas.logging import bind_identity, get_logger
from backend_veritas.oracle.attester import Attester
from backend_veritas.solana_listener.observer import IdentitySource

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 300.0
DEFAULT_MAX_IDENTITIES_PER_PASS = 50
DEFAULT_CONCURRENCY = 4
DEFAULT_SUSPICIOUS_SCORE_BELOW = 50
MIN_INTERVAL_SEC = 0.01

STATUS_ATTESTED = "attested"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class AgentConfig:
    """
    interval_sec: time between pass starts in run_forever.
    attest_suspicious_only: only write records for identities with flags set or
        score below suspicious_score_below (clean identities are logged only).
    """

    interval_sec: float = DEFAULT_INTERVAL_SEC
    max_identities_per_pass: int = DEFAULT_MAX_IDENTITIES_PER_PASS
    concurrency: int = DEFAULT_CONCURRENCY
    attest_suspicious_only: bool = False
    suspicious_score_below: int = DEFAULT_SUSPICIOUS_SCORE_BELOW

    def __post_init__(self) -> None:
        self.interval_sec = max(MIN_INTERVAL_SEC, float(self.interval_sec))
        self.max_identities_per_pass = max(1, int(self.max_identities_per_pass))
        self.concurrency = max(1, int(self.concurrency))


@dataclass
class IdentityOutcome:
    identity: str
    status: str
    score: int | None = None
    flags: int | None = None
    error: str | None = None
    retryable: bool = False


@dataclass
class PassSummary:
    pass_number: int
    candidates: int = 0
    outcomes: list[IdentityOutcome] = field(default_factory=list)
    duration_sec: float = 0.0

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def attested(self) -> int:
        return self._count(STATUS_ATTESTED)

    @property
    def skipped(self) -> int:
        return self._count(STATUS_SKIPPED)

    @property
    def failed(self) -> dict[str, str]:
        return {o.identity: o.error or "" for o in self.outcomes if o.status == STATUS_FAILED}

    def outcome_for(self, identity: str) -> IdentityOutcome | None:
        return next((o for o in self.outcomes if o.identity == identity), None)


class TrustAgent:
    """Periodic scoring driver; owns no state beyond its collaborators."""

    def __init__(
        self,
        source: IdentitySource,
        extractor: FeatureExtractor,
        scorer: Scorer,
        attester: Attester,
        config: AgentConfig | None = None,
    ) -> None:
        self._source = source
        self._extractor = extractor
        self._scorer = scorer
        self._attester = attester
        self._config = config or AgentConfig()
        self._pass_count = 0
        self._pass_lock = threading.Lock()

    @property
    def config(self) -> AgentConfig:
        return self._config

    def _is_suspicious(self, score: int, flags: int) -> bool:
        return flags != 0 or score < self._config.suspicious_score_below

    def process_identity(self, identity: str) -> IdentityOutcome:
        """Extract, score, attest one identity. Errors propagate to the caller."""
        log = bind_identity(identity, logger)
        features = self._extractor.extract(identity)
        result = self._scorer.compute(features)
        if self._config.attest_suspicious_only and not self._is_suspicious(result.score, result.flags):
            log.info("agent_identity_clean", score=result.score)
            return IdentityOutcome(identity, STATUS_SKIPPED, score=result.score, flags=result.flags)
        if result.flags:
            log.info(
                "agent_identity_flagged",
                score=result.score,
                flag_names=flag_names(result.flags),
            )
        self._attester.attest(identity, result)
        return IdentityOutcome(identity, STATUS_ATTESTED, score=result.score, flags=result.flags)

    def _process_identity_safe(self, identity: str) -> IdentityOutcome:
        log = bind_identity(identity, logger)
        try:
            return self.process_identity(identity)
        except VeritasError as e:
            log.warning(
                "agent_identity_failed",
                error_code=e.code,
                retryable=e.retryable,
                error=str(e),
            )
            return IdentityOutcome(identity, STATUS_FAILED, error=str(e), retryable=e.retryable)
        except Exception as e:
            log.exception("agent_identity_error", error=str(e))
            return IdentityOutcome(identity, STATUS_FAILED, error=str(e), retryable=True)

    def run_once(self) -> PassSummary:
        """One full pass. Passes never overlap: a second caller waits for the first to finish."""
        with self._pass_lock:
            self._pass_count += 1
            summary = PassSummary(pass_number=self._pass_count)
            start = time.monotonic()
            logger.info("agent_pass_started", pass_number=summary.pass_number)

            identities = list(dict.fromkeys(
                self._source.get_recent_identities(self._config.max_identities_per_pass)
            ))[: self._config.max_identities_per_pass]
            summary.candidates = len(identities)
            logger.info("agent_identities_found", pass_number=summary.pass_number, count=len(identities))

            if identities:
                workers = min(self._config.concurrency, len(identities))
                with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="veritas-agent") as executor:
                    futures = {executor.submit(self._process_identity_safe, i): i for i in identities}
                    for fut in as_completed(futures):
                        summary.outcomes.append(fut.result())

            summary.duration_sec = round(time.monotonic() - start, 3)
            logger.info(
                "agent_pass_done",
                pass_number=summary.pass_number,
                candidates=summary.candidates,
                attested=summary.attested,
                skipped=summary.skipped,
                failed=len(summary.failed),
                duration_sec=summary.duration_sec,
            )
            return summary

    def run_forever(self, stop_event: threading.Event) -> None:
        """Run passes every interval_sec until stop_event is set. A failed pass is logged; the loop continues."""
        interval = self._config.interval_sec
        logger.info("agent_loop_started", interval_sec=interval)
        while not stop_event.is_set():
            pass_start = time.monotonic()
            try:
                self.run_once()
            except Exception as e:
                logger.exception("agent_pass_failed", error=str(e))
            deadline = pass_start + interval
            while not stop_event.is_set() and time.monotonic() < deadline:
                stop_event.wait(timeout=min(1.0, max(0.0, deadline - time.monotonic())))
        logger.info("agent_loop_stopped", passes=self._pass_count)


def build_trust_agent(
    settings: Any,
    db: Any,
    authority: Any,
    *,
    source: IdentitySource | None = None,
    http_client: Any = None,
) -> TrustAgent:
    """Wire RPC provider, observer (unless source given), cluster check, scorer and attester from Settings."""
    from backend_veritas.analysis_engine.funding import load_known_clusters
    from backend_veritas.solana_listener.activity import RpcActivityProvider
    from backend_veritas.solana_listener.observer import Observer
    from backend_veritas.solana_listener.rpc import SolanaRpcClient

    rpc = SolanaRpcClient(settings.rpc_url, client=http_client)
    extractor = FeatureExtractor(
        RpcActivityProvider(rpc),
        load_known_clusters(settings.clusters_path),
        limit=settings.activity_limit,
    )
    config = AgentConfig(
        interval_sec=settings.interval_sec,
        max_identities_per_pass=settings.max_identities_per_pass,
        concurrency=settings.concurrency,
        attest_suspicious_only=settings.attest_suspicious_only,
        suspicious_score_below=settings.suspicious_score_below,
    )
    return TrustAgent(
        source or Observer(rpc),
        extractor,
        Scorer(),
        Attester(db, authority),
        config,
    )
