"""
Tests for the agent runner: per-identity isolation, suspicious-only mode, the periodic loop.
"""

from __future__ import annotations

import threading

import pytest

from backend_veritas.agent_worker.runner import (
    STATUS_ATTESTED,
    STATUS_FAILED,
    STATUS_SKIPPED,
    AgentConfig,
    TrustAgent,
    build_trust_agent,
)
from backend_veritas.analysis_engine.features import FeatureExtractor
from backend_veritas.analysis_engine.funding import KnownClusterCheck
from backend_veritas.analysis_engine.scorer import Scorer, TrustFlag
from backend_veritas.config.settings import Settings
from backend_veritas.oracle.attester import Attester
from backend_veritas.solana_listener.models import ActivityRecord
from backend_veritas.solana_listener.observer import StaticIdentitySource


class ScriptedProvider:
    """Per-identity activity; identities in `failing` raise."""

    def __init__(self, now: float, failing=()) -> None:
        self._now = int(now)
        self._failing = set(failing)
        self.history: dict[str, list[ActivityRecord]] = {}

    def set_mature(self, identity: str, count: int = 50, failed: int = 0) -> None:
        """count records, one per hour, the first `failed` failed."""
        self.history[identity] = [
            ActivityRecord(f"{identity[:6]}-{i}", 10_000 - i, self._now - 3600 * (i + 1), i < failed)
            for i in range(count)
        ]

    def fetch_recent_activity(self, identity: str, limit: int):
        if identity in self._failing:
            raise ConnectionError("rate limited")
        return self.history.get(identity, [])[:limit]


class CountingSource:
    def __init__(self, identities) -> None:
        self._identities = list(identities)
        self.calls = 0
        self.called = threading.Event()

    def get_recent_identities(self, limit: int):
        self.calls += 1
        self.called.set()
        return self._identities[:limit]


def _agent(db, authority, source, provider, clock, **config) -> TrustAgent:
    extractor = FeatureExtractor(provider, KnownClusterCheck(), clock=clock)
    return TrustAgent(source, extractor, Scorer(), Attester(db, authority), AgentConfig(**config))


def test_pass_isolates_failures(db, authority, clock, new_identity):
    """One identity's provider failure does not stop the others."""
    good, flaky, noisy = new_identity(), new_identity(), new_identity()
    provider = ScriptedProvider(clock.now, failing={flaky})
    provider.set_mature(good)
    provider.set_mature(noisy, failed=20)
    agent = _agent(db, authority, StaticIdentitySource([good, flaky, noisy]), provider, clock)

    summary = agent.run_once()

    assert summary.candidates == 3
    assert summary.attested == 2
    assert list(summary.failed) == [flaky]
    assert summary.outcome_for(flaky).retryable is True
    assert db.read_trust_record(good).score == 100
    noisy_record = db.read_trust_record(noisy)
    assert noisy_record.score == 80
    assert noisy_record.flags == TrustFlag.HIGH_FAILURE_RATE


def test_failed_identity_has_no_record(db, authority, clock, new_identity):
    from backend_veritas.core.exceptions import NotFound

    flaky = new_identity()
    agent = _agent(db, authority, StaticIdentitySource([flaky]), ScriptedProvider(clock.now, failing={flaky}), clock)
    summary = agent.run_once()
    assert summary.outcome_for(flaky).status == STATUS_FAILED
    with pytest.raises(NotFound):
        db.read_trust_record(flaky)


def test_failure_on_one_pass_recovers_on_next(db, authority, clock, new_identity):
    identity = new_identity()
    provider = ScriptedProvider(clock.now, failing={identity})
    provider.set_mature(identity)
    agent = _agent(db, authority, StaticIdentitySource([identity]), provider, clock)
    assert agent.run_once().failed
    provider._failing.clear()
    summary = agent.run_once()
    assert summary.pass_number == 2
    assert summary.outcome_for(identity).status == STATUS_ATTESTED


def test_suspicious_only_skips_clean_identities(db, authority, clock, new_identity):
    clean, noisy = new_identity(), new_identity()
    provider = ScriptedProvider(clock.now)
    provider.set_mature(clean)
    provider.set_mature(noisy, failed=25)
    agent = _agent(
        db, authority, StaticIdentitySource([clean, noisy]), provider, clock, attest_suspicious_only=True
    )
    summary = agent.run_once()
    assert summary.outcome_for(clean).status == STATUS_SKIPPED
    assert summary.outcome_for(noisy).status == STATUS_ATTESTED
    assert db.read_trust_record(noisy).flags == TrustFlag.HIGH_FAILURE_RATE


def test_candidates_deduplicated_and_limited(db, authority, clock, new_identity):
    ids = [new_identity() for _ in range(5)]
    provider = ScriptedProvider(clock.now)
    for i in ids:
        provider.set_mature(i)
    class UnboundedSource:
        def get_recent_identities(self, limit):
            return [ids[0], ids[0], *ids]

    agent = _agent(db, authority, UnboundedSource(), provider, clock, max_identities_per_pass=3)
    summary = agent.run_once()
    assert summary.candidates == 3
    assert {o.identity for o in summary.outcomes} == set(ids[:3])


def test_empty_discovery_is_a_quiet_pass(db, authority, clock):
    agent = _agent(db, authority, CountingSource([]), ScriptedProvider(clock.now), clock)
    summary = agent.run_once()
    assert summary.candidates == 0
    assert summary.outcomes == []


def test_repeated_passes_are_idempotent(db, authority, clock, new_identity):
    identity = new_identity()
    provider = ScriptedProvider(clock.now)
    provider.set_mature(identity, failed=15)
    agent = _agent(db, authority, StaticIdentitySource([identity]), provider, clock)
    agent.run_once()
    first = db.read_trust_record(identity)
    agent.run_once()
    second = db.read_trust_record(identity)
    assert (first.score, first.flags) == (second.score, second.flags)


def test_run_forever_stops_on_event(db, authority, clock, new_identity):
    source = CountingSource([new_identity()])
    agent = _agent(db, authority, source, ScriptedProvider(clock.now), clock, interval_sec=0.05)
    stop = threading.Event()
    worker = threading.Thread(target=agent.run_forever, args=(stop,), daemon=True)
    worker.start()
    assert source.called.wait(timeout=5)
    stop.set()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert source.calls >= 1


def test_run_forever_survives_source_crash(db, authority, clock):
    class CrashingSource:
        def __init__(self) -> None:
            self.calls = 0
            self.second_call = threading.Event()

        def get_recent_identities(self, limit):
            self.calls += 1
            if self.calls >= 2:
                self.second_call.set()
            raise RuntimeError("boom")

    source = CrashingSource()
    agent = _agent(db, authority, source, ScriptedProvider(clock.now), clock, interval_sec=0.01)
    stop = threading.Event()
    worker = threading.Thread(target=agent.run_forever, args=(stop,), daemon=True)
    worker.start()
    assert source.second_call.wait(timeout=5)
    stop.set()
    worker.join(timeout=5)
    assert not worker.is_alive()


def test_agent_config_clamps():
    cfg = AgentConfig(interval_sec=0, max_identities_per_pass=0, concurrency=-2)
    assert cfg.interval_sec > 0
    assert cfg.max_identities_per_pass == 1
    assert cfg.concurrency == 1


def test_build_trust_agent_from_settings(db, authority, tmp_path):
    settings = Settings(rpc_url="http://localhost:8899", db_path=tmp_path / "x.db", interval_sec=60, concurrency=2)
    agent = build_trust_agent(settings, db, authority, source=StaticIdentitySource([]))
    assert agent.config.interval_sec == 60
    assert agent.config.concurrency == 2
    assert agent.run_once().candidates == 0


def test_per_identity_logs_carry_bound_identity(db, authority, clock, new_identity, monkeypatch):
    """Every processed identity, including failures, logs through an identity-bound logger."""
    from backend_veritas.agent_worker import runner
    from backend_veritas.logging import bind_identity

    bound: list[str] = []

    def recording_bind(identity, logger=None):
        bound.append(identity)
        return bind_identity(identity, logger)

    monkeypatch.setattr(runner, "bind_identity", recording_bind)
    good, flaky = new_identity(), new_identity()
    provider = ScriptedProvider(clock.now, failing={flaky})
    provider.set_mature(good, failed=20)
    agent = _agent(db, authority, StaticIdentitySource([good, flaky]), provider, clock, concurrency=1)

    summary = agent.run_once()

    assert summary.outcome_for(good).status == STATUS_ATTESTED
    assert summary.outcome_for(flaky).status == STATUS_FAILED
    assert set(bound) == {good, flaky}
