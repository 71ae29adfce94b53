import random
from dataclasses import dataclass
from typing import Optional

from legalletter.admin.service import MetricsReporter
from legalletter.audit.service import AuditLog
from legalletter.auth.service import IdentityStore
from legalletter.letters.service import LetterStore
from legalletter.shared.clock import Clock, SystemClock
from legalletter.shared.config import Settings, settings as default_settings
from legalletter.shared.db import Backend, KeyValueStore, MemoryBackend, SqlBackend
from legalletter.shared.scheduler import AsyncioScheduler, Scheduler
from legalletter.subscriptions.service import SubscriptionStore


@dataclass
class Services:
    settings: Settings
    kv: KeyValueStore
    clock: Clock
    scheduler: Scheduler
    audit: AuditLog
    identity: IdentityStore
    subscriptions: SubscriptionStore
    letters: LetterStore
    metrics: MetricsReporter


def make_backend(cfg: Settings) -> Backend:
    if cfg.STORAGE_BACKEND == "sql":
        return SqlBackend.from_url(cfg.DB_URL)
    return MemoryBackend()


def build_services(
    cfg: Optional[Settings] = None,
    backend: Optional[Backend] = None,
    clock: Optional[Clock] = None,
    scheduler: Optional[Scheduler] = None,
    rng: Optional[random.Random] = None,
) -> Services:
    """Wire every store once, sharing one key-value namespace."""
    cfg = cfg or default_settings
    clock = clock or SystemClock()
    scheduler = scheduler or AsyncioScheduler()
    kv = KeyValueStore(backend if backend is not None else make_backend(cfg), prefix=cfg.STORAGE_PREFIX)

    audit = AuditLog(kv, clock, limit=cfg.AUDIT_LOG_LIMIT)
    identity = IdentityStore(kv, audit, clock, cfg, rng=rng)
    subscriptions = SubscriptionStore(kv, identity, audit, clock, cfg)
    letters = LetterStore(kv, identity, subscriptions, audit, clock, scheduler, cfg, rng=rng)
    metrics = MetricsReporter(identity, letters, subscriptions, audit, clock)
    return Services(
        settings=cfg, kv=kv, clock=clock, scheduler=scheduler, audit=audit,
        identity=identity, subscriptions=subscriptions, letters=letters, metrics=metrics,
    )
