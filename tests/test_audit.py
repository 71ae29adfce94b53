import logging

from legalletter.audit.service import AuditLog
from legalletter.shared.db import KeyValueStore, MemoryBackend


class BrokenBackend(MemoryBackend):
    def set(self, key, value):
        raise OSError("quota exceeded")


def test_log_keeps_latest_entries_in_order(clock):
    log = AuditLog(KeyValueStore(MemoryBackend()), clock, limit=1000)
    for i in range(1050):
        log.record("PING", details={"n": i})
    entries = log.entries()
    assert log.count() == 1000
    assert entries[0].details == {"n": 50}
    assert entries[-1].details == {"n": 1049}

def test_filters(svc, customer, jane):
    assert [e.action for e in svc.audit.entries(user_id=customer.id)] == ["USER_SIGNUP"]
    assert svc.audit.entries(action="USER_SIGNUP")[0].user_id == customer.id
    assert svc.audit.entries(user_id=jane.id) == []

def test_record_never_raises(clock, caplog):
    log = AuditLog(KeyValueStore(BrokenBackend()), clock)
    with caplog.at_level(logging.ERROR, logger="legalletter.audit.service"):
        assert log.record("USER_SIGNUP", "u1") is None
    assert "USER_SIGNUP" in caplog.text
    assert log.count() == 0

def test_timestamps_follow_clock(svc, clock):
    svc.audit.record("FIRST")
    clock.advance(30)
    svc.audit.record("SECOND")
    first, second = svc.audit.entries()
    assert (second.timestamp - first.timestamp).total_seconds() == 30
