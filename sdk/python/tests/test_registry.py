import threading

import pytest

from certreg import (
    CertificateCreated,
    CertificateNotFound,
    CertificateRegistry,
    CertificateStatus,
    CertificateValidationError,
    CredentialRegistry,
    DuplicateCertificate,
    InvalidIdentity,
    derive_identity,
    identity_hex,
)

from conftest import NOW

ISSUE = 1704412800  # 2024-01-05


def john(expiration_date):
    return ("John", "Doe", "Example Corp", ISSUE, expiration_date)


def test_create_verify_suspend(registry):
    identity = registry.create(*john(NOW + 3600))

    assert identity == derive_identity(*john(NOW + 3600))
    assert registry.verify(identity) is True

    registry.suspend(identity)
    assert registry.verify(identity) is False


def test_create_returns_record_in_active_state(registry):
    identity = registry.create(*john(NOW + 3600))
    record = registry.get_record(identity)

    assert record.status is CertificateStatus.ACTIVE
    assert record.fields.organization_name == "Example Corp"
    assert record.created_at == NOW
    assert identity in registry
    assert len(registry) == 1


def test_duplicate_create_is_rejected(registry):
    registry.create(*john(NOW + 3600))
    with pytest.raises(DuplicateCertificate) as exc:
        registry.create(*john(NOW + 3600))
    assert exc.value.identity == derive_identity(*john(NOW + 3600))
    assert len(registry) == 1


def test_duplicate_does_not_revive_suspended(registry):
    identity = registry.create(*john(NOW + 3600))
    registry.suspend(identity)
    with pytest.raises(DuplicateCertificate):
        registry.create(*john(NOW + 3600))
    assert registry.verify(identity) is False


def test_overwrite_policy_replaces_record(clock):
    registry = CertificateRegistry(clock=clock, on_duplicate="overwrite")
    identity = registry.create(*john(NOW + 3600))

    clock.now = NOW + 5
    effects = []
    assert registry.create(*john(NOW + 3600), effects=effects) == identity
    assert registry.get_record(identity).created_at == NOW + 5
    assert len(effects) == 1
    assert registry.verify(identity) is True


def test_overwrite_policy_keeps_suspension(clock):
    registry = CertificateRegistry(clock=clock, on_duplicate="overwrite")
    storage = CredentialRegistry(registry)
    identity = registry.create(*john(NOW + 3600))
    storage.suspend_by_credentials(*john(NOW + 3600))

    assert registry.create(*john(NOW + 3600)) == identity
    assert registry.get_record(identity).status is CertificateStatus.SUSPENDED
    assert registry.verify(identity) is False
    assert storage.verify_by_credentials(*john(NOW + 3600)) is False

    reduced = derive_identity("Jane", "Roe", "Org", 1, NOW + 50)
    registry.register_certificate(reduced, NOW + 50)
    registry.suspend(reduced)
    registry.register_certificate(reduced, NOW + 9000)
    assert registry.verify(reduced) is False


def test_unknown_duplicate_policy():
    with pytest.raises(ValueError):
        CertificateRegistry(on_duplicate="ignore")


def test_create_rejects_malformed_before_insert(registry):
    with pytest.raises(CertificateValidationError):
        registry.create("", "Doe", "Org", ISSUE, NOW + 10)
    with pytest.raises(CertificateValidationError):
        registry.create("John", "Doe", "Org", -5, NOW + 10)
    assert len(registry) == 0


def test_create_respects_max_field_length(clock):
    registry = CertificateRegistry(clock=clock, max_field_length=4)
    with pytest.raises(CertificateValidationError):
        registry.create("Johnny", "Doe", "Org", ISSUE, NOW + 10)


def test_unknown_identity(registry):
    missing = derive_identity("Nobody", "Here", "None", 1, 2)

    assert registry.verify(missing) is False
    with pytest.raises(CertificateNotFound):
        registry.suspend(missing)
    with pytest.raises(CertificateNotFound):
        registry.get_record(missing)
    assert registry.status_of(missing) == "unknown"


def test_verify_never_raises_on_garbage(registry):
    assert registry.verify("not-hex") is False
    assert registry.verify(b"short") is False
    assert registry.verify(None) is False
    assert "not-hex" not in registry


def test_suspend_rejects_malformed_identity(registry):
    with pytest.raises(InvalidIdentity):
        registry.suspend("0x1234")


def test_expiration_boundary(registry):
    t = NOW + 100
    identity = registry.create(*john(t))

    assert registry.verify(identity, now=t - 1) is True
    assert registry.verify(identity, now=t) is False
    assert registry.verify(identity, now=t + 1) is False


def test_expiration_follows_clock(registry, clock):
    identity = registry.create(*john(NOW + 60))
    assert registry.verify(identity) is True
    assert registry.status_of(identity) == "valid"

    clock.now = NOW + 60
    assert registry.verify(identity) is False
    assert registry.status_of(identity) == "expired"


def test_suspension_is_idempotent_and_terminal(registry, clock):
    identity = registry.create(*john(NOW + 3600))

    registry.suspend(identity)
    registry.suspend(identity)

    assert registry.get_record(identity).status is CertificateStatus.SUSPENDED
    assert registry.status_of(identity) == "suspended"
    for now in (NOW - 1000, NOW, NOW + 10):
        assert registry.verify(identity, now=now) is False


def test_hex_addressing_matches_bytes(registry):
    identity = registry.create(*john(NOW + 3600))
    rendered = identity_hex(identity)

    assert registry.verify(rendered) is True
    registry.suspend(rendered)
    assert registry.verify(identity) is False


def test_get_record_returns_snapshot(registry):
    identity = registry.create(*john(NOW + 3600))
    snapshot = registry.get_record(identity)
    snapshot.status = CertificateStatus.SUSPENDED

    assert registry.verify(identity) is True


def test_effects_receive_creation_event(registry):
    effects = []
    identity = registry.create(*john(NOW + 3600), effects=effects)

    assert len(effects) == 1
    event = effects[0]
    assert isinstance(event, CertificateCreated)
    assert event.identity == identity
    assert event.created_at == NOW
    assert event.to_dict() == {
        "type": "certificate.created",
        "identity": identity_hex(identity),
        "first_name": "John",
        "last_name": "Doe",
        "organization_name": "Example Corp",
        "issue_date": ISSUE,
        "expiration_date": NOW + 3600,
        "created_at": NOW,
    }


def test_rejected_create_emits_nothing(registry):
    registry.create(*john(NOW + 3600))
    effects = []
    seen = []
    registry.subscribe(seen.append)
    with pytest.raises(DuplicateCertificate):
        registry.create(*john(NOW + 3600), effects=effects)
    assert effects == []
    assert seen == []


def test_listeners_notified_and_isolated(registry):
    seen = []

    def broken(event):
        raise RuntimeError("indexer down")

    registry.subscribe(broken)
    registry.subscribe(seen.append)
    identity = registry.create(*john(NOW + 3600))

    assert [e.identity for e in seen] == [identity]
    assert registry.verify(identity) is True

    registry.unsubscribe(seen.append)
    registry.create("Jane", "Doe", "Example Corp", ISSUE, NOW + 3600)
    assert len(seen) == 1


def test_reduced_shape_registration(registry):
    identity = derive_identity("John", "Doe", "Example Corp", ISSUE, NOW + 3600)
    effects = []

    assert registry.register_certificate(identity, NOW + 3600, effects=effects) == identity
    assert registry.verify_certificate(identity) is True
    assert registry.get_record(identity).fields is None
    assert effects[0].to_dict()["identity"] == identity_hex(identity)
    assert "first_name" not in effects[0].to_dict()

    registry.suspend_certificate(identity)
    assert registry.verify_certificate(identity) is False

    with pytest.raises(DuplicateCertificate):
        registry.register_certificate(identity_hex(identity), NOW + 7200)


def test_reduced_shape_validates_inputs(registry):
    with pytest.raises(InvalidIdentity):
        registry.register_certificate("0xabc", NOW)
    with pytest.raises(CertificateValidationError):
        registry.register_certificate(b"\x01" * 32, -1)


def test_concurrent_creates_have_one_winner(registry):
    barrier = threading.Barrier(8)
    outcomes = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        try:
            registry.create(*john(NOW + 3600))
            result = "created"
        except DuplicateCertificate:
            result = "duplicate"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("created") == 1
    assert outcomes.count("duplicate") == 7
    assert len(registry) == 1


def test_suspend_racing_verify_is_never_torn(registry):
    identity = registry.create(*john(NOW + 3600))
    barrier = threading.Barrier(17)
    observed = []
    lock = threading.Lock()

    def reader():
        barrier.wait()
        for _ in range(200):
            # verify and record under one lock so list order is observation order
            with lock:
                observed.append(registry.verify(identity))

    def writer():
        barrier.wait()
        with lock:
            registry.suspend(identity)

    threads = [threading.Thread(target=reader) for _ in range(16)]
    threads.append(threading.Thread(target=writer))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(observed) == 16 * 200
    assert all(isinstance(v, bool) for v in observed)
    # a run of True, then only False
    flips = sum(1 for a, b in zip(observed, observed[1:]) if a != b)
    assert flips <= 1
    if flips:
        assert observed[0] is True
    assert registry.verify(identity) is False
