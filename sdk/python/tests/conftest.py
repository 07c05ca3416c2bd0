import pytest

from certreg import CertificateRegistry, CredentialRegistry

NOW = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry(clock):
    return CertificateRegistry(clock=clock)


@pytest.fixture
def storage(registry):
    return CredentialRegistry(registry)
