import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


# ---------------------------------------------------------------------------
# Adapters: a fresh in-memory or fake instance per test
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from payments.gateway import reset_gateway, set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    gateway = FakeGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture()
def blob_storage():
    from storage.blob import reset_blob_storage, set_blob_storage
    from storage.blob.fake_adapter import FakeBlobStorage

    blob_storage = FakeBlobStorage()
    set_blob_storage(blob_storage)
    yield blob_storage
    reset_blob_storage()


@pytest.fixture()
def verifier():
    from identity.verifier import reset_verifier, set_verifier
    from identity.verifier.fake_adapter import FakeIdentityVerifier

    verifier = FakeIdentityVerifier()
    set_verifier(verifier)
    yield verifier
    reset_verifier()


@pytest.fixture()
def email_channel():
    from notifications.channel import reset_channels, set_email_channel
    from notifications.channel.fake_email import FakeEmailAdapter

    channel = FakeEmailAdapter()
    set_email_channel(channel)
    yield channel
    reset_channels()


# ---------------------------------------------------------------------------
# The ordering domain, shared by every suite that persists aggregates
# ---------------------------------------------------------------------------
@pytest.fixture(scope="session")
def ordering_bed():
    from protean.integrations.pytest import DomainFixture

    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()
