import secrets

import base58
import pytest

from agent_vault.keys import generate_signing_keypair


def random_address() -> str:
    return base58.b58encode(secrets.token_bytes(32)).decode("ascii")


@pytest.fixture
def owner():
    return generate_signing_keypair()


@pytest.fixture
def protocol():
    return generate_signing_keypair()


@pytest.fixture
def stranger():
    return generate_signing_keypair()


@pytest.fixture
def asset_id():
    return random_address()
