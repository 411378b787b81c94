"""
conftest.py - Shared pytest fixtures for marketplace tests

Provides common fixtures used across unit, conformance and functional tests:
- Funded balance books
- Empty and pre-stocked marketplaces
- Recording / declining payment movers
"""

import pytest

from marketplace import MarketplaceLedger

from tests.helpers import funded_book
from tests.fake_payments import RecordingMover, DecliningMover


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def book():
    """Balance book with two sellers and three buyers holding 10,000 each."""
    return funded_book()


@pytest.fixture
def market(book):
    """Empty marketplace settling through the funded book."""
    return MarketplaceLedger("test", payments=book, verbose=False)


@pytest.fixture
def stocked_market(market):
    """
    Marketplace with three listings:
        1: Chair (100) by seller_1
        2: Lamp  (50)  by seller_1
        3: Desk  (300) by seller_2
    """
    market.list_product("seller_1", "Chair", "Wooden chair", 100)
    market.list_product("seller_1", "Lamp", "Desk lamp", 50)
    market.list_product("seller_2", "Desk", "Oak desk", 300)
    return market


# =============================================================================
# PAYMENT DOUBLE FIXTURES
# =============================================================================

@pytest.fixture
def recording_mover():
    return RecordingMover()


@pytest.fixture
def recording_market(recording_mover):
    """Marketplace whose payments always succeed and are recorded."""
    return MarketplaceLedger("recording", payments=recording_mover, verbose=False)


@pytest.fixture
def declining_market():
    """Marketplace whose payment mover declines every transfer."""
    market = MarketplaceLedger("declining", payments=DecliningMover(), verbose=False)
    market.list_product("seller_1", "Chair", "Wooden chair", 100)
    return market
