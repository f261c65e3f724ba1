"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from returns_engine.calculations.cashflow import generate_cash_flows
from returns_engine.calculations.costs import calculate_costs
from returns_engine.calculations.debt import calculate_financing
from tests.fixtures.test_inputs import (
    get_apartment_inputs,
    get_for_sale_inputs,
    get_office_inputs,
    get_retail_inputs,
    get_single_tier_equity,
)


@pytest.fixture
def office_inputs():
    """Reference office assumptions."""
    return get_office_inputs()


@pytest.fixture
def retail_inputs():
    """Reference retail assumptions."""
    return get_retail_inputs()


@pytest.fixture
def apartment_inputs():
    """Reference apartment assumptions."""
    return get_apartment_inputs()


@pytest.fixture
def for_sale_inputs():
    """Reference for-sale assumptions."""
    return get_for_sale_inputs()


@pytest.fixture
def single_tier_equity():
    """Single-tier 90/10 equity structure without catch-up."""
    return get_single_tier_equity()


@pytest.fixture
def office_costs(office_inputs):
    """Costs for the reference office deal."""
    return calculate_costs(office_inputs)


@pytest.fixture
def office_financing(office_inputs, office_costs):
    """Construction financing for the reference office deal."""
    return calculate_financing(office_costs, office_inputs)


@pytest.fixture
def office_cash_flows(office_inputs, office_costs, office_financing):
    """Gross cash flows for the reference office deal."""
    return generate_cash_flows(office_inputs, office_costs, office_financing)
