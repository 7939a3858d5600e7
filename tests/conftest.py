"""Shared fixtures for all tests."""

from unittest.mock import MagicMock

import pytest

from backend.agent.sourcing import SourcingAgent
from backend.api.schemas import Requirement, Vendor


@pytest.fixture
def result_reply() -> str:
    """A result-mode reply: summary prose followed by the vendor block."""
    return (
        "**Executive Summary**: Hyderabad has a strong valve cluster.\n\n"
        "```json\n"
        "[\n"
        '  {"name": "Acme Valves Pvt. Ltd.", "city": "Hyderabad", "rating": 4.2},\n'
        '  {"name": "Deccan Flow Controls", "city": "Hyderabad", "rating": 4.8},\n'
        '  {"name": "Sai Industrial Traders", "city": "Secunderabad"}\n'
        "]\n"
        "```"
    )


@pytest.fixture
def interview_reply() -> str:
    return "Thanks. What pressure rating do the valves need (e.g. PN16, Class 150)?"


@pytest.fixture
def sample_vendors() -> list[Vendor]:
    return [
        Vendor(id="deccanflow", name="Deccan Flow", rating=4.8),
        Vendor(id="acmeco", name="Acme Co.", rating=4.0),
        Vendor(id="sai", name="Sai Traders"),
    ]


@pytest.fixture
def requirement() -> Requirement:
    return Requirement(
        item_name="Industrial Valves",
        description="SS304 ball valves, 2 inch, flanged",
        quantity="5000 units",
        preferred_location="Hyderabad",
    )


@pytest.fixture
def mock_gateway(interview_reply):
    gateway = MagicMock()
    gateway.complete.return_value = interview_reply
    gateway.is_healthy.return_value = True
    return gateway


@pytest.fixture
def agent(mock_gateway) -> SourcingAgent:
    return SourcingAgent(mock_gateway)
