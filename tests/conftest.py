"""
Shared fixtures for the metric grid tests.
"""

import json
from dataclasses import dataclass

import pytest

from core.domain.grid import NotificationChannel
from core.services import MetricGridService


@pytest.fixture(scope="session")
def qapp():
    """One QCoreApplication for every test that touches QObject signals."""
    from PyQt6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def channel():
    return NotificationChannel()


@pytest.fixture
def session(channel):
    """Default student report grid with one empty row."""
    return MetricGridService(notifications=channel)


@dataclass
class FakeResponse:
    content: str


class FakeSuggestionClient:
    """
    Stand-in for AIClient.

    Args:
        columns: Value returned (as JSON) by analyze_instructions, or an
                 Exception instance to raise
        options: field/header -> option list (or Exception) for generate_column_options
    """

    def __init__(self, columns=None, options=None):
        self.columns = columns if columns is not None else []
        self.options = options or {}
        self.analyze_calls = []
        self.option_calls = []

    def analyze_instructions(self, instructions):
        self.analyze_calls.append(instructions)
        if isinstance(self.columns, Exception):
            raise self.columns
        if isinstance(self.columns, str):
            return FakeResponse(self.columns)
        return FakeResponse(json.dumps(self.columns, ensure_ascii=False))

    def generate_column_options(self, header_name, description):
        self.option_calls.append((header_name, description))
        result = self.options.get(header_name, [])
        if isinstance(result, Exception):
            raise result
        return FakeResponse(json.dumps(result, ensure_ascii=False))


@pytest.fixture
def fake_client():
    return FakeSuggestionClient()
