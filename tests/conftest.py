"""
Shared fixtures for the SOP wizard test suite.
"""
import pytest

from sopwizard.interview import DialogueLog, InterviewEventBus, InterviewStateMachine
from sopwizard.interview.testing import create_mock_wizard_setup


SCENARIO_ANSWERS = [
    "start",
    "Return Handling",
    "How to process returns",
    "Customer Service",
    "Store associates",
    "Inspect item",
    "Issue refund",
    "done",
    "looks good",
]


@pytest.fixture
def scenario_answers():
    return list(SCENARIO_ANSWERS)


@pytest.fixture
def completions():
    return []


@pytest.fixture
def event_bus():
    return InterviewEventBus()


@pytest.fixture
def machine(completions, event_bus):
    def on_complete(document, steps):
        completions.append((document, steps))

    m = InterviewStateMachine(DialogueLog(), on_complete=on_complete, event_bus=event_bus)
    m.greet()
    return m


@pytest.fixture
def mock_setup():
    return create_mock_wizard_setup()
