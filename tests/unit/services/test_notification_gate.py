# tests/unit/services/test_notification_gate.py
import pytest

from cart_recovery.core.enums import GateOutcome, TemplateKind
from cart_recovery.services.notification_gate import NotificationGate

PAYLOAD = {"subject": "Hello"}


@pytest.mark.asyncio
async def test_unrestricted_gate_delivers(mock_delivery):
    gate = NotificationGate(mock_delivery, restricted_mode=False)

    outcome = await gate.notify("anyone@x.com", TemplateKind.CART, PAYLOAD)

    assert outcome == GateOutcome.SENT
    assert mock_delivery.recipients() == ["anyone@x.com"]


@pytest.mark.asyncio
async def test_restricted_gate_skips_other_recipients(mock_delivery):
    gate = NotificationGate(mock_delivery, restricted_mode=True, allowed_recipient="y@x.com")

    outcome = await gate.notify("z@x.com", TemplateKind.BROWSE, PAYLOAD)

    assert outcome == GateOutcome.SKIPPED
    assert mock_delivery.calls == []


@pytest.mark.asyncio
async def test_restricted_gate_matches_case_insensitively(mock_delivery):
    gate = NotificationGate(mock_delivery, restricted_mode=True, allowed_recipient="Y@X.com")

    assert gate.permits("y@x.com")
    assert await gate.notify("y@x.com", TemplateKind.CART, PAYLOAD) == GateOutcome.SENT


@pytest.mark.asyncio
async def test_restricted_gate_without_recipient_allows_nobody(mock_delivery):
    gate = NotificationGate(mock_delivery, restricted_mode=True, allowed_recipient=None)

    assert not gate.permits("y@x.com")
    assert await gate.notify("y@x.com", TemplateKind.CART, PAYLOAD) == GateOutcome.SKIPPED


@pytest.mark.asyncio
async def test_delivery_returning_false_is_a_failure(mock_delivery):
    mock_delivery.should_fail = True
    gate = NotificationGate(mock_delivery)

    assert await gate.notify("a@x.com", TemplateKind.CART, PAYLOAD) == GateOutcome.FAILED


@pytest.mark.asyncio
async def test_delivery_exception_is_contained(mock_delivery):
    mock_delivery.error = RuntimeError("provider down")
    gate = NotificationGate(mock_delivery)

    assert await gate.notify("a@x.com", TemplateKind.CART, PAYLOAD) == GateOutcome.FAILED


def test_empty_recipient_never_permitted(mock_delivery):
    gate = NotificationGate(mock_delivery)

    assert not gate.permits(None)
    assert not gate.permits("")
