"""Tests for self-expiring notifications."""

import asyncio

import pytest

from catalog.views.notifications import NotificationCenter


@pytest.mark.asyncio
async def test_notification_expires_after_delay():
    center = NotificationCenter(delay=0.02)
    center.push("Saved", "success")
    assert [n.message for n in center.active] == ["Saved"]
    await asyncio.sleep(0.06)
    assert center.active == []


@pytest.mark.asyncio
async def test_each_notification_has_its_own_timer():
    center = NotificationCenter(delay=0.05)
    center.push("first")
    await asyncio.sleep(0.03)
    center.push("second")
    await asyncio.sleep(0.03)
    assert [n.message for n in center.active] == ["second"]


def test_listener_and_history():
    seen = []
    center = NotificationCenter(listener=seen.append)
    center.push("oops", "error")
    center.push("fine", "info")
    assert [n.message for n in seen] == ["oops", "fine"]
    assert [n.message for n in center.errors()] == ["oops"]
    assert seen[0].id != seen[1].id


def test_push_outside_loop_stays_visible():
    center = NotificationCenter(delay=0.01)
    center.push("no loop")
    assert len(center.active) == 1


def test_history_is_bounded_but_errors_are_counted():
    center = NotificationCenter(history_size=5)
    for i in range(12):
        center.push(f"failure {i}", "error")
    center.push("fine", "success")

    assert len(center.history) == 5
    assert center.history[0].message == "failure 8"
    assert center.error_count == 12
    assert len(center.errors()) == 4
