"""Unit tests for the sync/async bridge."""

from __future__ import annotations

import asyncio

import pytest

from src.infra.k8s import run_sync


async def _double(value: int) -> int:
    await asyncio.sleep(0)
    return value * 2


def test_run_sync_without_running_loop() -> None:
    assert run_sync(_double(21)) == 42


@pytest.mark.asyncio
async def test_run_sync_inside_running_loop() -> None:
    assert run_sync(_double(4)) == 8


def test_run_sync_propagates_exceptions() -> None:
    async def _fail() -> None:
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        run_sync(_fail())
