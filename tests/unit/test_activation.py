# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for time-driven assessment activation."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.domains.assessment.activation import (
    ActivationService,
    ActivationSweepReport,
    should_be_active,
    sync_active_flag,
)
from src.infrastructure.database.models import Assessment

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock session whose updates hit one row."""
    session = AsyncMock()
    session.execute.return_value = MagicMock(rowcount=1)
    return session


class TestShouldBeActive:
    """Tests for the window rule."""

    def test_inside_window(self) -> None:
        """Test now inside the window."""
        assert should_be_active(NOW - timedelta(hours=1), NOW + timedelta(hours=1), NOW) is True

    def test_start_is_inclusive(self) -> None:
        """Test the start instant is inside the window."""
        assert should_be_active(NOW, NOW + timedelta(hours=1), NOW) is True

    def test_end_is_exclusive(self) -> None:
        """Test the end instant is outside the window."""
        assert should_be_active(NOW - timedelta(hours=1), NOW, NOW) is False

    def test_before_window(self) -> None:
        """Test now before the window."""
        assert should_be_active(NOW + timedelta(minutes=1), NOW + timedelta(hours=1), NOW) is False

    def test_missing_bound(self) -> None:
        """Test a missing bound leaves the flag undecided."""
        assert should_be_active(None, NOW, NOW) is None
        assert should_be_active(NOW, None, NOW) is None

    def test_naive_datetimes_treated_as_utc(self) -> None:
        """Test naive values read back from the store compare as UTC."""
        start = (NOW - timedelta(minutes=5)).replace(tzinfo=None)
        end = (NOW + timedelta(minutes=5)).replace(tzinfo=None)

        assert should_be_active(start, end, NOW) is True


class TestSyncActiveFlag:
    """Tests for the compare-and-set write."""

    @pytest.mark.asyncio
    async def test_no_write_when_flag_matches(self, mock_session: AsyncMock) -> None:
        """Test nothing is written when the stored flag is right."""
        result = await sync_active_flag(
            mock_session, "a-1", NOW - timedelta(hours=1), NOW + timedelta(hours=1), True, NOW
        )

        assert result is None
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_write_without_window(self, mock_session: AsyncMock) -> None:
        """Test nothing is written when the window is incomplete."""
        result = await sync_active_flag(mock_session, "a-1", None, None, False, NOW)

        assert result is None
        mock_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_writes_transition(self, mock_session: AsyncMock) -> None:
        """Test a stale flag is written once."""
        result = await sync_active_flag(
            mock_session, "a-1", NOW - timedelta(hours=1), NOW + timedelta(hours=1), False, NOW
        )

        assert result is True
        mock_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lost_race_reports_no_change(self, mock_session: AsyncMock) -> None:
        """Test a concurrent writer that already flipped the flag wins."""
        mock_session.execute.return_value = MagicMock(rowcount=0)

        result = await sync_active_flag(
            mock_session, "a-1", NOW - timedelta(hours=2), NOW - timedelta(hours=1), True, NOW
        )

        assert result is None


class TestActivationServiceRefresh:
    """Tests for the read-path refresh."""

    @pytest.mark.asyncio
    async def test_refresh_updates_loaded_row(self, mock_session: AsyncMock) -> None:
        """Test the in-memory flag follows a successful write."""
        service = ActivationService(MagicMock(), clock=lambda: NOW)
        assessment = Assessment(
            id="a-1",
            start_time=NOW - timedelta(hours=2),
            end_time=NOW - timedelta(hours=1),
            is_active=True,
        )

        changed = await service.refresh(mock_session, assessment)

        assert changed is True
        assert assessment.is_active is False

    @pytest.mark.asyncio
    async def test_refresh_after_concurrent_write(self, mock_session: AsyncMock) -> None:
        """Test the loaded flag is current when a sweep stored the transition first."""
        mock_session.execute.return_value = MagicMock(rowcount=0)
        service = ActivationService(MagicMock(), clock=lambda: NOW)
        assessment = Assessment(
            id="a-1",
            start_time=NOW - timedelta(hours=1),
            end_time=NOW + timedelta(hours=1),
            is_active=False,
        )

        changed = await service.refresh(mock_session, assessment)

        assert changed is False
        assert assessment.is_active is True

    @pytest.mark.asyncio
    async def test_refresh_noop(self, mock_session: AsyncMock) -> None:
        """Test an up-to-date row is left alone."""
        service = ActivationService(MagicMock(), clock=lambda: NOW)
        assessment = Assessment(
            id="a-1",
            start_time=NOW + timedelta(hours=1),
            end_time=NOW + timedelta(hours=2),
            is_active=False,
        )

        changed = await service.refresh(mock_session, assessment)

        assert changed is False
        mock_session.execute.assert_not_called()


class TestActivationSweepReport:
    """Tests for ActivationSweepReport."""

    def test_to_dict(self) -> None:
        """Test dictionary conversion."""
        report = ActivationSweepReport(checked=3, activated=1, deactivated=1, failed=1)

        assert report.to_dict() == {
            "checked": 3,
            "activated": 1,
            "deactivated": 1,
            "failed": 1,
        }
