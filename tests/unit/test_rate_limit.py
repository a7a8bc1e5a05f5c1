"""Tests for per-item exponential backoff."""

from __future__ import annotations

import pytest

from vault_engine_operator.utils.rate_limit import ItemExponentialBackoff


class TestItemExponentialBackoff:
    """Test cases for ItemExponentialBackoff."""

    def test_delay_doubles_per_failure(self):
        """Test that each failure doubles the delay."""
        backoff = ItemExponentialBackoff(base_delay=1.0, max_delay=60.0)

        assert [backoff.when("a") for _ in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_capped_at_max(self):
        """Test that the delay never exceeds max_delay."""
        backoff = ItemExponentialBackoff(base_delay=1.0, max_delay=5.0)

        delays = [backoff.when("a") for _ in range(10)]
        assert max(delays) == 5.0

    def test_huge_failure_count_does_not_overflow(self):
        """Test that very large exponents fall back to max_delay."""
        backoff = ItemExponentialBackoff(base_delay=1.0, max_delay=5.0, factor=10.0)

        for _ in range(400):
            delay = backoff.when("a")
        assert delay == 5.0

    def test_items_tracked_independently(self):
        """Test that failures of one item do not affect another."""
        backoff = ItemExponentialBackoff(base_delay=1.0)
        backoff.when("a")
        backoff.when("a")

        assert backoff.when("b") == 1.0
        assert backoff.num_requeues("a") == 2
        assert backoff.num_requeues("b") == 1

    def test_forget_resets_item(self):
        """Test that forget starts the item from the base delay again."""
        backoff = ItemExponentialBackoff(base_delay=0.5)
        backoff.when("a")
        backoff.when("a")

        backoff.forget("a")

        assert backoff.num_requeues("a") == 0
        assert backoff.when("a") == 0.5

    def test_forget_unknown_item(self):
        """Test that forgetting an unknown item is a no-op."""
        ItemExponentialBackoff().forget("missing")

    @pytest.mark.parametrize(
        "base_delay,max_delay",
        [(0, 1.0), (-1.0, 1.0), (2.0, 1.0)],
    )
    def test_invalid_settings(self, base_delay, max_delay):
        """Test that invalid delays are rejected."""
        with pytest.raises(ValueError):
            ItemExponentialBackoff(base_delay=base_delay, max_delay=max_delay)
