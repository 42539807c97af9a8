"""Tests for the exception hierarchy."""

import pytest

from vulntrend.exceptions import (
    ConfigurationError,
    HistoryError,
    InsufficientHistoryError,
    InvalidArgumentError,
    InvalidConfigError,
    InvalidInputError,
    VulnTrendError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            InvalidArgumentError("project_key", "must be non-empty"),
            InvalidInputError("no dependencies"),
            InsufficientHistoryError("com.acme:shop", available=1),
        ],
    )
    def test_history_errors(self, error):
        assert isinstance(error, HistoryError)
        assert isinstance(error, VulnTrendError)

    def test_config_errors(self):
        error = InvalidConfigError("max_projects", 0, "must be at least 1")
        assert isinstance(error, ConfigurationError)
        assert isinstance(error, VulnTrendError)


class TestMessages:
    def test_details_are_appended(self):
        error = InvalidArgumentError("limit", "must be >= 1, got 0")
        assert str(error) == (
            "Invalid argument 'limit': must be >= 1, got 0 "
            "(argument=limit, reason=must be >= 1, got 0)"
        )

    def test_plain_message(self):
        assert str(VulnTrendError("boom")) == "boom"

    def test_input_error_field(self):
        error = InvalidInputError("blank vulnerability id", field="vulnerabilities.id")
        assert error.field == "vulnerabilities.id"
        assert error.details["field"] == "vulnerabilities.id"

    def test_insufficient_history_counts(self):
        error = InsufficientHistoryError("com.acme:shop", available=1)
        assert error.available == 1
        assert error.required == 2
        assert error.project_key == "com.acme:shop"
