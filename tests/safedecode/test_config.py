"""Tests for safedecode.config."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable

import pytest
from pydantic import ValidationError

from safedecode.config import (
    DEFAULT_FALSE_LITERALS,
    DEFAULT_TRUE_LITERALS,
    CoercionConfig,
    DateFormatter,
    StrptimeDateFormatter,
    configure,
    formatter_patterns,
    get_config,
    override_config,
    reset_config,
    set_config,
)
from safedecode.errors import CoercionConfigError, ConfigurationError, ErrorCode


class TestCoercionConfigDefaults:
    """Defaults are the conservative, all-enabled rule set."""

    def test_all_flags_enabled(self) -> None:
        """Every boolean flag defaults to True."""
        config = CoercionConfig()
        flags = {
            name: value for name, value in config.model_dump().items() if isinstance(value, bool)
        }
        assert flags
        assert all(flags.values())

    def test_default_literals(self) -> None:
        """Literal sets match the documented defaults."""
        config = CoercionConfig()
        assert config.bool_true_literals == DEFAULT_TRUE_LITERALS
        assert config.bool_false_literals == DEFAULT_FALSE_LITERALS
        assert config.custom_date_formatters == ()


class TestCoercionConfigValidation:
    """Validation and normalization."""

    def test_literals_are_normalized(self) -> None:
        """Literals are stripped and case-folded."""
        config = CoercionConfig(bool_true_literals={" YES ", "Oui"})
        assert config.bool_true_literals == frozenset({"yes", "oui"})

    def test_single_literal_string(self) -> None:
        """A bare string is one literal, not a set of characters."""
        config = CoercionConfig(bool_false_literals="nope")
        assert config.bool_false_literals == frozenset({"nope"})

    def test_overlap_is_accepted_with_warning(
        self,
        caplog: pytest.LogCaptureFixture,
        records_for: Callable[[str], list[logging.LogRecord]],
    ) -> None:
        """Overlapping literal sets validate but log a warning."""
        caplog.set_level(logging.WARNING, logger="safedecode.config")
        config = CoercionConfig(bool_true_literals={"1", "x"}, bool_false_literals={"x", "0"})
        assert "x" in config.bool_true_literals & config.bool_false_literals
        warnings = records_for("safedecode.config.validate")
        assert len(warnings) == 1
        assert warnings[0].__dict__["overlap"] == ["x"]

    def test_unknown_field(self) -> None:
        """Unknown fields are rejected with a configuration error."""
        with pytest.raises(CoercionConfigError, match="trim_whitespace") as exc_info:
            CoercionConfig(trim_whitespace=True)
        assert exc_info.value.code is ErrorCode.CONFIGURATION_ERROR
        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_wrong_type(self) -> None:
        """Non-boolean flag values are rejected."""
        with pytest.raises(CoercionConfigError) as exc_info:
            CoercionConfig(allow_string_to_bool="sometimes")
        errors = exc_info.value.context["errors"]
        assert isinstance(errors, list)
        assert errors[0]["loc"] == ["allow_string_to_bool"]

    def test_frozen(self) -> None:
        """Snapshots are immutable."""
        config = CoercionConfig()
        with pytest.raises(ValidationError):
            config.trim_strings = False  # type: ignore[misc]

    def test_pattern_strings_become_formatters(self) -> None:
        """strptime patterns are wrapped in StrptimeDateFormatter."""
        config = CoercionConfig(custom_date_formatters=["%Y/%m/%d", "%d.%m.%Y"])
        assert all(isinstance(f, StrptimeDateFormatter) for f in config.custom_date_formatters)
        assert formatter_patterns(config.custom_date_formatters) == ["%Y/%m/%d", "%d.%m.%Y"]

    def test_single_pattern(self) -> None:
        """A single pattern string is one formatter."""
        config = CoercionConfig(custom_date_formatters="%Y")
        assert len(config.custom_date_formatters) == 1

    def test_rejects_non_formatters(self) -> None:
        """Arbitrary objects are not date formatters."""
        with pytest.raises(CoercionConfigError):
            CoercionConfig(custom_date_formatters=[object()])

    def test_with_overrides_returns_new_snapshot(self) -> None:
        """with_overrides leaves the original untouched."""
        original = CoercionConfig()
        changed = original.with_overrides(trim_strings=False)
        assert original.trim_strings is True
        assert changed.trim_strings is False
        assert changed.allow_string_to_number is True

    def test_with_overrides_validates(self) -> None:
        """Invalid overrides fail."""
        with pytest.raises(CoercionConfigError):
            CoercionConfig().with_overrides(no_such_flag=True)


class TestStrptimeDateFormatter:
    """Tests for the strptime-backed formatter."""

    def test_naive_results_get_zone(self) -> None:
        """Naive parses receive the configured zone."""
        tz = dt.timezone(dt.timedelta(hours=8))
        parsed = StrptimeDateFormatter("%Y-%m-%d", tz=tz).parse("2024-08-20")
        assert parsed == dt.datetime(2024, 8, 20, tzinfo=tz)

    def test_aware_results_keep_zone(self) -> None:
        """A parsed offset wins over the default zone."""
        parsed = StrptimeDateFormatter("%Y-%m-%dT%H:%M%z").parse("2024-08-20T10:00+0200")
        assert parsed is not None
        assert parsed.utcoffset() == dt.timedelta(hours=2)

    def test_mismatch(self) -> None:
        """Non-matching text yields None."""
        assert StrptimeDateFormatter("%Y-%m-%d").parse("20/08/2024") is None

    def test_satisfies_protocol(self) -> None:
        """StrptimeDateFormatter is a DateFormatter."""
        assert isinstance(StrptimeDateFormatter("%Y"), DateFormatter)


class TestProcessWideConfig:
    """The process-wide holder."""

    def test_configure(self) -> None:
        """configure installs a modified snapshot."""
        installed = configure(allow_number_to_bool=False)
        assert get_config() is installed
        assert get_config().allow_number_to_bool is False

    def test_configure_failure_keeps_previous(self) -> None:
        """A rejected change leaves the installed snapshot alone."""
        before = get_config()
        with pytest.raises(CoercionConfigError):
            configure(bogus=1)
        assert get_config() is before

    def test_configure_logs_changed_fields(
        self,
        caplog: pytest.LogCaptureFixture,
        records_for: Callable[[str], list[logging.LogRecord]],
    ) -> None:
        """configure logs which fields changed."""
        caplog.set_level(logging.INFO, logger="safedecode.config")
        configure(trim_strings=False, allow_iso8601_date=False)
        (record,) = records_for("safedecode.config.configure")
        assert record.__dict__["changed"] == ["allow_iso8601_date", "trim_strings"]
        assert record.__dict__["status"] == "success"

    def test_set_config_returns_previous(self) -> None:
        """set_config swaps and returns the old snapshot."""
        before = get_config()
        replacement = CoercionConfig(trim_strings=False)
        assert set_config(replacement) is before
        assert get_config() is replacement

    def test_set_config_type_check(self) -> None:
        """Only CoercionConfig instances can be installed."""
        with pytest.raises(TypeError, match="Expected CoercionConfig"):
            set_config({"trim_strings": False})  # type: ignore[arg-type]

    def test_reset(self) -> None:
        """reset_config restores defaults."""
        configure(trim_strings=False)
        reset_config()
        assert get_config() == CoercionConfig()

    def test_override_config_restores(self) -> None:
        """override_config restores the previous snapshot, even on error."""
        before = get_config()
        with pytest.raises(RuntimeError), override_config(allow_bool_to_string=False) as temp:
            assert get_config() is temp
            assert temp.allow_bool_to_string is False
            raise RuntimeError
        assert get_config() is before
