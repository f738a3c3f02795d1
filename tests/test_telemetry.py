from __future__ import annotations

import pytest

from vim_bridge.runtime import telemetry


def test_env_flag_reads_prefixed_variables(monkeypatch) -> None:
    monkeypatch.setenv("VIM_BRIDGE_NO_COLOR", "yes")
    monkeypatch.delenv("VIM_BRIDGE_LOG_JSON", raising=False)

    assert telemetry.env_flag("NO_COLOR", False) is True
    assert telemetry.env_flag("LOG_JSON", True) is True
    monkeypatch.setenv("VIM_BRIDGE_LOG_JSON", "off")
    assert telemetry.env_flag("LOG_JSON", True) is False


def test_configure_with_explicit_config_resets_logger_cache() -> None:
    before = telemetry.get_logger("vim_bridge.tests")
    assert telemetry.get_logger("vim_bridge.tests") is before

    try:
        telemetry.configure(config=telemetry.tl.Config())
        after = telemetry.get_logger("vim_bridge.tests")
        assert after is not before
        assert telemetry.get_logger("vim_bridge.tests") is after
    finally:
        telemetry.configure()


def test_span_reraises_and_keeps_metadata() -> None:
    with pytest.raises(KeyError):
        with telemetry.span(
            "tests::span", component="tests", metadata={"bufnr": 3}
        ) as handle:
            handle.add_metadata("lines", [1, 2])
            raise KeyError("missing")

    assert handle.metadata == {"bufnr": "3", "lines": "[1, 2]"}
    assert handle.component_name == "tests"
