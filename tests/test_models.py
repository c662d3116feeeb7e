from __future__ import annotations

import allure
import pytest

from shell_loop.engine.models import (
    TIMEOUT,
    UNKNOWN,
    ExitCode,
    ExitKind,
    RunState,
    Summary,
    UntilError,
)

pytestmark = [
    allure.epic("Loop Engine"),
    allure.feature("Exit Codes & Summary"),
]


@pytest.mark.parametrize(
    ("code", "kind"),
    [
        (0, ExitKind.OKAY),
        (1, ExitKind.ERROR),
        (2, ExitKind.MINOR_ERROR),
        (99, ExitKind.UNKNOWN),
        (124, ExitKind.TIMEOUT),
    ],
)
def test_canonical_codes_decode_to_named_kinds(code: int, kind: ExitKind) -> None:
    exit_code = ExitCode(code)

    assert exit_code.kind is kind
    assert ExitCode.of(kind) == exit_code
    assert int(ExitCode.of(kind)) == code


@pytest.mark.parametrize("code", [3, 42, 98, 100, 123, 125, 255])
def test_other_codes_round_trip_as_other(code: int) -> None:
    exit_code = ExitCode(code)

    assert exit_code.kind is ExitKind.OTHER
    assert int(exit_code) == code


def test_other_kind_has_no_canonical_code() -> None:
    with pytest.raises(ValueError, match="no canonical code"):
        ExitCode.of(ExitKind.OTHER)


def test_signal_death_maps_to_unknown() -> None:
    assert ExitCode.from_returncode(-9) == UNKNOWN
    assert ExitCode.from_returncode(124) == TIMEOUT
    assert ExitCode.from_returncode(7).kind is ExitKind.OTHER


def test_until_error_any_versus_specific_code() -> None:
    assert UntilError().matches(ExitCode(3))
    assert not UntilError().matches(ExitCode(0))
    assert UntilError(code=3).matches(ExitCode(3))
    assert not UntilError(code=3).matches(ExitCode(1))


def test_summary_report_lists_failure_codes_in_order() -> None:
    summary = Summary()
    for code in (0, 1, 0, 7, UNKNOWN.code):
        summary.record(ExitCode(code))

    assert summary.total == 5
    assert summary.report() == [
        "Total runs:\t5",
        "Successes:\t2",
        "Failures:\t3 (1, 7, 99)",
    ]


def test_summary_report_without_failures_renders_zero() -> None:
    summary = Summary()
    summary.record(ExitCode(0))

    assert summary.report()[-1] == "Failures:\t0"


def test_run_state_defaults() -> None:
    state = RunState()

    assert state.has_matched is False
    assert state.previous_output is None
    assert state.summary.total == 0
    assert state.exit_code.kind is ExitKind.OKAY
