from pageperf.aggregate import aggregate, any_true, average
from pageperf.metrics import Failure, TrialResult


def make_trial(load_ms=None, failure=None, **overrides) -> TrialResult:
    if failure is not None:
        return TrialResult.failed("https://example.com", "iter", failure)
    return TrialResult(url="https://example.com", label="iter", load_ms=load_ms, **overrides)


def test_average_skips_sentinels():
    trials = [make_trial(100), make_trial(200), make_trial(failure=Failure.DID_NOT_FINISH)]
    assert average(trials, "load_ms") == 150.00


def test_average_without_numbers_is_not_available():
    trials = [make_trial(failure=Failure.NOT_AVAILABLE), make_trial(failure=Failure.DID_NOT_FINISH)]
    assert average(trials, "load_ms") is Failure.NOT_AVAILABLE


def test_average_skips_missing_fields_of_successful_trials():
    trials = [make_trial(None), make_trial(10.5)]
    assert average(trials, "load_ms") == 10.5


def test_link_found_true_if_any_trial_found_it():
    trials = [make_trial(1), make_trial(2, link_found=True, detected_link="https://example.com/")]
    assert any_true(trials)
    assert not any_true([make_trial(1), make_trial(failure=Failure.NOT_AVAILABLE)])


def test_average_mode_exports_sentinel_strings():
    out = aggregate([make_trial(failure=Failure.DID_NOT_FINISH)], mode="average")
    assert out["pageLoadTime_ms"] == "N/A"
    assert out["linkFound"] is False


def test_selected_mode_uses_one_trial():
    trials = [make_trial(100), make_trial(200), make_trial(failure=Failure.DID_NOT_FINISH)]
    assert aggregate(trials, mode="selected", selected_trial=3)["pageLoadTime_ms"] == "DNF"
    assert aggregate(trials, mode="selected", selected_trial=2)["pageLoadTime_ms"] == 200


def test_selected_mode_without_that_trial():
    out = aggregate([], mode="selected", selected_trial=3)
    assert out["domElementCount"] == "N/A"
    assert out["linkFound"] is False
