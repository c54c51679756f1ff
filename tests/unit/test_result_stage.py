"""Unit tests for the payment result stage."""

from card_checkout.flows.result_stage import (
    LAST_PAYMENT_ID_KEY,
    SHOW_FLAG_KEY,
    ResultStage,
    StageState,
    describe,
    parse_redirect_return,
)
from card_checkout.models.outcomes import AttemptStatus, ResultSource
from card_checkout.storage.backends import InMemoryBackend

RETURN_URL = "https://shop.example.com/checkout?paymentId=pay-9&status=succeeded&ref=abc"


class TestRedirectParsing:
    """Test redirect-return parameter handling."""

    def test_parse_and_strip(self):
        result, location = parse_redirect_return(RETURN_URL)

        assert result.payment_id == "pay-9"
        assert result.status == AttemptStatus.SUCCEEDED
        assert result.source == ResultSource.REDIRECT_RETURN
        assert location == "https://shop.example.com/checkout?ref=abc"

    def test_unknown_status_is_unspecified(self):
        result, _ = parse_redirect_return("/checkout?paymentId=pay-9&status=weird")

        assert result.status == AttemptStatus.UNSPECIFIED

    def test_incomplete_parameters_ignored(self):
        result, location = parse_redirect_return("/checkout?paymentId=pay-9")

        assert result is None
        assert location == "/checkout?paymentId=pay-9"

    def test_no_location(self):
        assert parse_redirect_return(None) == (None, None)


class TestResultStage:
    """Test the display-once state machine."""

    def test_initial_state(self):
        stage = ResultStage(InMemoryBackend())

        assert stage.state == StageState.AWAITING
        assert stage.load().result is None

    def test_local_result_shown_once(self):
        stage = ResultStage(InMemoryBackend())
        stage.record("pay-1", AttemptStatus.SUCCEEDED)
        assert stage.state == StageState.PENDING_DISPLAY

        view = stage.load("/checkout")

        assert view.result.payment_id == "pay-1"
        assert view.result.source == ResultSource.LOCAL_SESSION
        assert view.location == "/checkout"
        assert stage.state == StageState.SHOWN

        # Reload with no new redirect parameters
        assert stage.load("/checkout").result is None

    def test_reload_in_new_stage_does_not_reshow(self):
        backend = InMemoryBackend()
        ResultStage(backend).record("pay-1", AttemptStatus.FAILED)
        ResultStage(backend).load()

        assert ResultStage(backend).load().result is None

    def test_redirect_takes_precedence(self):
        backend = InMemoryBackend()
        stage = ResultStage(backend)
        stage.record("pay-local", AttemptStatus.FAILED)

        view = stage.load(RETURN_URL)

        assert view.result.payment_id == "pay-9"
        assert view.result.source == ResultSource.REDIRECT_RETURN
        assert view.location == "https://shop.example.com/checkout?ref=abc"
        assert stage.shown == view.result

        # Reload with the cleaned location shows nothing
        assert stage.load(view.location).result is None

    def test_reset(self):
        backend = InMemoryBackend()
        stage = ResultStage(backend)
        stage.record("pay-1", AttemptStatus.DECLINED)

        stage.reset()

        assert stage.state == StageState.AWAITING
        assert SHOW_FLAG_KEY not in backend
        assert LAST_PAYMENT_ID_KEY not in backend

    def test_dismiss(self):
        backend = InMemoryBackend()
        stage = ResultStage(backend)
        stage.record("pay-1", AttemptStatus.SUCCEEDED)
        stage.load()

        stage.dismiss()

        assert stage.state == StageState.AWAITING
        assert LAST_PAYMENT_ID_KEY not in backend

    def test_record_without_payment_id(self):
        stage = ResultStage(InMemoryBackend())
        stage.record(None, AttemptStatus.FAILED)

        result = stage.load().result

        assert result.payment_id is None
        assert result.status == AttemptStatus.FAILED

    def test_storage_failure_is_fail_soft(self):
        stage = ResultStage(InMemoryBackend(disabled=True))

        assert stage.record("pay-1", AttemptStatus.SUCCEEDED) is False
        assert stage.load().result is None
        assert stage.state == StageState.AWAITING


class TestDescribe:
    """Test status headlines."""

    def test_known_statuses(self):
        assert describe(AttemptStatus.SUCCEEDED).title == "Payment Successful"
        assert describe(AttemptStatus.DECLINED).title == "Payment Declined"
        assert describe(AttemptStatus.PENDING).tone == "yellow"

    def test_unspecified(self):
        assert describe(AttemptStatus.UNSPECIFIED).title == "Payment Status"
