from __future__ import annotations

import pytest

from app.models.auth_models import (
    AuthFormState,
    AuthResult,
    AwaitingEmailConfirmation,
    Failed,
    Idle,
    Submitting,
    Succeeded,
)
from app.models.enums import AuthErrorCode, AuthMode
from app.services.auth_flow import AuthFlowController


class CompletionRecorder:
    def __init__(self) -> None:
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


@pytest.fixture()
def completed() -> CompletionRecorder:
    return CompletionRecorder()


@pytest.fixture()
def controller(provider, logger, config, completed) -> AuthFlowController:
    return AuthFlowController(
        provider=provider, logger=logger, config=config, on_complete=completed,
    )


def fill(controller: AuthFlowController, **fields: object) -> None:
    controller.update_form(**fields)


def test_initial_state_is_idle_signin(controller):
    assert controller.outcome == Idle(mode=AuthMode.SIGN_IN)
    assert controller.form == AuthFormState()


@pytest.mark.parametrize("start", list(AuthMode))
@pytest.mark.parametrize("target", list(AuthMode))
def test_change_mode_clears_every_field(controller, start, target):
    controller.change_mode(start)
    fill(controller, email="a@b.c", password="secret1", confirm_password="secret1",
         reveal_password=True)

    outcome = controller.change_mode(target)

    assert controller.form == AuthFormState()
    assert outcome == Idle(mode=target)
    assert controller.mode == target


def test_change_mode_clears_failed_outcome(controller, provider):
    provider.results["sign_in"] = AuthResult.fail("Invalid login credentials")
    fill(controller, email="a@b.c", password="wrong")
    controller.submit()

    controller.change_mode("reset")

    assert controller.outcome == Idle(mode=AuthMode.RESET)


def test_signup_short_password_fails_without_provider_call(controller, provider):
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="a@b.c", password="abc12", confirm_password="abc12")

    outcome = controller.submit()

    assert outcome == Failed(
        mode=AuthMode.SIGN_UP, message="Password must be at least 6 characters long",
    )
    assert provider.calls == []


def test_signup_mismatch_fails_without_provider_call(controller, provider):
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="a@b.c", password="abcdef", confirm_password="xyz123")

    outcome = controller.submit()

    assert outcome == Failed(mode=AuthMode.SIGN_UP, message="Passwords do not match")
    assert provider.calls == []


def test_signup_success_awaits_confirmation_then_completes(controller, provider, completed):
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="new@example.com", password="abcdef", confirm_password="abcdef")

    outcome = controller.submit()

    assert outcome == AwaitingEmailConfirmation(email="new@example.com")
    assert provider.calls == [("sign_up", ("new@example.com", "abcdef"))]
    # Fields are kept and the flow is not complete until acknowledged.
    assert controller.form.email == "new@example.com"
    assert controller.mode == AuthMode.SIGN_UP
    assert completed.count == 0

    after = controller.acknowledge_email_confirmation()

    assert after == Idle(mode=AuthMode.SIGN_IN)
    assert controller.form == AuthFormState()
    assert completed.count == 1


def test_confirmation_shows_the_address_the_account_was_created_for(controller, provider):
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="  new@example.com ", password="abcdef", confirm_password="abcdef")

    outcome = controller.submit()

    assert provider.calls == [("sign_up", ("new@example.com", "abcdef"))]
    assert outcome == AwaitingEmailConfirmation(email="new@example.com")


def test_signup_provider_error_message_is_verbatim(controller, provider):
    provider.results["sign_up"] = AuthResult.fail("User already registered")
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="a@b.c", password="abcdef", confirm_password="abcdef")

    assert controller.submit() == Failed(
        mode=AuthMode.SIGN_UP, message="User already registered",
    )


def test_submit_is_ignored_while_awaiting_confirmation(controller, provider):
    controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="a@b.c", password="abcdef", confirm_password="abcdef")
    controller.submit()

    outcome = controller.submit()

    assert isinstance(outcome, AwaitingEmailConfirmation)
    assert len(provider.calls) == 1


def test_signin_failure_then_success_completes_flow(controller, provider, completed):
    provider.results["sign_in"] = AuthResult.fail("Invalid login credentials")
    fill(controller, email="hero@example.com", password="wrong-pass")

    assert controller.submit() == Failed(
        mode=AuthMode.SIGN_IN, message="Invalid login credentials",
    )
    assert completed.count == 0

    provider.results["sign_in"] = AuthResult.ok()
    fill(controller, password="right-pass")
    outcome = controller.submit()

    assert outcome == Idle(mode=AuthMode.SIGN_IN)
    assert controller.form == AuthFormState()
    assert completed.count == 1
    assert provider.calls[-1] == ("sign_in", ("hero@example.com", "right-pass"))


def test_reset_success_keeps_fields_and_stays_open(controller, provider, completed):
    controller.change_mode(AuthMode.RESET)
    fill(controller, email="hero@example.com")

    outcome = controller.submit()

    assert outcome == Succeeded(
        mode=AuthMode.RESET, message="Password reset email sent! Check your inbox.",
    )
    assert controller.form.email == "hero@example.com"
    assert completed.count == 0
    assert provider.calls == [("reset_password", ("hero@example.com",))]


def test_reset_can_be_resubmitted_after_success(controller, provider):
    controller.change_mode(AuthMode.RESET)
    fill(controller, email="hero@example.com")
    controller.submit()

    controller.submit()

    assert len(provider.calls) == 2


def test_reset_provider_error(controller, provider):
    provider.results["reset_password"] = AuthResult.fail(
        "Cannot reach the server. Check your internet connection.",
        AuthErrorCode.NETWORK_ERROR,
    )
    controller.change_mode(AuthMode.RESET)
    fill(controller, email="hero@example.com")

    outcome = controller.submit()

    assert isinstance(outcome, Failed)
    assert outcome.message == "Cannot reach the server. Check your internet connection."


def test_unexpected_exception_reports_generic_message(controller, provider, log_stream):
    provider.errors["sign_in"] = KeyError("internal detail")
    fill(controller, email="hero@example.com", password="secret1")

    outcome = controller.submit()

    assert outcome == Failed(mode=AuthMode.SIGN_IN, message="An unexpected error occurred")
    assert "AUTH_UNEXPECTED_ERROR" in log_stream.getvalue()


def test_missing_email_is_rejected_locally(controller, provider):
    fill(controller, password="secret1")

    outcome = controller.submit()

    assert outcome == Failed(mode=AuthMode.SIGN_IN, message="Email address is required.")
    assert provider.calls == []


def test_reset_does_not_require_password(controller, provider):
    controller.change_mode(AuthMode.RESET)
    fill(controller, email="hero@example.com")

    assert controller.validate(AuthMode.RESET, controller.form).is_valid


def test_reentrant_submit_is_ignored_while_submitting(controller, provider):
    seen = []

    def submit_again(operation: str) -> None:
        assert controller.is_submitting
        seen.append(controller.submit())

    provider.during_call = submit_again
    fill(controller, email="hero@example.com", password="secret1")

    controller.submit()

    assert seen == [Submitting(mode=AuthMode.SIGN_IN)]
    assert len(provider.calls) == 1
    assert not controller.is_submitting


def test_close_during_submission_discards_result(controller, provider, completed):
    provider.during_call = lambda operation: controller.close()
    fill(controller, email="hero@example.com", password="secret1")

    outcome = controller.submit()

    assert outcome == Idle(mode=AuthMode.SIGN_IN)
    assert completed.count == 0


def test_mode_change_during_submission_discards_failure(controller, provider):
    provider.results["sign_in"] = AuthResult.fail("Invalid login credentials")
    provider.during_call = lambda operation: controller.change_mode(AuthMode.SIGN_UP)
    fill(controller, email="hero@example.com", password="secret1")

    outcome = controller.submit()

    assert outcome == Idle(mode=AuthMode.SIGN_UP)
    assert controller.outcome == Idle(mode=AuthMode.SIGN_UP)


def test_close_resets_from_any_state(controller, provider):
    controller.change_mode(AuthMode.RESET)
    fill(controller, email="hero@example.com")
    controller.submit()

    assert controller.close() == Idle(mode=AuthMode.SIGN_IN)
    assert controller.form == AuthFormState()


def test_acknowledge_outside_confirmation_is_a_no_op(controller, completed):
    outcome = controller.acknowledge_email_confirmation()

    assert outcome == Idle(mode=AuthMode.SIGN_IN)
    assert completed.count == 0


def test_listeners_see_submitting_then_result(controller, provider):
    seen = []
    unsubscribe = controller.subscribe(seen.append)
    provider.results["sign_in"] = AuthResult.fail("Invalid login credentials")
    fill(controller, email="hero@example.com", password="secret1")

    controller.submit()
    unsubscribe()
    controller.close()

    assert [outcome.kind for outcome in seen] == ["submitting", "failed"]


def test_toggle_reveal_password(controller):
    assert controller.toggle_reveal_password() is True
    assert controller.form.reveal_password is True
    assert controller.toggle_reveal_password() is False


def test_update_form_rejects_unknown_fields(controller):
    with pytest.raises(TypeError):
        controller.update_form(username="hero")


def test_form_repr_hides_passwords():
    form = AuthFormState(email="a@b.c", password="topsecret", confirm_password="topsecret")

    assert "topsecret" not in repr(form)
