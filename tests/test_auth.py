"""Tests for the login step."""

import pytest

from autovote.auth import authenticate
from autovote.page_session import NavigationError


def test_login_happy_path(make_page, make_config) -> None:
    config = make_config()
    page = make_page(screens=[[2]])

    landed = authenticate(page, config)

    assert landed == config.vote_url
    assert page.called("navigate") == [("navigate", config.login_url), ("navigate", config.vote_url)]
    assert page.called("select_option") == [("select_option", "طالب/طالبة", None)]
    assert page.called("fill") == [("fill", "12345678901234")]
    assert page.called("click") == [("click", "دخول")]
    assert page.called("press_enter") == []


def test_role_falls_back_to_second_option(make_page, make_config) -> None:
    page = make_page(role_options=("Choose", "Undergraduate", "Staff"))

    authenticate(page, make_config())

    assert page.called("select_option") == [("select_option", None, 1)]


def test_role_selector_absent_is_skipped(make_page, make_config, log_lines) -> None:
    page = make_page(role_options=())

    authenticate(page, make_config())

    assert page.called("select_option") == []
    assert "No user type selector on the login page, skipping." in log_lines


def test_single_option_selector_is_left_alone(make_page, make_config) -> None:
    page = make_page(role_options=("Choose",))

    authenticate(page, make_config())

    assert page.called("select_option") == []


@pytest.mark.parametrize("text", ["Login", "LOGIN now", "Sign In", "sign in", "دخول"])
def test_login_button_matches_both_languages(make_page, make_config, text: str) -> None:
    page = make_page(login_text=text)

    authenticate(page, make_config())

    assert page.called("click") == [("click", text)]
    assert page.called("press_enter") == []


def test_missing_login_button_presses_enter(make_page, make_config) -> None:
    page = make_page(login_text="Continue")

    authenticate(page, make_config())

    assert page.called("click") == []
    assert page.called("press_enter") == [("press_enter",)]


def test_missing_identifier_field_is_not_fatal(make_page, make_config, log_lines) -> None:
    page = make_page(has_id_input=False)

    authenticate(page, make_config())

    assert page.called("fill") == []
    assert "No identifier field found, skipping." in log_lines


def test_waits_fixed_delay_before_voting_page(make_page, make_config) -> None:
    from autovote.models import Timing

    page = make_page()
    authenticate(page, make_config(timing=Timing(login_settle_s=1.5)))

    kinds = [c[0] for c in page.calls if c[0] in ("pause", "navigate")]
    assert kinds == ["navigate", "pause", "navigate"]
    assert ("pause", 1.5) in page.calls


def test_unreachable_login_page_raises(make_page, make_config) -> None:
    config = make_config()
    page = make_page(fail_urls=[config.login_url])

    with pytest.raises(NavigationError):
        authenticate(page, config)
