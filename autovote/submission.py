from __future__ import annotations

from enum import Enum
from urllib.parse import urlparse

from autovote import labels
from autovote.models import RunConfig, RunState
from autovote.page_session import NavigationError


class Outcome(str, Enum):
    ON_SURFACE = "on_surface"    # still on the voting page after saving
    RECOVERED = "recovered"      # redirected, one re-navigation brought us back
    FINISHED = "finished"        # could not get back; treated as done


def on_voting_surface(url: str, vote_path: str) -> bool:
    return vote_path in urlparse(url or "").path


def _find_save_control(page):
    controls = page.locate(labels.ACTION_CONTROL, has_text=labels.label_pattern("save"))
    if controls:
        return controls[0]
    fallback = page.locate(labels.SAVE_FALLBACK)
    if fallback:
        return fallback[0]
    return None


def submit_and_verify(page, config: RunConfig, state: RunState) -> Outcome:
    """
    Save the current choices and check we are still on the voting page.

    A save click does not always navigate, so a missing navigation is not an
    error. If the page left the voting surface, one re-navigation is tried.
    """
    log = config.logger
    timing = config.timing

    log("Saving choices...")
    control = _find_save_control(page)
    if control is None:
        log("No save control found, nothing submitted.")
    elif not page.click_expecting_navigation(control, timing.navigation_timeout_ms):
        log("Save did not trigger a navigation.")

    page.pause(timing.submit_settle_s)
    state.last_known_url = page.current_url()
    if on_voting_surface(state.last_known_url, config.vote_path):
        return Outcome.ON_SURFACE

    log("Redirect detected. Returning to voting page...")
    try:
        state.last_known_url = page.navigate(config.vote_url)
    except NavigationError as e:
        log(f"Re-navigation failed: {e}")
        state.last_known_url = page.current_url()
        return Outcome.FINISHED

    if on_voting_surface(state.last_known_url, config.vote_path):
        return Outcome.RECOVERED

    log("Could not return to voting page. Process might be complete.")
    return Outcome.FINISHED
