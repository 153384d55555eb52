from __future__ import annotations

from autovote import labels
from autovote.models import RunConfig


def _pick_role(page, log) -> None:
    selects = page.locate(labels.ROLE_SELECT)
    if not selects:
        log("No user type selector on the login page, skipping.")
        return

    select = selects[0]
    texts = [page.read_text(opt) for opt in page.locate(labels.ROLE_OPTION, within=select)]
    for text in texts:
        if labels.matches("subject_role", text):
            log(f"Selecting user type '{text.strip()}'.")
            page.select_option(select, label=text.strip())
            return

    # Positional guess: depends on the site's option order.
    if len(texts) > 1:
        log("No matching user type label, selecting the second option.")
        page.select_option(select, index=1)
    else:
        log("User type selector has nothing to choose from, skipping.")


def authenticate(page, config: RunConfig) -> str:
    """
    Log in with the configured identifier, then land on the voting page.

    Missing controls are skipped, only navigation failures raise.
    Returns the URL reached after the final navigation.
    """
    log = config.logger

    log("Navigating to login page...")
    page.navigate(config.login_url)

    log("Attempting to identify user type selection...")
    _pick_role(page, log)

    inputs = page.locate(labels.IDENTIFIER_INPUT)
    if inputs:
        log("Entering ID...")
        page.fill(inputs[0], config.identifier)
    else:
        log("No identifier field found, skipping.")

    log("Submitting login...")
    buttons = page.locate(labels.ACTION_CONTROL, has_text=labels.label_pattern("login"))
    if buttons:
        page.click(buttons[0])
    else:
        log("No login button found, pressing Enter.")
        page.press_enter()

    log("Waiting for navigation to voting area...")
    page.pause(config.timing.login_settle_s)
    return page.navigate(config.vote_url)
