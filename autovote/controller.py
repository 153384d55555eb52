from __future__ import annotations

from typing import Callable, Optional

from autovote.auth import authenticate
from autovote.models import SAFETY_CEILING, Phase, RunConfig, RunState
from autovote.page_session import PageSession
from autovote.questions import apply_choices, discover_groups
from autovote.submission import Outcome, submit_and_verify


class VoteController:
    """
    State machine for one run: authenticate once, then vote until done.

    Authenticating -> Voting -> Completed | Failed

    The page session handed in is released exactly once when the run ends,
    whichever terminal state it reaches.
    """

    def __init__(self, config: RunConfig, page):
        self.config = config
        self.page = page
        self.state = RunState()

    def _log(self, message: str) -> None:
        self.config.logger(message)

    def _limit(self) -> int:
        return min(self.config.max_iterations, SAFETY_CEILING)

    def run(self) -> RunState:
        cfg = self.config
        self._log(f"Starting automation for [{cfg.identifier}]")
        self._log(f"Login URL: {cfg.login_url}")
        self._log(f"Voting URL: {cfg.vote_url}")
        self._log(f"Choice Index: {cfg.choice_index} | Max Iterations: {cfg.max_iterations}")

        try:
            # Login happens exactly once; every later step assumes an authenticated session.
            self.state.last_known_url = authenticate(self.page, cfg)
            self.state.phase = Phase.VOTING
            while not self.state.finished:
                self._vote_round()
            self._log("Automation task finished.")
        except Exception as e:
            # Anything that escapes the steps is an adapter-level failure (target
            # unreachable, browser gone). Record it, then let the caller see it.
            self.state.phase = Phase.FAILED
            self.state.error = str(e)
            self._log(f"Error: {e}")
            raise
        finally:
            # Runs on both terminal paths, so the browser is released exactly once.
            self._log("Closing browser session...")
            self.page.close()

        return self.state

    def _vote_round(self) -> None:
        state = self.state
        self._log(f"--- Iteration {state.iteration} of {self._limit()} ---")

        # Counts are re-read every round: the target rebuilds the page after each save.
        groups = discover_groups(self.page)
        if not groups:
            self._log("No voting elements found. Process might be finished.")
            state.phase = Phase.COMPLETED
            return

        self._log(f"Processing {len(groups)} items...")
        state.groups_processed += apply_choices(self.page, groups, self.config.choice_index, self._log)

        outcome = submit_and_verify(self.page, self.config, state)
        state.rounds += 1
        # Could not get back to the voting page: assume the target has nothing left for us.
        if outcome is Outcome.FINISHED:
            state.phase = Phase.COMPLETED
            return

        state.iteration += 1
        # Both bounds are checked; the safety ceiling wins over any configured value.
        if state.iteration > self.config.max_iterations:
            self._log("Reached the configured number of iterations.")
            state.phase = Phase.COMPLETED
        elif state.iteration > SAFETY_CEILING:
            self._log(f"Safety ceiling of {SAFETY_CEILING} iterations reached. Stopping.")
            state.phase = Phase.COMPLETED


def run_vote(config: RunConfig, open_session: Optional[Callable[[], object]] = None) -> None:
    """
    Run one vote automation end to end.

    Outcomes are reported through `config.logger` only. Raises when the target
    or the browser is unreachable.
    """
    opener = open_session or PageSession.launch
    try:
        page = opener()
    except Exception as e:
        config.logger(f"Error: {e}")
        raise
    VoteController(config, page).run()
