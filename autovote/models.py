from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlparse

from rich.console import Console

# Absolute upper bound on voting rounds, whatever the caller asks for.
SAFETY_CEILING = 50

_console = Console()


def console_logger(message: str) -> None:
    _console.print(message, markup=False, highlight=False)


@dataclass(frozen=True)
class Timing:
    """Fixed delays and bounds used by one run."""
    login_settle_s: float = 2.0      # pause after triggering login
    submit_settle_s: float = 2.0     # pause after a save click
    navigation_timeout_ms: int = 30_000


def check_url(label: str, value: str) -> None:
    parts = urlparse(value or "")
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"{label} must be an absolute http(s) URL, got {value!r}")


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable input to one automation run.

    Why this exists:
    - Every step of the run reads from the same validated values.
    - Bad input fails here, before a browser is ever launched.
    """
    identifier: str
    choice_index: int
    login_url: str
    vote_url: str
    max_iterations: int = 1
    logger: Callable[[str], None] = console_logger
    timing: Timing = field(default_factory=Timing)

    def __post_init__(self) -> None:
        if not self.identifier or not self.identifier.strip():
            raise ValueError("identifier must not be empty")
        if self.choice_index < 0:
            raise ValueError(f"choice_index must be >= 0, got {self.choice_index}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        check_url("login_url", self.login_url)
        check_url("vote_url", self.vote_url)

    @property
    def vote_path(self) -> str:
        return urlparse(self.vote_url).path


@dataclass(frozen=True)
class QuestionGroup:
    """One set of mutually exclusive radio options sharing a `name`."""
    name: str
    option_count: int


class Phase(str, Enum):
    AUTHENTICATING = "authenticating"
    VOTING = "voting"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RunState:
    """Lifecycle of one run. Owned by a single VoteController, never shared."""
    phase: Phase = Phase.AUTHENTICATING
    iteration: int = 1
    last_known_url: str = ""
    rounds: int = 0
    groups_processed: int = 0
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.phase in (Phase.COMPLETED, Phase.FAILED)
