"""Radio question discovery and the choice policy applied to each group."""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from autovote import labels
from autovote.models import QuestionGroup


def discover_groups(page) -> List[QuestionGroup]:
    """
    Scan the current page for radio groups.

    Radios are grouped by their `name` attribute; unnamed radios are ignored.
    Counts are read now and are only valid for the current iteration.
    Order of the result carries no meaning.
    """
    names = []
    seen = set()
    for radio in page.locate(labels.RADIO):
        name = page.read_attribute(radio, "name")
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)

    return [
        QuestionGroup(name=name, option_count=len(page.locate(labels.radio_group_selector(name))))
        for name in names
    ]


def select_position(option_count: int, choice_index: int) -> Optional[int]:
    """Preferred position if it exists, else the last one, else nothing."""
    if choice_index < option_count:
        return choice_index
    if option_count > 0:
        return option_count - 1
    return None


def apply_choices(
    page,
    groups: Iterable[QuestionGroup],
    choice_index: int,
    log: Callable[[str], None],
) -> int:
    """Check one option in every group. Returns how many groups got a selection."""
    selected = 0
    for group in groups:
        position = select_position(group.option_count, choice_index)
        if position is None:
            continue
        options = page.locate(labels.radio_group_selector(group.name))
        if position >= len(options):
            # The page changed under us since discovery; pick within what is there now.
            position = select_position(len(options), choice_index)
            if position is None:
                log(f"Group '{group.name}' has no options anymore, skipping.")
                continue
        if position != choice_index:
            log(f"Group '{group.name}' has {group.option_count} options, falling back to position {position}.")
        page.check(options[position])
        selected += 1
    return selected
