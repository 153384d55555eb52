"""Scripted stand-in for a Playwright page session, so tests need no browser."""

import time

import pytest

from autovote import labels
from autovote.models import RunConfig, Timing
from autovote.page_session import NavigationError

LOGIN_URL = "https://vote.example.edu/portal/login.aspx"
VOTE_URL = "https://vote.example.edu/portal/voting_data.aspx"
HOME_URL = "https://vote.example.edu/portal/home.aspx"


class FakeElement:
    def __init__(self, kind, text="", **attrs):
        self.kind = kind
        self.text = text
        self.attrs = attrs

    def __repr__(self):
        return f"FakeElement({self.kind!r}, {self.text!r}, {self.attrs!r})"


class FakePage:
    """
    Simulated target site.

    `screens` lists the question groups served by the voting page, one entry
    per visit; each entry is a list of option counts. After the last entry
    the voting page is empty. A save click moves to the next screen.
    """

    def __init__(
        self,
        screens=(),
        role_options=("اختر", "طالب/طالبة", "عضو هيئة تدريس"),
        has_id_input=True,
        login_text="دخول",
        save_text="حفظ",
        fallback_save=False,
        navigates_on_save=True,
        redirect_after_save=None,
        renav_target=None,
        fail_urls=(),
        yield_on_pause=False,
    ):
        self.screens = [list(s) for s in screens]
        self.role_options = list(role_options)
        self.has_id_input = has_id_input
        self.login_text = login_text
        self.save_text = save_text
        self.fallback_save = fallback_save
        self.navigates_on_save = navigates_on_save
        self.redirect_after_save = redirect_after_save
        self.renav_target = renav_target
        self.fail_urls = set(fail_urls)
        self.yield_on_pause = yield_on_pause

        self.url = "about:blank"
        self.screen = 0
        self.calls = []
        self.closed = 0
        self._radios = []
        self._vote_visits = 0

    # ---- page model ----

    def _build_radios(self):
        self._radios = []
        groups = self.screens[self.screen] if self.screen < len(self.screens) else []
        for g, count in enumerate(groups):
            for _ in range(count):
                self._radios.append(FakeElement("radio", name=f"q{g}"))

    def _on_login(self):
        return self.url == LOGIN_URL

    def _on_vote(self):
        return self.url == VOTE_URL

    # ---- primitives ----

    def navigate(self, url):
        self.calls.append(("navigate", url))
        if url in self.fail_urls:
            raise NavigationError(f"Could not load {url}: net::ERR_NAME_NOT_RESOLVED")
        if url == VOTE_URL and self._vote_visits > 0 and self.renav_target is not None:
            url = self.renav_target
        if url == VOTE_URL:
            self._vote_visits += 1
        self.url = url
        self._build_radios()
        return self.url

    def current_url(self):
        return self.url

    def locate(self, selector, has_text=None, within=None):
        self.calls.append(("locate", selector))
        found = []
        if selector == labels.RADIO and self._on_vote():
            found = list(self._radios)
        elif selector.startswith(labels.RADIO + "[name=") and self._on_vote():
            name = selector.split('"')[-2]
            found = [r for r in self._radios if r.attrs["name"] == name]
        elif selector == labels.ROLE_SELECT and self._on_login() and self.role_options:
            found = [FakeElement("select")]
        elif selector == labels.ROLE_OPTION and within is not None and within.kind == "select":
            found = [FakeElement("option", t) for t in self.role_options]
        elif selector == labels.IDENTIFIER_INPUT and self._on_login() and self.has_id_input:
            found = [FakeElement("input")]
        elif selector == labels.ACTION_CONTROL:
            if self._on_login() and self.login_text:
                found = [FakeElement("button", self.login_text)]
            elif self._on_vote() and self.save_text:
                found = [FakeElement("button", self.save_text)]
        elif selector == labels.SAVE_FALLBACK and self._on_vote() and self.fallback_save:
            found = [FakeElement("button", "", id="btnSave")]
        if has_text is not None:
            found = [el for el in found if has_text.search(el.text)]
        return found

    def read_text(self, handle):
        return handle.text

    def read_attribute(self, handle, name):
        return handle.attrs.get(name)

    def fill(self, handle, text):
        self.calls.append(("fill", text))

    def select_option(self, handle, label=None, index=None):
        self.calls.append(("select_option", label, index))

    def check(self, handle):
        name = handle.attrs["name"]
        group = [r for r in self._radios if r.attrs["name"] == name]
        self.calls.append(("check", name, group.index(handle)))

    def click(self, handle):
        self.calls.append(("click", handle.text))

    def click_expecting_navigation(self, handle, timeout_ms):
        self.calls.append(("click", handle.text or handle.attrs.get("id")))
        if self._on_vote():
            self.screen += 1
            if self.redirect_after_save:
                self.url = self.redirect_after_save
            self._build_radios()
        return self.navigates_on_save

    def press_enter(self):
        self.calls.append(("press_enter",))

    def pause(self, seconds):
        self.calls.append(("pause", seconds))
        if self.yield_on_pause:
            time.sleep(0.001)

    def close(self):
        self.closed += 1

    # ---- helpers for assertions ----

    def checks(self):
        return [c[1:] for c in self.calls if c[0] == "check"]

    def called(self, kind):
        return [c for c in self.calls if c[0] == kind]


@pytest.fixture
def make_page():
    return FakePage


@pytest.fixture
def log_lines():
    return []


@pytest.fixture
def make_config(log_lines):
    def _make(**overrides):
        values = dict(
            identifier="12345678901234",
            choice_index=1,
            login_url=LOGIN_URL,
            vote_url=VOTE_URL,
            max_iterations=5,
            logger=log_lines.append,
            timing=Timing(login_settle_s=0, submit_settle_s=0, navigation_timeout_ms=100),
        )
        values.update(overrides)
        return RunConfig(**values)

    return _make
