"""
Turning /play input into a Spotify track id.

Links are parsed locally. Anything else is searched, and the requester picks
one of the candidates from a short-lived prompt:

    PRESENTED -> RESOLVED(i) | CANCELLED | TIMED_OUT

The prompt is abstract (ChoicePrompt) so the Discord view is only one
implementation of "show choices, wait for the requester, give up after N
seconds".
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, List, Sequence, Protocol

from .errors import MalformedLink, NoResults, Cancelled, NoInteraction
from .session import SessionGuard
from .spotify import StandardTrackItem, SPOTIFY_ID_RE

logger = logging.getLogger("delegatify")

SEARCH_LIMIT = 5
MAX_CHOICES = 3


class SearchState(enum.Enum):
    PRESENTED = "presented"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass
class SearchSession:
    candidates: List[StandardTrackItem]
    selected: Optional[int] = None
    state: SearchState = SearchState.PRESENTED

    def _finish(self, state: SearchState) -> None:
        if self.state is not SearchState.PRESENTED:
            raise RuntimeError(f"search already finished as {self.state.value}")
        self.state = state

    def accept(self, index: int) -> None:
        if not 0 <= index < len(self.candidates):
            raise IndexError(f"choice {index} out of range")
        self._finish(SearchState.RESOLVED)
        self.selected = index

    def cancel(self) -> None:
        self._finish(SearchState.CANCELLED)

    def time_out(self) -> None:
        self._finish(SearchState.TIMED_OUT)

    @property
    def finished(self) -> bool:
        return self.state is not SearchState.PRESENTED


class ChoicePrompt(Protocol):
    async def choose(self, session: SearchSession, timeout: float) -> None:
        """
        Show session.candidates (plus a cancel option) to the requester and
        drive the session to a terminal state before returning. Input from
        anyone but the requester is ignored.
        """


def looks_like_track_link(text: str) -> bool:
    text = text.strip()
    return text.startswith("https") and "spotify" in text and "track" in text


def parse_track_link(url: str) -> str:
    track_id = url.strip().split("/")[-1].split("?")[0]
    if not SPOTIFY_ID_RE.fullmatch(track_id):
        raise MalformedLink(f"Couldn't read a track id from that link: `{url}`")
    return track_id


def dedupe_by_title(items: Sequence[StandardTrackItem]) -> List[StandardTrackItem]:
    seen = set()
    out = []
    for item in items:
        if item.title in seen:
            continue
        seen.add(item.title)
        out.append(item)
    return out


class TrackResolver:
    def __init__(
        self,
        guard: SessionGuard,
        timeout: float = 120.0,
        search_limit: int = SEARCH_LIMIT,
        max_choices: int = MAX_CHOICES,
    ):
        self.guard = guard
        self.timeout = timeout
        self.search_limit = search_limit
        self.max_choices = max_choices

    async def resolve(self, text: str, prompt: ChoicePrompt) -> str:
        if looks_like_track_link(text):
            return parse_track_link(text)
        return await self.resolve_search(text, prompt)

    async def resolve_search(self, query: str, prompt: ChoicePrompt) -> str:
        # Lock is held for the search only; the prompt below runs without it.
        results = await self.guard.call(lambda s: s.search_tracks(query, limit=self.search_limit))

        candidates = dedupe_by_title(results)[: self.max_choices]
        if not candidates:
            raise NoResults()

        session = SearchSession(candidates)
        await prompt.choose(session, self.timeout)

        if not session.finished:
            session.time_out()

        if session.state is SearchState.CANCELLED:
            raise Cancelled()
        if session.state is SearchState.TIMED_OUT:
            raise NoInteraction()

        chosen = session.candidates[session.selected]
        track_id = chosen.track_id()
        if track_id is None:
            raise NoResults(f"**{chosen.title}** can't be added to the queue.")
        logger.info("Search %r resolved to %s", query, chosen.title)
        return track_id
