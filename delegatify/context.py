import time
from dataclasses import dataclass, field
from typing import Optional

from .auth import AuthFlow
from .config import Settings
from .gate import PlaybackGate
from .permissions import PermissionStore
from .resolution import TrackResolver
from .session import SessionGuard
from .spotify import build_auth_manager


@dataclass
class AppContext:
    """Shared state handed to every command through the client."""

    settings: Settings
    permissions: PermissionStore
    guard: SessionGuard = field(default_factory=SessionGuard)
    gate: Optional[PlaybackGate] = None
    resolver: Optional[TrackResolver] = None
    started_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.gate is None:
            self.gate = PlaybackGate(self.guard, self.permissions)
        if self.resolver is None:
            self.resolver = TrackResolver(self.guard, timeout=self.settings.interaction_timeout)

    def auth_flow(self) -> AuthFlow:
        return AuthFlow(
            self.guard,
            auth_factory=lambda: build_auth_manager(self.settings),
            timeout=self.settings.interaction_timeout,
        )
