import logging
from typing import Optional, FrozenSet

import discord
from discord import app_commands

from .commands import register_commands
from .config import Settings, load_settings, setup_logging
from .context import AppContext
from .control import start_control_server
from .permissions import PermissionStore

logger = logging.getLogger("delegatify")

intents = discord.Intents.default()
intents.guilds = True


class DelegatifyClient(discord.Client):
    def __init__(self, app: AppContext):
        super().__init__(intents=intents)
        self.app = app
        self.tree = app_commands.CommandTree(self)
        self._owner_ids: Optional[FrozenSet[int]] = app.settings.owner_ids or None
        self._control_runner = None
        register_commands(self.tree)

    async def setup_hook(self):
        settings = self.app.settings
        self._control_runner = await start_control_server(self.app, self)

        if settings.guild_id:
            guild = discord.Object(id=settings.guild_id)
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("[%s] Synced %s command(s) to guild %s (fast)", settings.instance_name, len(synced), settings.guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("[%s] Synced %s global command(s) (can take time to appear)", settings.instance_name, len(synced))

    async def is_owner(self, user: discord.abc.User) -> bool:
        """OWNER_IDS when configured, otherwise the application owner or its team."""
        if self._owner_ids is None:
            info = await self.application_info()
            if info.team:
                ids = {m.id for m in info.team.members}
            else:
                ids = {info.owner.id}
            self._owner_ids = frozenset(ids)
        return user.id in self._owner_ids

    async def on_ready(self):
        logger.info("[%s] Logged in as %s (ID: %s)", self.app.settings.instance_name, self.user, self.user.id)

    async def close(self):
        if self._control_runner is not None:
            await self._control_runner.cleanup()
            self._control_runner = None
        self.app.permissions.close()
        await super().close()


def main(settings: Optional[Settings] = None):
    settings = settings or load_settings()
    if not settings.discord_token:
        raise RuntimeError("Missing DISCORD_TOKEN in .env")
    if not settings.spotify_client_id or not settings.spotify_redirect_uri:
        raise RuntimeError("Missing SPOTIFY_CLIENT_ID or SPOTIFY_REDIRECT_URI in .env")

    setup_logging(settings.log_path)
    app = AppContext(settings=settings, permissions=PermissionStore(settings.database_path))
    client = DelegatifyClient(app)
    client.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
