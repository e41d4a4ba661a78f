import logging
from functools import partial
from typing import Optional

import discord
from discord import app_commands

from .context import AppContext
from .embeds import added_track_embed, current_playback_embed, no_playback_embed, queue_embed
from .errors import DelegatifyError
from .gate import Caller
from .permissions import Permission
from .views import DiscordAuthPrompt, DiscordChoicePrompt

logger = logging.getLogger("delegatify")

QUEUE_PREVIEW = 5


# -------------------- HELPERS --------------------
def _app(interaction: discord.Interaction) -> AppContext:
    return interaction.client.app


async def _caller(interaction: discord.Interaction) -> Caller:
    is_admin = await interaction.client.is_owner(interaction.user)
    return Caller(user_id=interaction.user.id, is_admin=is_admin)


async def _send(interaction: discord.Interaction, content: Optional[str] = None, **kwargs):
    if interaction.response.is_done():
        return await interaction.followup.send(content, **kwargs)
    return await interaction.response.send_message(content, **kwargs)


def _owners_only():
    async def predicate(interaction: discord.Interaction) -> bool:
        return await interaction.client.is_owner(interaction.user)
    return app_commands.check(predicate)


async def handle_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
    if isinstance(error, app_commands.CommandInvokeError):
        error = error.original

    name = interaction.command.name if interaction.command else "?"
    if isinstance(error, DelegatifyError):
        logger.info("/%s ended for %s: %s", name, interaction.user.id, type(error).__name__)
        msg = str(error)
    elif isinstance(error, app_commands.CommandOnCooldown):
        msg = f"Slow down! Try again in {error.retry_after:.0f}s."
    elif isinstance(error, app_commands.CheckFailure):
        msg = "Only the bot owner can run this command."
    else:
        logger.exception("/%s failed", name, exc_info=error)
        msg = "Something went wrong while running that command."

    try:
        await _send(interaction, msg, ephemeral=True)
    except discord.HTTPException as e:
        logger.warning("Couldn't report error for /%s: %s", name, e)


async def run_current(interaction: discord.Interaction):
    app = _app(interaction)
    playback = await app.guard.call(lambda s: s.current_playback())
    if playback is None:
        await _send(interaction, "Nothing Playing")
        return
    await _send(interaction, embed=current_playback_embed(playback))


# -------------------- PLAYBACK COMMANDS --------------------
@app_commands.command(name="current", description="Check the current playback")
@app_commands.checks.cooldown(1, 10.0)
async def current_cmd(interaction: discord.Interaction):
    await interaction.response.defer(thinking=True)
    await run_current(interaction)


@app_commands.command(name="queue", description="Check the queue")
@app_commands.checks.cooldown(1, 10.0)
async def queue_cmd(interaction: discord.Interaction):
    await interaction.response.defer(thinking=True)
    app = _app(interaction)

    current = await app.guard.call(lambda s: s.now_playing())
    if current is None:
        await _send(interaction, embed=no_playback_embed())
        return

    upcoming = (await app.guard.call(lambda s: s.queue()))[:QUEUE_PREVIEW]
    if not upcoming:
        await _send(interaction, "Nothings in the queue.")
        return

    await _send(interaction, embed=queue_embed(current, upcoming))


@app_commands.command(name="play", description="Add a song to the queue")
@app_commands.describe(input="Either the URL or search query")
@app_commands.checks.cooldown(1, 60.0)
@app_commands.checks.cooldown(1, 30.0, key=None)
async def play_cmd(interaction: discord.Interaction, input: app_commands.Range[str, 1, 512]):
    await interaction.response.defer(thinking=True)
    app = _app(interaction)
    caller = await _caller(interaction)
    notify = partial(_send, interaction)

    if not await app.gate.allow(caller, Permission.BASIC, notify):
        return

    track_id = await app.resolver.resolve(input, DiscordChoicePrompt(interaction))

    # Freeze or permissions may have changed while the choice prompt was open.
    if not await app.gate.allow(caller, Permission.BASIC, notify):
        return

    await app.guard.call(lambda s: s.add_to_queue(track_id))
    track = await app.guard.call(lambda s: s.track(track_id))

    await _send(interaction, embed=added_track_embed(track, interaction.user))
    logger.info("%s added %s to the queue", interaction.user.id, track.title)


@app_commands.command(name="previous", description="Play the previous track")
@app_commands.checks.cooldown(1, 60.0)
@app_commands.checks.cooldown(1, 30.0, key=None)
async def previous_cmd(interaction: discord.Interaction):
    await interaction.response.defer(thinking=True)
    app = _app(interaction)

    if not await app.gate.allow(await _caller(interaction), Permission.BASIC, partial(_send, interaction)):
        return

    await app.guard.call(lambda s: s.previous_track())
    await run_current(interaction)
    logger.info("%s skipped to the previous song", interaction.user.id)


@app_commands.command(name="next", description="Play the next track")
@app_commands.checks.cooldown(1, 60.0)
@app_commands.checks.cooldown(1, 30.0, key=None)
async def next_cmd(interaction: discord.Interaction):
    await interaction.response.defer(thinking=True)
    app = _app(interaction)

    if not await app.gate.allow(await _caller(interaction), Permission.BASIC, partial(_send, interaction)):
        return

    await app.guard.call(lambda s: s.next_track())
    await run_current(interaction)
    logger.info("%s skipped to the next song", interaction.user.id)


# -------------------- UTILITY COMMANDS --------------------
@app_commands.command(name="freeze", description="Switch the state of freeze")
@_owners_only()
async def freeze_cmd(interaction: discord.Interaction):
    frozen = await _app(interaction).guard.toggle_freeze()
    logger.info("%s %s freeze", interaction.user.id, "enabled" if frozen else "disabled")
    await _send(interaction, "Enabled Freeze" if frozen else "Disabled Freeze")


@app_commands.command(name="add_user", description="Allow a user with specific permissions")
@app_commands.describe(
    user="Person to add",
    level="Permission level to set for user; default to basic (1)",
)
@_owners_only()
async def add_user_cmd(
    interaction: discord.Interaction,
    user: discord.User,
    level: Optional[app_commands.Range[int, 0, 32767]] = None,
):
    store = _app(interaction).permissions
    if not await store.add_user(user.id, level):
        await _send(interaction, "User already added")
        return

    logger.info("%s added user %s (level %s)", interaction.user.id, user.id, Permission.BASIC if level is None else level)
    await _send(interaction, "Successfully added user")


@app_commands.command(name="remove_user", description="Remove a user from the permission list")
@app_commands.describe(user="Person to remove")
@_owners_only()
async def remove_user_cmd(interaction: discord.Interaction, user: discord.User):
    store = _app(interaction).permissions
    if not await store.user_exists(user.id):
        await _send(interaction, "User isn't in database")
        return

    await store.remove_user(user.id)
    logger.info("%s removed user %s", interaction.user.id, user.id)
    await _send(interaction, "Successfully removed user")


@app_commands.command(name="authenticate", description="Authenticates the application with Spotify")
@_owners_only()
async def authenticate_cmd(interaction: discord.Interaction):
    await interaction.response.defer(ephemeral=True, thinking=True)
    flow = _app(interaction).auth_flow()
    state = await flow.run(DiscordAuthPrompt(interaction))
    logger.info("Authentication by %s finished: %s", interaction.user.id, state.value)


COMMANDS = [
    current_cmd,
    queue_cmd,
    play_cmd,
    previous_cmd,
    next_cmd,
    freeze_cmd,
    add_user_cmd,
    remove_user_cmd,
    authenticate_cmd,
]


def register_commands(tree: app_commands.CommandTree) -> None:
    for command in COMMANDS:
        tree.add_command(command)
    tree.error(handle_command_error)
