from typing import List, Optional

import discord

from . import __version__
from .spotify import PlaybackState, StandardTrackItem, fmt_time

SPOTIFY_ICON = "https://storage.googleapis.com/pr-newsroom-wp/1/2023/05/Spotify_Primary_Logo_RGB_Green.png"

REPEAT_LABELS = {"off": "Off", "track": "Track", "context": "Context"}


def no_playback_embed() -> discord.Embed:
    embed = discord.Embed(
        title="Nothing Playing",
        description="Nothing is currently being played.",
        color=discord.Color.dark_red(),
        timestamp=discord.utils.utcnow(),
    )
    embed.set_footer(text="Delegatify")
    return embed


def current_playback_embed(playback: PlaybackState) -> discord.Embed:
    item = playback.item
    if item is None:
        return no_playback_embed()

    embed = discord.Embed(
        title=item.title,
        url=item.url or None,
        color=discord.Color.dark_green(),
        timestamp=discord.utils.utcnow(),
    )
    embed.set_author(name="Currently Playing...")
    if item.image:
        embed.set_thumbnail(url=item.image)

    embed.add_field(name="Time", value=f"`{fmt_time(playback.progress)} / {fmt_time(item.duration)}`", inline=False)
    embed.add_field(name="Shuffle", value="On" if playback.shuffle else "Off", inline=True)
    embed.add_field(name="Repeat", value=REPEAT_LABELS.get(playback.repeat, playback.repeat.title()), inline=True)
    embed.set_footer(text=f"Playing on {playback.device_name}")
    return embed


def queue_embed(current: StandardTrackItem, upcoming: List[StandardTrackItem]) -> discord.Embed:
    lines = [f"**[{t.name}]({t.url})**\n{', '.join(t.artists)}" for t in upcoming]
    embed = discord.Embed(
        title="Current Queue",
        description="\n\n".join(lines) + "\n**...**",
        color=discord.Color.dark_green(),
        timestamp=discord.utils.utcnow(),
    )
    embed.set_author(name=current.title, url=current.url or None, icon_url=SPOTIFY_ICON)
    if current.image:
        embed.set_thumbnail(url=current.image)
    embed.set_footer(text="Delegatify")
    return embed


def added_track_embed(track: StandardTrackItem, requester: discord.abc.User) -> discord.Embed:
    embed = discord.Embed(
        title=track.title,
        url=track.url or None,
        color=discord.Color.dark_green(),
        timestamp=discord.utils.utcnow(),
    )
    embed.set_author(name="Added Song To Queue")
    if track.image:
        embed.set_thumbnail(url=track.image)
    embed.add_field(name="Length", value=fmt_time(track.duration), inline=False)

    avatar: Optional[str] = None
    if getattr(requester, "display_avatar", None) is not None:
        avatar = requester.display_avatar.url
    embed.set_footer(text=f"Requested by {requester.name}", icon_url=avatar)
    return embed


def authenticate_embed() -> discord.Embed:
    embed = discord.Embed(
        title="Authenticating Delegatify",
        description="In order for the application to work, a spotify account must be connected",
        color=discord.Color.blue(),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(
        name="Open URL Button",
        value="This button opens a link to receive an authentication code. "
        "When you receive the code, click on the Authenticate button.",
        inline=False,
    )
    embed.add_field(
        name="Authenticate Button",
        value="This is the button you click when you have the code. "
        "It will ask you to input the code, and then you are good to go.",
        inline=False,
    )
    embed.set_footer(text=f"Version: {__version__}")
    return embed
