import asyncio
from typing import Optional

import discord

from .embeds import authenticate_embed
from .resolution import SearchSession


async def _not_for_you(interaction: discord.Interaction) -> None:
    try:
        await interaction.response.send_message("This prompt isn't for you.", ephemeral=True)
    except discord.HTTPException:
        pass


async def _wait_bounded(view: discord.ui.View, timeout: float) -> bool:
    """Wait for the view to finish; True if the time ran out first."""
    try:
        return await asyncio.wait_for(view.wait(), timeout)
    except asyncio.TimeoutError:
        view.stop()
        return True


# -------------------- SEARCH CHOICE --------------------
class SearchChoiceButton(discord.ui.Button):
    def __init__(self, index: int, label: str):
        style = discord.ButtonStyle.primary if index == 0 else discord.ButtonStyle.secondary
        # Button labels are capped at 80 characters
        super().__init__(label=label[:80], style=style, row=min(index, 3))
        self.index = index

    async def callback(self, interaction: discord.Interaction):
        view: SearchChoiceView = self.view
        await interaction.response.defer()
        view.pick(self.index)


class CancelButton(discord.ui.Button):
    def __init__(self, row: int):
        super().__init__(label="Cancel", style=discord.ButtonStyle.danger, row=row)

    async def callback(self, interaction: discord.Interaction):
        view: SearchChoiceView = self.view
        await interaction.response.defer()
        view.pick(None)


class SearchChoiceView(discord.ui.View):
    """One button per candidate plus Cancel; only the requester may press them."""

    def __init__(self, requester_id: int, session: SearchSession, timeout: float):
        super().__init__(timeout=timeout)
        self.requester_id = requester_id
        self.session = session
        for index, song in enumerate(session.candidates):
            self.add_item(SearchChoiceButton(index, song.title))
        self.add_item(CancelButton(row=min(len(session.candidates), 4)))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.requester_id:
            await _not_for_you(interaction)
            return False
        return True

    def pick(self, index: Optional[int]) -> None:
        if self.session.finished:
            return
        if index is None:
            self.session.cancel()
        else:
            self.session.accept(index)
        self.stop()

    async def on_timeout(self) -> None:
        if not self.session.finished:
            self.session.time_out()


class DiscordChoicePrompt:
    """ChoicePrompt backed by a followup message with buttons."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def choose(self, session: SearchSession, timeout: float) -> None:
        view = SearchChoiceView(self.interaction.user.id, session, timeout)
        message = await self.interaction.followup.send("Choose A Song To Play", view=view, wait=True)
        await _wait_bounded(view, timeout)
        if not session.finished:
            session.time_out()
        try:
            await message.edit(view=None)
        except discord.HTTPException:
            pass


# -------------------- AUTHENTICATION --------------------
class AuthCodeModal(discord.ui.Modal, title="Spotify Authentication"):
    code = discord.ui.TextInput(
        label="Paste the code that you received here",
        style=discord.TextStyle.paragraph,
        min_length=64,
        max_length=512,
        required=True,
    )

    def __init__(self, timeout: float):
        super().__init__(timeout=timeout)
        self.submitted: Optional[str] = None

    async def on_submit(self, interaction: discord.Interaction):
        self.submitted = str(self.code.value).strip()
        await interaction.response.send_message("Code received, authenticating...", ephemeral=True)
        self.stop()


class AuthLinkView(discord.ui.View):
    def __init__(self, url: str, requester_id: int, timeout: float):
        super().__init__(timeout=timeout)
        self.requester_id = requester_id
        self.code_timeout = timeout
        self.modal: Optional[AuthCodeModal] = None
        self.add_item(discord.ui.Button(label="Open URL", style=discord.ButtonStyle.link, url=url))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.requester_id:
            await _not_for_you(interaction)
            return False
        return True

    @discord.ui.button(label="Authenticate", style=discord.ButtonStyle.success)
    async def authenticate_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        if self.modal is not None:
            await interaction.response.send_message("A code prompt is already open.", ephemeral=True)
            return
        # The modal is created here because it must answer this very interaction.
        self.modal = AuthCodeModal(timeout=self.code_timeout)
        await interaction.response.send_modal(self.modal)
        self.stop()


class DiscordAuthPrompt:
    """AuthPrompt backed by an ephemeral message, a link button and a code modal."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    async def await_link_click(self, url: str, timeout: float) -> Optional[AuthCodeModal]:
        view = AuthLinkView(url, self.interaction.user.id, timeout)
        message = await self.interaction.followup.send(embed=authenticate_embed(), view=view, ephemeral=True, wait=True)
        await _wait_bounded(view, timeout)
        if view.modal is None:
            try:
                await message.edit(view=None)
            except discord.HTTPException:
                pass
        return view.modal

    async def await_code(self, trigger: AuthCodeModal, timeout: float) -> Optional[str]:
        try:
            timed_out = await asyncio.wait_for(trigger.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        if timed_out:
            return None
        return trigger.submitted

    async def report(self, message: str) -> None:
        await self.interaction.followup.send(message, ephemeral=True)
