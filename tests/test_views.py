import sys
import unittest
from pathlib import Path
from types import SimpleNamespace

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from delegatify.resolution import SearchSession, SearchState
from delegatify.views import (
    AuthCodeModal,
    AuthLinkView,
    CancelButton,
    DiscordAuthPrompt,
    DiscordChoicePrompt,
    SearchChoiceButton,
    SearchChoiceView,
)
from fakes import make_interaction, make_track

REQUESTER = 10
STRANGER = 20


class SearchChoiceViewTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.session = SearchSession([make_track("a", "Alpha"), make_track("b", "Beta")])
        self.view = SearchChoiceView(REQUESTER, self.session, timeout=120)

    async def test_one_button_per_candidate_plus_cancel(self) -> None:
        labels = [item.label for item in self.view.children]
        self.assertEqual(labels, ["Alpha - Artist", "Beta - Artist", "Cancel"])
        self.assertIsInstance(self.view.children[-1], CancelButton)

    async def test_only_requester_passes_check(self) -> None:
        self.assertTrue(await self.view.interaction_check(make_interaction(user_id=REQUESTER)))

        stranger = make_interaction(user_id=STRANGER)
        self.assertFalse(await self.view.interaction_check(stranger))
        self.assertTrue(stranger.response.sent[0][1]["ephemeral"])
        self.assertIs(self.session.state, SearchState.PRESENTED)

    async def test_pressing_a_candidate_resolves(self) -> None:
        button = self.view.children[1]
        self.assertIsInstance(button, SearchChoiceButton)
        await button.callback(make_interaction(user_id=REQUESTER))

        self.assertIs(self.session.state, SearchState.RESOLVED)
        self.assertEqual(self.session.selected, 1)
        self.assertTrue(self.view.is_finished())

    async def test_cancel_button(self) -> None:
        await self.view.children[-1].callback(make_interaction(user_id=REQUESTER))
        self.assertIs(self.session.state, SearchState.CANCELLED)

    async def test_second_press_is_ignored(self) -> None:
        await self.view.children[0].callback(make_interaction(user_id=REQUESTER))
        await self.view.children[-1].callback(make_interaction(user_id=REQUESTER))
        self.assertIs(self.session.state, SearchState.RESOLVED)
        self.assertEqual(self.session.selected, 0)

    async def test_timeout(self) -> None:
        await self.view.on_timeout()
        self.assertIs(self.session.state, SearchState.TIMED_OUT)


class DiscordChoicePromptTests(unittest.IsolatedAsyncioTestCase):
    async def test_unanswered_prompt_times_out(self) -> None:
        interaction = make_interaction(user_id=REQUESTER)
        session = SearchSession([make_track("a")])

        await DiscordChoicePrompt(interaction).choose(session, timeout=0.01)

        self.assertIs(session.state, SearchState.TIMED_OUT)
        content, kwargs = interaction.followup.sent[0]
        self.assertEqual(content, "Choose A Song To Play")
        self.assertIsInstance(kwargs["view"], SearchChoiceView)


class AuthViewTests(unittest.IsolatedAsyncioTestCase):
    async def test_authenticate_button_opens_modal(self) -> None:
        view = AuthLinkView("https://accounts.spotify.com/authorize?x=1", REQUESTER, timeout=120)
        interaction = make_interaction(user_id=REQUESTER)

        await view.authenticate_btn.callback(interaction)

        self.assertIsInstance(view.modal, AuthCodeModal)
        self.assertIs(interaction.response.modals[0], view.modal)
        self.assertTrue(view.is_finished())

    async def test_link_button_carries_url(self) -> None:
        view = AuthLinkView("https://accounts.spotify.com/authorize?x=1", REQUESTER, timeout=120)
        urls = [getattr(item, "url", None) for item in view.children]
        self.assertIn("https://accounts.spotify.com/authorize?x=1", urls)

    async def test_link_click_timeout_returns_none(self) -> None:
        interaction = make_interaction(user_id=REQUESTER)
        trigger = await DiscordAuthPrompt(interaction).await_link_click("https://accounts.spotify.com/authorize", 0.01)
        self.assertIsNone(trigger)
        self.assertTrue(interaction.followup.sent[0][1]["ephemeral"])
        interaction.followup.messages[0].edit.assert_awaited_once_with(view=None)

    async def test_await_code(self) -> None:
        prompt = DiscordAuthPrompt(make_interaction(user_id=REQUESTER))

        async def submitted():
            return False

        async def expired():
            return True

        self.assertEqual(await prompt.await_code(SimpleNamespace(wait=submitted, submitted="code"), 120), "code")
        self.assertIsNone(await prompt.await_code(SimpleNamespace(wait=expired, submitted=None), 120))


if __name__ == "__main__":
    unittest.main()
