"""Tests for the built-in command sets in sathi.commands."""

import inspect

import pytest

from sathi.commands.emergency import DEFAULT_NUMBERS, install_emergency_commands, tel_uri
from sathi.commands.help import describe_commands, install_help_commands
from sathi.commands.navigation import install_navigation_commands, resolve_section
from sathi.events.event_bus import EventBus
from sathi.events.types import ActionType
from sathi.messages import t


async def _say(registry, text: str):
    """Match *text* and run its handler the way the dispatch loop does."""
    result = registry.match(text)
    assert result, f"no command matched {text!r}"
    reply = result.command.handler(*result.groups)
    if inspect.isawaitable(reply):
        reply = await reply
    return reply


@pytest.fixture
async def actions():
    bus = EventBus()
    queue = await bus.subscribe()
    bus.queue = queue
    return bus


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class TestNavigation:

    @pytest.fixture(autouse=True)
    def _install(self, registry, actions):
        install_navigation_commands(registry, actions)

    async def test_navigate_resolves_alias(self, registry, actions):
        reply = await _say(registry, "Navigate to the About page.")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.NAVIGATE
        assert action.target == "contact"
        assert reply == "Navigating to contact."

    async def test_go_to_and_show_me(self, registry, actions):
        await _say(registry, "go to features")
        await _say(registry, "show me resources")
        targets = [actions.queue.get_nowait().target for _ in range(2)]
        assert targets == ["features", "resources"]

    async def test_scroll_direction(self, registry, actions):
        reply = await _say(registry, "please scroll DOWN")
        action = actions.queue.get_nowait()
        assert action.kind == ActionType.SCROLL
        assert action.target == "down"
        assert reply == "Scrolling down."

    async def test_scroll_to_wins_over_direction(self, registry, actions):
        await _say(registry, "scroll to up button")
        action = actions.queue.get_nowait()
        assert action.kind == ActionType.SCROLL_TO
        assert action.target == "up button"

    async def test_click_keeps_casing(self, registry, actions):
        await _say(registry, "click Submit Form")
        assert actions.queue.get_nowait().target == "Submit Form"

    async def test_read_needs_word_boundary(self, registry):
        assert not registry.match("thread safety question")
        assert registry.match("read the headline")

    @pytest.mark.parametrize("text", ["back", "Go back.", "refresh", "refresh the page", "close", "close the dialog"])
    async def test_single_word_commands(self, registry, text):
        assert registry.match(text)

    @pytest.mark.parametrize(
        "text",
        ["how do I get back my money", "is the office close to me", "should I refresh my documents"],
    )
    async def test_single_word_commands_do_not_hijack_questions(self, registry, text):
        assert not registry.match(text)

    @pytest.mark.parametrize("text", ["tap Submit", "press Submit"])
    async def test_tap_and_press_click(self, registry, actions, text):
        reply = await _say(registry, text)
        action = actions.queue.get_nowait()
        assert action.kind == ActionType.CLICK
        assert action.target == "Submit"
        assert reply == "Clicking Submit."

    async def test_speak_reads(self, registry, actions):
        await _say(registry, "speak the main heading")
        action = actions.queue.get_nowait()
        assert action.kind == ActionType.READ
        assert action.target == "the main heading"

    async def test_type_into_field(self, registry, actions):
        reply = await _say(registry, "type Ram Bahadur in name field")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.TYPE
        assert action.target == "name field"
        assert action.data == {"text": "Ram Bahadur"}
        assert reply == "Typed Ram Bahadur in name field."

    async def test_typed_text_may_contain_command_words(self, registry, actions):
        await _say(registry, "type please click here in message box")
        action = actions.queue.get_nowait()
        assert action.kind == ActionType.TYPE
        assert action.data["text"] == "please click here"

    async def test_fill_with(self, registry, actions):
        reply = await _say(registry, "fill in phone number with 9841000000.")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.TYPE
        assert action.target == "phone number"
        assert action.data == {"text": "9841000000"}
        assert reply == "Typed 9841000000 in phone number."

    async def test_search_for(self, registry, actions):
        reply = await _say(registry, "Search for citizenship forms")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.SEARCH
        assert action.data == {"query": "citizenship forms"}
        assert reply == "Searching for citizenship forms."

    def test_command_words_need_word_boundary(self, registry):
        assert not registry.match("the prototype in my hand")
        assert not registry.match("an express bus")

    async def test_back_publishes_action(self, registry, actions):
        await _say(registry, "go back")
        assert actions.queue.get_nowait().kind == ActionType.BACK

    def test_resolve_section(self):
        assert resolve_section(" The Main Section ") == "home"
        assert resolve_section("pricing page") == "pricing"


# ---------------------------------------------------------------------------
# Emergency
# ---------------------------------------------------------------------------


class TestEmergency:

    @pytest.fixture(autouse=True)
    def _install(self, registry, actions):
        install_emergency_commands(registry, actions, numbers={"police": "100", "fire": "101"})

    async def test_call_police_dials(self, registry, actions):
        reply = await _say(registry, "Please call police now!")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.DIAL
        assert action.target == "tel:100"
        assert action.data == {"service": "police", "number": "100"}
        assert reply == "Calling police at 100."

    async def test_call_fire_does_not_dial_police(self, registry, actions):
        await _say(registry, "call fire")
        assert actions.queue.get_nowait().target == "tel:101"
        assert actions.queue.empty()

    async def test_emergency_menu(self, registry, actions):
        reply = await _say(registry, "this is an emergency")

        action = actions.queue.get_nowait()
        assert action.kind == ActionType.SHOW_EMERGENCY_MENU
        assert action.data["numbers"]["police"] == "100"
        assert "call police" in reply

    async def test_specific_call_before_menu(self, registry):
        assert registry.match("emergency call ambulance").pattern == "call ambulance"

    def test_default_numbers_kept(self, registry):
        assert "call disability support" in registry
        assert DEFAULT_NUMBERS["ambulance"]

    def test_tel_uri(self):
        assert tel_uri("+977 976-844 2380") == "tel:+9779768442380"


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


class TestHelp:

    async def test_lists_other_categories(self, registry, actions):
        install_navigation_commands(registry, actions)
        install_help_commands(registry)

        reply = await _say(registry, "help")

        assert reply.startswith("Here is what I can do.")
        assert "Navigation: navigate to a section" in reply
        assert "list available commands" not in reply

    def test_empty_registry(self, registry):
        assert describe_commands(registry) == "Here is what I can do."


# ---------------------------------------------------------------------------
# Accessibility (through the assistant, which owns the settings wiring)
# ---------------------------------------------------------------------------


class TestAccessibility:

    async def test_increase_font(self, assistant):
        outcome = await assistant.handle("increase font size")

        assert assistant.settings_store.settings.font_scale == 1.1
        assert outcome.reply == "Font size set to 110 percent."

    async def test_font_at_limit(self, assistant):
        await assistant.update_settings(font_scale=2.0)
        outcome = await assistant.handle("larger font please")
        assert outcome.reply == "Font size is already at the largest setting."
        assert assistant.settings_store.settings.font_scale == 2.0

    async def test_high_contrast_publishes_settings(self, assistant):
        queue = await assistant.action_bus.subscribe()

        outcome = await assistant.handle("Turn on high contrast")

        assert outcome.reply == "High contrast enabled."
        action = queue.get_nowait()
        assert action.kind == ActionType.APPLY_SETTINGS
        assert action.data["high_contrast"] is True

    async def test_dark_mode_off(self, assistant):
        await assistant.update_settings(dark_mode=True)
        await assistant.handle("disable dark mode")
        assert assistant.settings_store.settings.dark_mode is False

    async def test_change_language(self, assistant):
        outcome = await assistant.handle("change language to Nepali")

        assert assistant.settings_store.settings.language == "ne"
        assert assistant.session.config.language == "ne-NP"
        assert outcome.reply == t("language_changed", "ne", language="नेपाली")

    async def test_unknown_language(self, assistant):
        outcome = await assistant.handle("change language to Klingon")
        assert outcome.reply == t("unknown_language")
        assert assistant.settings_store.settings.language == "en"

    async def test_stop_speaking(self, assistant, synthesizer):
        synthesizer.block = True
        assistant.speech.speak("A very long reply that is still playing.")

        outcome = await assistant.handle("stop speaking")

        assert outcome.reply == "Okay."
        assert synthesizer.cancelled >= 1
        assistant.speech.cancel_all()

    async def test_stop_listening(self, assistant):
        generation = assistant.loop.generation
        outcome = await assistant.handle("stop listening")
        assert outcome.reply == "Stopped listening."
        assert assistant.loop.generation == generation + 1
