"""
Tests for swipe_unlock.navigator (SwipeNavigator).

Covers the full interaction surface: open/close/toggle, bounded move,
translation toggle, display label, copy, the navigation guard, and the
transcript-change policy.
"""

import pytest
from conftest import SINGLE_SWIPE, THREE_SWIPES, TWO_SWIPES, USER_MSG, make_records

from swipe_unlock.exceptions import NotOpen
from swipe_unlock.navigator import SwipeNavigator
from swipe_unlock.registry import SessionPolicy
from swipe_unlock.store import MessageRecord
from swipe_unlock.translation import MappingTranslationStore, TranslationLookup
from swipe_unlock.view import MemoryView

# ========================================================================
# Walkthrough
# ========================================================================


class TestThreeSwipeScenario:
    async def test_walkthrough(self, navigator, transcript, view):
        record = transcript.get(THREE_SWIPES)

        session = navigator.open(THREE_SWIPES)
        assert session.original_index == 0
        assert navigator.current_display_label(THREE_SWIPES).is_original

        assert navigator.move(THREE_SWIPES, +1) == 1
        await navigator.drain()
        label = navigator.current_display_label(THREE_SWIPES)
        assert record.active_index == 1
        assert view.content[THREE_SWIPES] == "B"
        assert label.text == "2/3"
        assert not label.is_original

        assert navigator.move(THREE_SWIPES, +1) == 2
        await navigator.drain()
        assert view.content[THREE_SWIPES] == "C"
        assert navigator.current_display_label(THREE_SWIPES).text == "3/3"

        assert navigator.move(THREE_SWIPES, +1) is None
        assert record.active_index == 2

        assert navigator.close(THREE_SWIPES) == 0
        await navigator.drain()
        assert record.active_index == 0
        assert view.content[THREE_SWIPES] == "A"
        assert not navigator.is_open(THREE_SWIPES)


# ========================================================================
# Movement
# ========================================================================


class TestMove:
    def test_move_without_session_is_noop(self, navigator, transcript, view):
        assert navigator.move(THREE_SWIPES, +1) is None
        assert transcript.get(THREE_SWIPES).active_index == 0
        assert view.content == {}

    async def test_move_below_zero_is_idempotent(self, navigator, transcript, view):
        navigator.open(THREE_SWIPES)
        for _ in range(3):
            assert navigator.move(THREE_SWIPES, -1) is None
        assert navigator.reconciler.pending == 0
        assert navigator.reconciler.latest_sequence(THREE_SWIPES) == 0
        assert transcript.get(THREE_SWIPES).active_index == 0
        assert THREE_SWIPES not in view.content

    async def test_index_stays_in_bounds(self, navigator, transcript):
        navigator.open(THREE_SWIPES)
        record = transcript.get(THREE_SWIPES)
        for direction in (1, 1, 1, 1, -1, -1, -1, -1, -1, 1):
            navigator.move(THREE_SWIPES, direction)
            assert 0 <= record.active_index < len(record.alternatives)
        await navigator.drain()
        assert record.active_index == 1

    def test_invalid_direction(self, navigator):
        navigator.open(THREE_SWIPES)
        with pytest.raises(ValueError):
            navigator.move(THREE_SWIPES, 2)

    def test_move_without_running_loop_renders_synchronously(self, navigator, view):
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        assert view.content[THREE_SWIPES] == "B"

    async def test_close_restores_after_many_moves(self, navigator, transcript):
        navigator.open(TWO_SWIPES)
        for direction in (-1, 1, -1, -1, 1, -1):
            navigator.move(TWO_SWIPES, direction)
        navigator.close(TWO_SWIPES)
        await navigator.drain()
        assert transcript.get(TWO_SWIPES).active_index == 1

    async def test_sessions_are_independent(self, navigator, transcript):
        navigator.open(THREE_SWIPES)
        navigator.open(TWO_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        navigator.move(TWO_SWIPES, -1)
        navigator.close(THREE_SWIPES)
        await navigator.drain()

        assert transcript.get(THREE_SWIPES).active_index == 0
        assert transcript.get(TWO_SWIPES).active_index == 0
        assert navigator.is_open(TWO_SWIPES)


# ========================================================================
# Display label
# ========================================================================


class TestDisplayLabel:
    def test_original_tracks_snapshot(self, navigator):
        navigator.open(TWO_SWIPES)
        label = navigator.current_display_label(TWO_SWIPES)
        assert label.text == "2/2"
        assert label.is_original
        assert label.can_move_back
        assert not label.can_move_forward

        navigator.move(TWO_SWIPES, -1)
        label = navigator.current_display_label(TWO_SWIPES)
        assert label.text == "1/2"
        assert not label.is_original
        assert not label.can_move_back
        assert label.can_move_forward

    def test_label_requires_session(self, navigator):
        with pytest.raises(NotOpen):
            navigator.current_display_label(THREE_SWIPES)

    def test_view_receives_lock_state(self, navigator, view):
        navigator.open(THREE_SWIPES)
        assert view.unlocked[THREE_SWIPES].text == "1/3"
        assert view.toggle_title(THREE_SWIPES) == "Lock swipe navigation"

        navigator.move(THREE_SWIPES, +1)
        assert view.unlocked[THREE_SWIPES].text == "2/3"

        navigator.close(THREE_SWIPES)
        assert THREE_SWIPES not in view.unlocked
        assert view.toggle_title(THREE_SWIPES) == "Unlock swipe navigation"


# ========================================================================
# Toggle
# ========================================================================


class TestToggle:
    def test_toggle_opens_and_closes(self, navigator):
        assert navigator.toggle(THREE_SWIPES) is True
        assert navigator.toggle(THREE_SWIPES) is False
        assert not navigator.is_open(THREE_SWIPES)

    def test_rejection_becomes_notice(self, navigator, view):
        assert navigator.toggle(SINGLE_SWIPE) is False
        assert view.notices[-1].level == "info"
        assert "no additional swipes" in view.notices[-1].text

        assert navigator.toggle(USER_MSG) is False
        assert "no alternative content" in view.notices[-1].text

    def test_conflict_is_warning(self, single_navigator, view):
        single_navigator.toggle(THREE_SWIPES)
        assert single_navigator.toggle(TWO_SWIPES) is False
        assert view.notices[-1].level == "warning"
        assert f"Message #{THREE_SWIPES} is currently unlocked" in view.notices[-1].text
        assert single_navigator.open_ids() == [THREE_SWIPES]

    def test_rejection_does_not_block_other_messages(self, navigator):
        navigator.toggle(SINGLE_SWIPE)
        assert navigator.toggle(TWO_SWIPES) is True

    def test_close_with_failing_view_still_locks(self, transcript, caplog):
        class DetachedView(MemoryView):
            def set_content(self, message_id, markup):
                raise RuntimeError("view detached")

        view = DetachedView(visible=list(range(len(transcript))))
        navigator = SwipeNavigator(transcript, view)
        navigator.open(THREE_SWIPES)

        assert navigator.close(THREE_SWIPES) == 0
        assert not navigator.is_open(THREE_SWIPES)
        assert THREE_SWIPES not in view.unlocked
        assert "Render task failed" in caplog.text


# ========================================================================
# Translation
# ========================================================================


class TestTranslation:
    async def test_enable_translation_redraws(self, navigator, view):
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        assert navigator.set_translation(THREE_SWIPES, True) is True
        await navigator.drain()
        assert view.content[THREE_SWIPES] == "B (translated)"

    async def test_translation_survives_moves_with_fallback(self, navigator, view):
        navigator.open(THREE_SWIPES)
        navigator.set_translation(THREE_SWIPES, True)
        navigator.move(THREE_SWIPES, +1)
        await navigator.drain()
        assert view.content[THREE_SWIPES] == "B (translated)"

        navigator.move(THREE_SWIPES, +1)
        await navigator.drain()
        assert view.content[THREE_SWIPES] == "C"

    async def test_unchanged_flag_is_noop(self, navigator):
        navigator.open(THREE_SWIPES)
        assert navigator.set_translation(THREE_SWIPES, False) is False
        assert navigator.reconciler.pending == 0

    def test_without_session(self, navigator):
        assert navigator.set_translation(THREE_SWIPES, True) is False

    async def test_close_renders_untranslated(self, navigator, view, transcript):
        navigator.open(TWO_SWIPES)
        navigator.move(TWO_SWIPES, -1)
        navigator.set_translation(TWO_SWIPES, True)
        await navigator.drain()
        assert view.content[TWO_SWIPES] == "premier"

        navigator.close(TWO_SWIPES)
        await navigator.drain()
        assert view.content[TWO_SWIPES] == "second"


# ========================================================================
# Copy
# ========================================================================


class TestCopy:
    async def test_copy_raw(self, navigator):
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        assert await navigator.copy_active_text(THREE_SWIPES) == "B"

    async def test_copy_translated(self, navigator):
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        navigator.set_translation(THREE_SWIPES, True)
        assert await navigator.copy_active_text(THREE_SWIPES) == "B (translated)"

    async def test_copy_falls_back_without_translation_entry(self, navigator):
        navigator.open(THREE_SWIPES)
        navigator.set_translation(THREE_SWIPES, True)
        assert await navigator.copy_active_text(THREE_SWIPES) == "A"

    async def test_copy_strips_markup(self, transcript, view):
        transcript.append(
            MessageRecord(alternatives=["**bold** text\nnext", "plain"], name="Bot", text="")
        )
        message_id = len(transcript) - 1
        navigator = SwipeNavigator(transcript, view)
        navigator.open(message_id)
        assert await navigator.copy_active_text(message_id) == "bold text\nnext"

    async def test_copy_keeps_angle_brackets_and_entities(self, transcript, view):
        text = "Hello <USER>, meet <BOT> &amp; <i>friends</i>"
        transcript.append(MessageRecord(alternatives=[text, "plain"], name="Bot", text=""))
        message_id = len(transcript) - 1
        navigator = SwipeNavigator(transcript, view)
        navigator.open(message_id)
        assert await navigator.copy_active_text(message_id) == text

    async def test_copy_does_not_mutate(self, navigator, transcript):
        navigator.open(THREE_SWIPES)
        navigator.set_translation(THREE_SWIPES, True)
        session = navigator.registry.get(THREE_SWIPES)
        before = (session.original_index, session.translation_enabled)
        await navigator.copy_active_text(THREE_SWIPES)
        await navigator.drain()
        assert (session.original_index, session.translation_enabled) == before
        assert navigator.registry.get(THREE_SWIPES) is session
        assert transcript.get(THREE_SWIPES).active_index == 0

    async def test_copy_requires_session(self, navigator):
        with pytest.raises(NotOpen):
            await navigator.copy_active_text(THREE_SWIPES)

    async def test_copy_with_placeholders(self, transcript, view):
        transcript.append(
            MessageRecord(alternatives=["Hi {{user}}", "Bye {{user}}"], name="Bot", text="")
        )
        message_id = len(transcript) - 1
        lookup = TranslationLookup(
            transcript, MappingTranslationStore({"Bye Ann": "Au revoir Ann"}), user_name="Ann"
        )
        navigator = SwipeNavigator(transcript, view, translations=lookup)
        navigator.open(message_id)
        navigator.move(message_id, +1)
        navigator.set_translation(message_id, True)
        assert await navigator.copy_active_text(message_id) == "Au revoir Ann"


# ========================================================================
# Host integration
# ========================================================================


class TestGuard:
    def test_guard_allows_when_nothing_open(self, navigator, view):
        assert navigator.guard_navigation("swipe") is None
        assert view.notices == []

    def test_guard_blocks_while_open(self, navigator, view):
        navigator.open(THREE_SWIPES)
        warning = navigator.guard_navigation("generate")
        assert warning == f"Please lock message #{THREE_SWIPES} before generating a new response."
        assert view.notices[-1].level == "warning"

    def test_guard_lists_every_open_message(self, navigator):
        navigator.open(THREE_SWIPES)
        navigator.open(TWO_SWIPES)
        warning = navigator.guard_navigation("send")
        assert f"#{THREE_SWIPES}, #{TWO_SWIPES}" in warning
        assert warning.endswith("before sending a new message.")


class TestTranscriptChanges:
    async def test_sessions_persist_by_default(self, navigator, transcript):
        navigator.attach_scanner(delay=0)
        navigator.open(THREE_SWIPES)
        transcript.append(MessageRecord(alternatives=["new"], name="Bot", text="new"))
        await navigator.drain()
        assert navigator.is_open(THREE_SWIPES)

    async def test_auto_close_policy(self, transcript, view, lookup):
        navigator = SwipeNavigator(
            transcript,
            view,
            translations=lookup,
            policy=SessionPolicy.multi(close_on_transcript_change=True),
        )
        navigator.attach_scanner(delay=0)
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)

        transcript.append(MessageRecord(name="Ann", is_user=True, text="more"))
        await navigator.drain()

        assert not navigator.is_open(THREE_SWIPES)
        assert transcript.get(THREE_SWIPES).active_index == 0
        assert view.content[THREE_SWIPES] == "A"

    def test_chat_switch_ends_sessions_under_default_policy(self, navigator, transcript, view):
        navigator.open(THREE_SWIPES)
        navigator.move(THREE_SWIPES, +1)
        old_record = transcript.get(THREE_SWIPES)

        transcript.replace([MessageRecord(text="x"), MessageRecord(name="Bot", text="y")])

        assert navigator.open_ids() == []
        assert THREE_SWIPES not in view.unlocked
        assert old_record.active_index == 0
        assert navigator.move(THREE_SWIPES, +1) is None
        new_record = transcript.get(THREE_SWIPES)
        assert new_record.active_index == 0
        assert new_record.alternatives == []

    def test_chat_switch_leaves_new_chat_selection_alone(self, single_navigator, transcript):
        single_navigator.open(TWO_SWIPES)
        single_navigator.move(TWO_SWIPES, -1)

        records = make_records()
        records[TWO_SWIPES] = MessageRecord(alternatives=["only"], name="Bot", text="only")
        transcript.replace(records)

        assert single_navigator.open_ids() == []
        assert transcript.get(TWO_SWIPES).active_index == 0

    def test_session_is_inert_once_its_record_is_replaced(self, navigator, transcript, view):
        navigator.open(THREE_SWIPES)
        replacement = MessageRecord(alternatives=["x", "y"], active_index=1, name="Bot", text="y")
        transcript.records[THREE_SWIPES] = replacement

        assert navigator.move(THREE_SWIPES, -1) is None
        assert navigator.set_translation(THREE_SWIPES, True) is False
        with pytest.raises(NotOpen):
            navigator.current_display_label(THREE_SWIPES)

        navigator.close(THREE_SWIPES)
        assert replacement.active_index == 1
        assert THREE_SWIPES not in view.content

    async def test_scanner_attaches_to_new_messages(self, navigator, transcript, view):
        navigator.attach_scanner(delay=0)
        assert view.affordances == set(range(5))

        message_id = transcript.append(MessageRecord(name="Bot", text="hi"))
        view.visible.append(message_id)
        await navigator.drain()
        assert message_id in view.affordances
