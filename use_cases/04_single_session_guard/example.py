import asyncio

from swipe_unlock import MemoryView, SessionPolicy, SwipeNavigator, Transcript
from swipe_unlock.store import MessageRecord


async def main():
    transcript = Transcript(
        [
            MessageRecord(alternatives=["a1", "a2"], name="Bot", text="a1"),
            MessageRecord(name="Ann", is_user=True, text="and?"),
            MessageRecord(alternatives=["b1", "b2", "b3"], active_index=2, name="Bot", text="b3"),
        ]
    )
    view = MemoryView(visible=[0, 1, 2])
    navigator = SwipeNavigator(transcript, view, policy=SessionPolicy.single())
    navigator.attach_scanner(delay=0.01)
    print(f"Lock toggles attached to: {sorted(view.affordances)}\n")

    navigator.toggle(0)
    print(f"Unlocked: {navigator.open_ids()}")

    navigator.toggle(2)
    print(f"Second unlock rejected -> {view.notices[-1].level}: {view.notices[-1].text}")

    warning = navigator.guard_navigation("send")
    print(f"Host asks before sending -> {warning}")

    navigator.move(0, +1)
    await navigator.drain()
    print(f"\nBrowsed message #0 to {navigator.current_display_label(0).text}; a new message arrives...")

    transcript.append(MessageRecord(alternatives=["c1", "c2"], name="Bot", text="c1"))
    view.visible.append(3)
    await navigator.drain()

    print(f"Unlocked after the transcript changed: {navigator.open_ids()}")
    print(f"Message #0 selection restored to swipe {transcript.get(0).active_index + 1}")
    print(f"Lock toggles attached to: {sorted(view.affordances)}")
    print(f"Guard now: {navigator.guard_navigation('send')}")


if __name__ == "__main__":
    asyncio.run(main())
