import json
import os

from swipe_unlock.translation import SqliteTranslationStore


def create_sample_chat():
    rows = [
        {"user_name": "Ann", "character_name": "Mira", "create_date": "2024-03-01@18h02m", "chat_metadata": {}},
        {
            "name": "Mira",
            "is_user": False,
            "is_system": False,
            "mes": "Welcome back, {{user}}! The lighthouse has been quiet since you left.",
        },
        {
            "name": "Ann",
            "is_user": True,
            "is_system": False,
            "mes": "Anything strange happen while I was away?",
        },
        {
            "name": "Mira",
            "is_user": False,
            "is_system": False,
            "mes": "Only the gulls. They have *opinions* about the new paint.",
            "swipes": [
                "Nothing at all. Just fog and the occasional ship horn.",
                "Only the gulls. They have *opinions* about the new paint.",
                "A letter arrived for you, {{user}}. No return address.",
                "**Yes.** The lamp turned itself on at noon. Twice.",
            ],
            "swipe_id": 1,
        },
        {
            "name": "System",
            "is_user": False,
            "is_system": True,
            "mes": "Ann left the chat for a moment.",
        },
        {
            "name": "Mira",
            "is_user": False,
            "is_system": False,
            "mes": "Take your time.",
            "swipes": ["Take your time."],
            "swipe_id": 0,
        },
        {
            "name": "Mira",
            "is_user": False,
            "is_system": False,
            "mes": "The tide is coming in.",
            "swipes": ["The tide is coming in.", "Storm clouds to the west."],
            "swipe_id": 0,
        },
    ]
    with open("datasets/sample_chat.jsonl", "w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")


def create_translation_store():
    # Keys are the swipe text after placeholder substitution; swipe 3 of
    # message #3 is deliberately left untranslated.
    translations = {
        "Nothing at all. Just fog and the occasional ship horn.": "Rien du tout. Juste du brouillard et la corne d'un navire.",
        "Only the gulls. They have *opinions* about the new paint.": "Seulement les mouettes. Elles ont des *avis* sur la nouvelle peinture.",
        "A letter arrived for you, Ann. No return address.": "Une lettre est arrivée pour toi, Ann. Sans adresse d'expéditeur.",
        "Storm clouds to the west.": "Des nuages d'orage à l'ouest.",
    }
    store = SqliteTranslationStore("datasets/translations.db")
    try:
        for source, translated in translations.items():
            store.put(source, translated)
    finally:
        store.close()


if __name__ == "__main__":
    os.makedirs("datasets", exist_ok=True)
    create_sample_chat()
    create_translation_store()
    print("Sample chat and translation store generated successfully.")
