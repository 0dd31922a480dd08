"""Interactive text session: ``python -m mealchat``.

Type a meal, a suggestion value, or one of /save /modify /retry /quit.
"""

import asyncio
import sys

from mealchat.config import EngineSettings
from mealchat.domain.conversation.messages import Author, ChatMessage
from mealchat.infrastructure.factory import (
    close_providers,
    create_meal_api,
    create_scorer,
    create_session,
)
from mealchat.logging_config import configure_logging

ACTIONS = {"/save": "save", "/modify": "modify", "/retry": "retry"}


def _render(message: ChatMessage) -> None:
    if message.author is Author.USER:
        return
    print(f"bot> {message.content}")
    for suggestion in message.suggestions:
        print(f"     [{suggestion.value}] {suggestion.label}")
    if message.actions:
        print("     " + " ".join(f"/{action.value}" for action in message.actions))


async def main() -> int:
    settings = EngineSettings.from_env()
    configure_logging(settings.log_level)
    scorer = create_scorer(settings)
    meal_api = create_meal_api(settings)
    session = create_session(settings, scorer=scorer, meal_api=meal_api)
    session.messages.subscribe(_render)

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line or line.strip() == "/quit":
                return 0

            command = line.strip()
            if command in ACTIONS:
                await session.action_selected(ACTIONS[command])
            else:
                await session.submit_text(command)
    finally:
        await close_providers(scorer, meal_api)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
