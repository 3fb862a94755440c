"""Minimal demonstration of the Direct-to-Engine chat adapter."""

import asyncio
import sys

from dte_chat_adapter import StaticStrategy, collect_activities, create_chat_adapter


async def main(base_url: str) -> None:
    adapter = create_chat_adapter(StaticStrategy(base_url=base_url, transport="server sent events"))
    for activity in await collect_activities(adapter.start_new_conversation()):
        print("Bot:", activity.get("text", activity))

    question = {"type": "message", "from": {"id": "user", "role": "user"}, "text": "你好，请介绍一下自己。"}
    print("User:", question["text"])
    async for activity in adapter.execute_turn(question):
        print("Bot:", activity.get("text", activity))


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3978/"))
