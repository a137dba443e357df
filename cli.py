"""CLI: send one chat message through the relay. Usage: python cli.py "Hola" [conversation_id] [user_id].
For the API, use: uvicorn chat_relay.main:app --reload."""
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv()

import httpx

from chat_relay.core.config import get_settings
from chat_relay.main import build_chat_service


async def _send(message: str, conversation_id: str | None, user_id: str | None) -> str:
    async with httpx.AsyncClient(timeout=get_settings().http_timeout_seconds) as http:
        service = build_chat_service(http)
        response = await service.handle_message(message, conversation_id=conversation_id, user_id=user_id)
    return response.model_dump_json(by_alias=True, indent=2)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print('Usage: python cli.py "<message>" [conversation_id] [user_id]')
        sys.exit(1)
    args = sys.argv[1:] + [None, None]
    print(asyncio.run(_send(args[0], args[1], args[2])))
