from __future__ import annotations

from support_bot.models.callbacks import reply_to_token
from support_bot.models.events import Button


def reply_offer_keyboard(user_id: int, username: str | None) -> list[list[Button]]:
    return [[Button.callback("✍️ Ответить пользователю", reply_to_token(user_id, username))]]
