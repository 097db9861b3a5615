# mediq/services/chat_script.py
"""Scripted intake assistant.

The assistant never reads what the patient typed: the reply to the N-th
patient message is simply the N-th line of the script, and once the script
is exhausted the closing line is repeated.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import MessageSender

GREETING = "Hello! I'm the MediQ virtual assistant. How can I help you today?"

SCRIPT = (
    "Thank you. What is your full name?",
    "Nice to meet you. Which clinic are you in today (e.g., General, Pediatrics, etc.)?",
    "Got it. Please describe your symptoms in a few words.",
    "Thank you for sharing. Have you visited this hospital in the last 6 months?",
    "Thank you for the information. A doctor will be with you shortly. Please have a seat in the waiting area.",
)

# Cosmetic pause before the reply is shown
BOT_REPLY_DELAY_SECONDS = 1.0


def get_scripted_reply(user_message_count: int) -> str:
    """Reply owed after `user_message_count` patient messages (1-indexed)."""
    if user_message_count < 1:
        raise ValueError("user_message_count must be at least 1")
    index = min(user_message_count, len(SCRIPT)) - 1
    return SCRIPT[index]


@dataclass
class Message:
    text: str
    sender: MessageSender
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: int = field(default_factory=lambda: int(time.time()))


class ChatSession:
    """One intake conversation: a counter of patient messages plus the log."""

    def __init__(self, conversation_id: Optional[str] = None):
        self.conversation_id = conversation_id or str(uuid.uuid4())
        self.reset()

    def reset(self) -> None:
        self.user_message_count = 0
        self.messages: List[Message] = [Message(text=GREETING, sender=MessageSender.bot)]

    @property
    def is_complete(self) -> bool:
        return self.user_message_count >= len(SCRIPT)

    @property
    def user_messages(self) -> List[str]:
        return [m.text for m in self.messages if m.sender == MessageSender.user]

    def _record_user_message(self, text: str) -> bool:
        if not text or not text.strip():
            return False
        self.messages.append(Message(text=text, sender=MessageSender.user))
        self.user_message_count += 1
        return True

    def _record_bot_reply(self) -> str:
        reply = get_scripted_reply(self.user_message_count)
        self.messages.append(Message(text=reply, sender=MessageSender.bot))
        return reply

    def send(self, text: str) -> Optional[str]:
        """Append a patient message and the scripted reply; blank input is ignored."""
        if not self._record_user_message(text):
            return None
        return self._record_bot_reply()

    async def send_with_delay(self, text: str, delay: float = BOT_REPLY_DELAY_SECONDS) -> Optional[str]:
        if not self._record_user_message(text):
            return None
        await asyncio.sleep(delay)
        return self._record_bot_reply()
