from vibecut.schemas.project import ChatMessage
from vibecut.services.ids import IdGenerator, utcnow

WELCOME_MESSAGE = (
    "Hi! Describe the video you want and I will edit the composition for you. "
    "Type `/help` to see the available slash commands."
)


class ChatLog:
    """Conversation shown next to the editor; not part of the project file."""

    def __init__(self, ids: IdGenerator):
        self._ids = ids
        self.messages: list[ChatMessage] = []
        self.reset()

    def add(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(id=self._ids.new_id("msg"), role=role, content=content, created_at=utcnow())
        self.messages.append(message)
        return message

    def reset(self) -> None:
        """Start over with only the welcome message."""
        self.messages = []
        self.add("assistant", WELCOME_MESSAGE)

    def clear(self) -> None:
        self.messages = []
