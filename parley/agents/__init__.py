from parley.agents.provider import PydanticAIReplyProvider, to_message_history
from parley.agents.reply import ReplyGenerator, default_retry_policy, sanitize_input
from parley.agents.structured import ReplyFormatError, parse_reply, summarize_validation_error

__all__ = [
    "PydanticAIReplyProvider",
    "ReplyFormatError",
    "ReplyGenerator",
    "default_retry_policy",
    "parse_reply",
    "sanitize_input",
    "summarize_validation_error",
    "to_message_history",
]
