"""Domain constants shared by the API and the persistence client."""

DEFAULT_CONVERSATION_TITLE = "New Conversation"
MAX_TITLE_LENGTH = 255
MAX_MESSAGE_LENGTH = 1000

MESSAGE_TYPES = ("user", "ai", "error")

LOCAL_CONVERSATIONS_KEY = "agrichat_conversations"
LOCAL_MESSAGES_KEY_PREFIX = "agrichat_messages_"

# Ids are INTEGER columns
MAX_DB_ID = 2**31 - 1
