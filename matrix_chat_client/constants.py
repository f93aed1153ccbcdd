"""
Matrix constants, kept in one place so protocol strings and magic numbers
do not end up scattered across the client.
"""

# API prefixes
CLIENT_API_PREFIX = "/_matrix/client/v3"
MEDIA_API_PREFIX = "/_matrix/media/v3"
VERSIONS_ENDPOINT = "/_matrix/client/versions"

USER_AGENT = "matrix-chat-client/0.1"

# Message types
MSGTYPE_TEXT = "m.text"
MSGTYPE_EMOTE = "m.emote"
MSGTYPE_IMAGE = "m.image"
MSGTYPE_FILE = "m.file"
MSGTYPE_AUDIO = "m.audio"
MSGTYPE_VIDEO = "m.video"
# Types whose content carries url + info
MEDIA_MSGTYPES = (MSGTYPE_IMAGE, MSGTYPE_FILE, MSGTYPE_AUDIO, MSGTYPE_VIDEO)

M_ROOM_MESSAGE = "m.room.message"
M_LOGIN_PASSWORD = "m.login.password"
M_LOGIN_RECAPTCHA = "m.login.recaptcha"
M_ID_USER = "m.id.user"

# Error codes
M_UNKNOWN_TOKEN = "M_UNKNOWN_TOKEN"
M_LIMIT_EXCEEDED = "M_LIMIT_EXCEEDED"

# Presence
PRESENCE_ONLINE = "online"

# Filters: a literal definition is a JSON object, anything else is a server id
FILTER_LITERAL_PREFIX = "{"
DEFAULT_SYNC_FILTER = {
    "room": {
        "include_leave": True,
        "account_data": {"not_types": ["*"]},
    },
    "account_data": {"not_types": ["*"]},
    "presence": {"not_types": ["*"]},
}

# Time and network
DEFAULT_TIMEOUT_MS_30000 = 30000
INITIAL_SYNC_TIMEOUT_MS_0 = 0
DEFAULT_TYPING_TIMEOUT_MS = 5000
MAX_RATE_LIMIT_RETRIES = 3
DEFAULT_RETRY_AFTER_MS = 5000
SYNC_RETRY_DELAY_SECONDS = 2.0
SYNC_RETRY_MAX_DELAY_SECONDS = 60.0

# HTTP
HTTP_ERROR_STATUS_400 = 400
HTTP_FORBIDDEN_403 = 403
HTTP_NOT_FOUND_404 = 404
HTTP_TOO_MANY_REQUESTS_429 = 429
# Status reported when no HTTP response was received at all
HTTP_STATUS_NO_RESPONSE = 0

# Pagination / notifications
DEFAULT_MESSAGES_LIMIT = 20
DEFAULT_NOTIFICATIONS_LIMIT = 5

# Thumbnails
ROOM_AVATAR_SIZE_512 = 512
USER_AVATAR_SIZE_128 = 128
THUMBNAIL_METHOD_CROP = "crop"

# Display
ERROR_TRUNCATE_LENGTH_200 = 200
DISPLAY_TRUNCATE_LENGTH_20 = 20

# Transaction ids
INITIAL_TRANSACTION_ID = 1

# Settings record keys
SETTING_SYNC_FILTER = "client/sync_filter"
SETTING_TRANSACTION_ID = "client/transaction_id"
SETTING_NEXT_BATCH = "client/next_batch"

# Environment
ENV_ALLOW_INSECURE = "MATRIX_ALLOW_INSECURE_CONNECTIONS"
