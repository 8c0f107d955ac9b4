# WhatsApp Messages
MSG_INVITATION = (
    "Hey {name} 👋\n\n"
    "You're invited to a padel match!\n\n"
    "📅 {time}\n"
    "🏟️ {court}\n\n"
    "Please confirm your attendance:"
)
MSG_REPLY_INSTRUCTIONS = "Reply YES to confirm or NO to decline."
MSG_PAYMENT_LINK = "Great! Your seat is confirmed. Please complete payment:\n\n{link}\n\nThank you! 🎾"
MSG_DECLINE = "No problem! We'll ask you next time."

BUTTON_TITLE_YES = "✅ Yes"
BUTTON_TITLE_NO = "❌ No"

# Button ids
BUTTON_CONFIRM_YES = "CONFIRM_YES"
BUTTON_CONFIRM_NO = "CONFIRM_NO"
BUTTON_PREFIX_YES = "yes_"
BUTTON_PREFIX_NO = "no_"

# Decisions
DECISION_YES = "YES"
DECISION_NO = "NO"

YES_KEYWORDS = ["YES", "Y", "SI", "OK", "CONFIRM", "ACCEPT", "نعم", "موافق", "أوافق", "موافقة", "✅"]
NO_KEYWORDS = ["NO", "N", "DECLINE", "REJECT", "CANCEL", "لا", "رفض", "غير موافق", "❌"]

# Invitation Statuses
STATUS_PENDING = "pending"
STATUS_INVITED = "invited"
STATUS_CONFIRMED = "confirmed"
STATUS_DECLINED = "declined"
STATUS_TIMEOUT = "timeout"
STATUS_BACKUP = "backup"

INVITATION_STATUSES = (
    STATUS_PENDING,
    STATUS_INVITED,
    STATUS_CONFIRMED,
    STATUS_DECLINED,
    STATUS_TIMEOUT,
    STATUS_BACKUP,
)
OPEN_STATUSES = (STATUS_PENDING, STATUS_INVITED)
RESPONDED_STATUSES = (STATUS_CONFIRMED, STATUS_DECLINED)

# Match
MATCH_STATUS_LOCKED = "Locked"
DEFAULT_TARGET_COUNT = 4

# Webhook events
MESSAGE_EVENTS = {"message_received", "message", "messages", "message.received"}

# Webhook outcome actions
ACTION_NO_PENDING_INVITATION = "no_pending_invitation"
ACTION_PLAYER_NOT_FOUND = "player_not_found"
ACTION_UNKNOWN = "unknown"
ACTION_IGNORED_FROM_ME = "ignored_from_me"
ACTION_IGNORED_EVENT = "ignored_event"
ACTION_MISSING_FIELDS = "missing_fields"
ACTION_MESSAGE = "message"
