"""
Application constants for Flick.

Centralizes reaction kinds, notification copy and push limits.
"""

# Reactions
REACTION_EMOJI = {
    "heart": "❤️",
    "fire": "🔥",
    "hundred": "💯",
}

# Notification batching
REACTION_BATCH_WINDOW_SECONDS = 120  # 2-minute sliding window
IMMEDIATE_REACTION_TITLE = "New Reaction! 🔥"
RANK_CHANGE_TITLE = "Rank Update!"
WINNER_TITLE = "🏆 You Won!"

# Push delivery
MAX_PUSH_BATCH_SIZE = 100  # Expo accepts up to 100 messages per request
PUSH_SOUND = "default"
PUSH_PRIORITY = "high"

# Client action throttling kinds
RATE_LIMIT_KINDS = ["upload", "reaction", "notification"]

# Supabase tables
PLAYERS_TABLE = "players"
SUBMISSIONS_TABLE = "submissions"
NOTIFICATIONS_TABLE = "notifications"
