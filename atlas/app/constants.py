"""
Application Constants.
Stores default values for the map window and timing of transient UI state.
"""

# Window Configuration
WINDOW_TITLE = "Atlas - World Map"
DEFAULT_WINDOW_WIDTH = 1280
DEFAULT_WINDOW_HEIGHT = 800
WINDOW_SETTINGS_KEY = "Atlas"
WINDOW_SETTINGS_APP = "AtlasMap"

# Timing (milliseconds)
SAVED_STATE_REVERT_MS = 1500
MESSAGE_DISMISS_MS = 2500
NAVIGATE_DELAY_MS = 1000
CLICK_SUPPRESSION_MS = 0
AUTOSAVE_DELAY_MS = 0  # 0 disables debounced autosave

# Timer keys
TIMER_SAVE_REVERT = "save_revert"
TIMER_MESSAGE = "message_dismiss"
TIMER_NAVIGATE = "navigate"
TIMER_AUTOSAVE = "autosave"
TIMER_CLICK_RELEASE = "click_release"

# Network
DEFAULT_SERVER_URL = "http://127.0.0.1:8000"
REQUEST_TIMEOUT_S = 10

# Pin rendering
PIN_RADIUS_PX = 8
PIN_HIT_RADIUS_PX = 10

# Status Messages
MSG_PIN_CREATED = "Created a new pin."
MSG_PIN_DELETED = "Pin deleted. Saving…"
MSG_PINS_SAVED = "Pins saved."
MSG_PIN_UNLINKED = "This pin doesn't have a linked page yet."
MSG_SAVE_FAILED = "Save failed."
MSG_LOGIN_FAILED = "Login failed."
