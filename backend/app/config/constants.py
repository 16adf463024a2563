"""
Constants configuration

API settings, CORS configuration and the pipeline's product constants.
The numeric thresholds below are product decisions; change them only
together with the tests that pin them.
"""

# API settings
API_TITLE = "Script Conveyor API"
API_DESCRIPTION = "Turn news and social sources into reviewed short-form video scripts"
API_VERSION = "1.0.0"

# CORS origins
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]

# =============================================================================
# PIPELINE
# =============================================================================

TOTAL_STAGES = 9

STAGE_NAMES = {
    1: "Scout",
    2: "Scorer",
    3: "Analyst",
    4: "Architect",
    5: "Writer",
    6: "Quality Control",
    7: "Optimizer",
    8: "Gate",
    9: "Delivery",
}

# Estimated spend per generation-backed stage (USD)
STAGE_COSTS = {
    1: 0.0,
    2: 0.01,
    3: 0.015,
    4: 0.01,
    5: 0.02,
    6: 0.07,
    7: 0.015,
    8: 0.0,
    9: 0.0,
}

# Used for admission control before an item runs
ESTIMATED_COST_PER_ITEM = 0.14

MAX_QC_ITERATIONS = 2
MAX_RETRY_LIMIT = 3
MAX_REVISIONS = 5
MAX_PREVIOUS_VERSIONS = 3
STUCK_ITEM_TIMEOUT_MINUTES = 60

# =============================================================================
# SCOUT
# =============================================================================

MIN_CONTENT_LENGTH = 500
MIN_SCORABLE_LENGTH = 100
DEFAULT_MAX_AGE_DAYS = 7

# =============================================================================
# SCORER / ANALYST
# =============================================================================

DEFAULT_SCORE_THRESHOLD = 70
MIN_KEY_FACTS = 3

# =============================================================================
# QUALITY CONTROL
# =============================================================================

QC_PASS_SCORE = 75
QC_MIN_HOOK_SCORE = 70
QC_MIN_CTA_SCORE = 70
QC_CRITICAL_HOOK_SCORE = 50
QC_DEFAULT_SUBSCORE = 50
MAX_WEAK_SPOTS = 5

# =============================================================================
# LEARNING
# =============================================================================

LEARNED_THRESHOLD_FLOOR = 60
LEARNED_THRESHOLD_CAP = 90
LEARNED_THRESHOLD_STEP_DOWN = 2
LEARNED_THRESHOLD_STEP_UP = 5
DEFAULT_APPROVAL_RATE = 0.5

# =============================================================================
# SETTINGS DEFAULTS
# =============================================================================

DEFAULT_DAILY_LIMIT = 10
DEFAULT_MONTHLY_BUDGET = 10.0
DEFAULT_DURATION_RANGE = (30, 90)
DEFAULT_DURATION_SECONDS = 65
MAX_SCRIPT_EXAMPLES = 5
MAX_EXAMPLE_CHARS = 3000
MAX_PROFILE_PATTERNS = 10

# =============================================================================
# LIVE EVENTS
# =============================================================================
# Comment line sent on an idle server-sent events stream
SSE_HEARTBEAT_SECONDS = 30
MAX_SSE_REPLAY = 500
