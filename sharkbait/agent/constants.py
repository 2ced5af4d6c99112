"""Constants for the agent orchestration engine.

Single source of truth for the magic numbers used by the turn loop, the
progress tracker, the context manager, the parallel executor and the LLM
client.
"""

# ---------------------------------------------------------------------------
# Turn loop limits
# ---------------------------------------------------------------------------
DEFAULT_MAX_ITERATIONS = 50
EVENT_CHANNEL_SIZE = 64
RECENT_MESSAGES_KEPT = 10
ERROR_CONTEXT_KEPT = 5

# ---------------------------------------------------------------------------
# Stall detection
# ---------------------------------------------------------------------------
STALL_THRESHOLD = 3  # consecutive failed steps before a replan
MAX_REPLANS = 2  # replans allowed before escalating
STALE_PROGRESS_MS = 60_000  # no successful step for this long -> replan
COMPLETION_LOOKBACK_STEPS = 3
COMPLETION_MARKERS = ("complete", "done")

# ---------------------------------------------------------------------------
# Context window management
# ---------------------------------------------------------------------------
ESTIMATED_CHARS_PER_TOKEN = 4
MAX_CONTEXT_TOKENS = 128_000
RESERVED_FOR_RESPONSE = 16_000
COMPACTION_THRESHOLD = 0.85

TOOL_RESULTS_KEPT = 5
TOOL_SUMMARY_PREVIEW_CHARS = 100
MESSAGE_SUMMARY_PREVIEW_CHARS = 200
MESSAGE_SUMMARY_MAX_CHARS = 1000
KEY_FACTS_KEPT = 5
KEY_FACT_MARKERS = ("important", "found", "error")

# Estimated fraction of a category's tokens each strategy frees
TOOL_SUMMARY_SAVINGS = 0.7
MESSAGE_SUMMARY_SAVINGS = 0.8
EXPLORATION_SAVINGS = 0.9

# ---------------------------------------------------------------------------
# Parallel execution
# ---------------------------------------------------------------------------
DEFAULT_PARALLEL_TIMEOUT_SECONDS = 30.0
DEFAULT_QUORUM_THRESHOLD = 0.5
REVIEW_TIMEOUT_SECONDS = 60.0

# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------
DEFAULT_PHASE_ITERATIONS = 3
WORKFLOW_REVIEW_TIMEOUT_SECONDS = 60.0
SECURITY_REVIEW_WEIGHT = 1.5

# ---------------------------------------------------------------------------
# Intent routing
# ---------------------------------------------------------------------------
BASE_CONFIDENCE = 70
EARLY_MATCH_CHARS = 20
EARLY_MATCH_BONUS = 10
SHORT_INPUT_CHARS = 100
SHORT_INPUT_BONUS = 10
LEADING_MATCH_BONUS = 5
MAX_CONFIDENCE = 95
FALLBACK_CONFIDENCE = 50
HANDOFF_CONFIDENCE = 75

# ---------------------------------------------------------------------------
# Output truncation
# ---------------------------------------------------------------------------
TOOL_RESULT_EVENT_MAX_CHARS = 2000
MAX_FILE_READ_CHARS = 50_000
MAX_FILE_WRITE_BYTES = 1_000_000
COMMAND_OUTPUT_MAX_CHARS = 5000
READ_FILE_TRUNCATION_MSG = "\n... (truncated, {} chars total)"

# ---------------------------------------------------------------------------
# Shell execution
# ---------------------------------------------------------------------------
SHELL_COMMAND_TIMEOUT_SECONDS = 60

# ---------------------------------------------------------------------------
# LLM retry
# ---------------------------------------------------------------------------
LLM_MAX_RETRIES = 3
LLM_RETRY_BASE_DELAY_SECONDS = 1.0
LLM_RETRY_MAX_DELAY_SECONDS = 15.0
LLM_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
