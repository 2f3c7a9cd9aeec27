import os

# R session launch
R_COMMAND = ["R", "--no-save", "--no-restore", "--quiet", "--interactive"]
R_DISPLAY_WIDTH = 120
R_DISPLAY_HEIGHT = 40
SESSION_LABEL_PREFIX = "R-"

# Seconds to wait after the first command sent to a freshly spawned session.
STARTUP_DELAY_SECONDS = 0.5

# Scratch artifacts and signal files live here unless a session overrides it.
SCRATCH_DIR = os.path.join(os.path.dirname(__file__), ".bridge", "scratch")
SCRATCH_FILE_PREFIX = "relay_"

# The single line sent to the session for every submission.
SOURCE_COMMAND_TEMPLATE = 'source("{path}", echo = TRUE, max.deparse.length = Inf)'

# Boundary detection
BLOCK_OPENER_LOOKAHEAD = 10
CALL_SCAN_LOOKAHEAD = 1

# Chunk fences for R Markdown / Quarto documents
CHUNK_START_PATTERN = r"^\s*```+\s*(\{\s*[rR]\b.*\}|[rR])\s*$"
CHUNK_END_PATTERN = r"^\s*```+\s*$"
LITERATE_EXTENSIONS = [".rmd", ".qmd", ".md", ".rmarkdown"]

# Background polling
LIVENESS_POLL_INTERVAL = 2.0
SIGNAL_POLL_INTERVAL = 0.2

# Audit trail
AUDIT_LOG_PATH = os.path.join(os.path.dirname(__file__), ".bridge", "audit_trail.csv")

DEBUG_MODE = False

# Top-level calls kept by the tracer before the oldest are dropped.
TRACE_MAX_ENTRIES = 500

# Server configuration
SERVER_PORT = 5001
