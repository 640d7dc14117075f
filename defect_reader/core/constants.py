"""
Constants
Paging limits, snapshot selector, and log/URL conventions for defect fetching.
"""
LOG_PREFIX = "[Coverity]"

# Page size for each getMergedDefectsForStreams request
PAGE_SIZE = 1000
# Ceiling used only until the server reports its real total
DEFAULT_DEFECT_CAP = 3000

# Snapshot scope selector for the most recent snapshot in the stream
LAST_SNAPSHOT = "last()"

# Address segment the build result artifact is served under
RESULT_URL_NAME = "coverity_defects"

MERGED_DEFECTS_PATH = "/api/v2/defects/merged"
