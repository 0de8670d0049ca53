"""Constants shared across gitissue modules."""

from __future__ import annotations

# Name of the tracked directory searched for upwards from the cwd
ISSUES_DIR_NAME = ".issues"

# Sub-directory of the issues tree holding one directory per issue
ISSUES_SUBDIR = "issues"

TEMPLATES_SUBDIR = "templates"
README_FILENAME = "README.md"

# Files of an issue directory
DESCRIPTION_FILE = "description"
TAGS_FILE = "tags"
MILESTONE_FILE = "milestone"
DUEDATE_FILE = "duedate"
COMMENTS_DIR = "comments"

# Files the engine reads; the remaining known names belong to features of the
# shell tool that are stored but not interpreted here
KNOWN_ISSUE_FILES: frozenset[str] = frozenset(
    {
        DESCRIPTION_FILE,
        TAGS_FILE,
        MILESTONE_FILE,
        DUEDATE_FILE,
        "assignee",
        "timeestimate",
        "timespent",
        "watchers",
        "weight",
    },
)
KNOWN_ISSUE_DIRS: frozenset[str] = frozenset({COMMENTS_DIR, "attachments"})

# Lifecycle tags
TAG_OPEN = "open"
TAG_CLOSED = "closed"
LIFECYCLE_TAGS: frozenset[str] = frozenset({TAG_OPEN, TAG_CLOSED})

# Identifiers
ID_LENGTH = 40
ID_PREFIX_LENGTH = 2
SHORT_ID_LENGTH = 8
# Matches the abbreviation ``git rev-parse --short`` prints in the shell tool
STRICT_SHORT_ID_LENGTH = 7
ID_MAX_RETRIES = 100

# Rendered in place of a field that cannot be formatted
PLACEHOLDER = "?"

# Prefix of the subject line of every commit made by the tool
COMMIT_PREFIX = "gi"

# Trailer naming the tool release that wrote a commit
VERSION_TRAILER = "Tool-Version"

README_TEXT = (
    "This is an distributed issue tracking repository based on Git.\n"
    "Visit [git-issue](https://github.com/dspinellis/git-issue) for more information.\n"
)

DESCRIPTION_TEMPLATE = """

# Start with a one-line summary of the issue.  Leave a blank line and
# continue with the issue's detailed description.
#
# Remember:
# - Be precise
# - Be clear: explain how to reproduce the problem, step by step,
#   so others can reproduce the issue
# - Include only one problem per issue report
#
# Lines starting with '#' will be ignored, and an empty message aborts
# the issue addition.
"""

COMMENT_TEMPLATE = """

# Please write here a comment regarding the issue.
# Keep the conversation constructive and polite.
# Lines starting with '#' will be ignored, and an empty message aborts
# the issue addition.
"""

# Named list formats
LIST_FORMATS: dict[str, str] = {
    "simple": "%i %D",
    "oneline": "ID: %i  Date: %c  Tags: %T  Desc: %D",
    "short": "ID: %i%nDate: %c%nDue Date: %d%nTags: %T%nDescription: %D",
}
DEFAULT_LIST_FORMAT = "simple"

# Environment overrides for configuration
ENV_STRICT = "GIT_ISSUE_STRICT"
ENV_RELEASE = "GIT_ISSUE_RELEASE"
