# Entrius 2025
# =============================================================================
# GitHub API
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
GITHUB_API_TIMEOUT = 30  # seconds
GITHUB_API_MAX_ATTEMPTS = 3
GITHUB_PAGE_SIZE = 100

# =============================================================================
# Git workspace
# =============================================================================
DEFAULT_REMOTE = "upstream"
DEFAULT_BASE_BRANCH = "master"
SCRATCH_BRANCH_PREFIX = "new-"
GIT_COMMAND_TIMEOUT = 300  # seconds

# =============================================================================
# Gap check
# =============================================================================
DEFAULT_GAP_THRESHOLD = 20  # commits
DEFAULT_CHECK_INTERVAL_SECONDS = 1200  # 20 minutes

# Labels
PR_GAP_LABEL = "size/gap"
APPROVED_LABEL = "LGTM"

# Every gap comment contains PR_GAP_SUBSTR; it is how old gap comments are found again.
PR_GAP_SUBSTR = "commits behind the base branch"
PR_GAP_COMMENT = (
    "ping @{author}\n"
    "Thanks for your contribution! The history of this pull request is {gap} "
    "commits behind the base branch `{base_branch}`.\n"
    "Please rebase your branch onto the latest `{base_branch}` so that reviewers "
    "and CI see the change against current code:\n\n"
    "```\n"
    "git fetch upstream\n"
    "git rebase upstream/{base_branch}\n"
    "git push -f\n"
    "```\n"
)
