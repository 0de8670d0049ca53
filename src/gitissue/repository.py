"""Directory-backed issue repository.

Each issue lives in ``issues/<id[:2]>/<id[2:]>/`` below the ``.issues``
root, one file per property.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from gitissue import idgen
from gitissue.config import Settings, default_config, get_config_path, save_config
from gitissue.constants import (
    COMMENT_TEMPLATE,
    COMMENTS_DIR,
    DESCRIPTION_FILE,
    DESCRIPTION_TEMPLATE,
    DUEDATE_FILE,
    ID_PREFIX_LENGTH,
    ISSUES_DIR_NAME,
    ISSUES_SUBDIR,
    MILESTONE_FILE,
    README_FILENAME,
    README_TEXT,
    TAG_OPEN,
    TAGS_FILE,
    TEMPLATES_SUBDIR,
)
from gitissue.errors import (
    CorruptIssueError,
    RepositoryExistsError,
    RepositoryNotFoundError,
)
from gitissue.idgen import IDGenerator, resolve_id
from gitissue.models import CachedView, Comment, Issue
from gitissue.storage import FileStorage
from gitissue.tags import apply_tag, validate_label
from gitissue.transaction import TransactionManager
from gitissue.vcs import GitVersionControl

if TYPE_CHECKING:
    from collections.abc import Iterable

    from gitissue.messages import MessagePolicy
    from gitissue.storage import Storage
    from gitissue.transaction import Transaction
    from gitissue.vcs import LogEntry, VersionControl

logger = logging.getLogger(__name__)

_DEFAULT_TEMPLATES = {
    "description": DESCRIPTION_TEMPLATE,
    "comment": COMMENT_TEMPLATE,
}


def issue_dir(issue_id: str) -> str:
    """Return the directory of an issue relative to the issues root."""
    return f"{ISSUES_SUBDIR}/{issue_id[:ID_PREFIX_LENGTH]}/{issue_id[ID_PREFIX_LENGTH:]}"


def issue_path(issue_id: str, name: str) -> str:
    """Return the path of one property file of an issue."""
    return f"{issue_dir(issue_id)}/{name}"


def serialize_tags(tags: Iterable[str]) -> str:
    """Render tags as sorted, de-duplicated lines."""
    return "".join(f"{tag}\n" for tag in sorted(set(tags)))


def serialize_description(description: str) -> str:
    """Render a description with exactly one trailing newline."""
    return description.rstrip() + "\n"


class IssueRepository:
    """Owns the issues of one ``.issues`` tree and their in-memory cache."""

    def __init__(
        self,
        storage: Storage,
        vcs: VersionControl,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            storage: File access below the issues root
            vcs: History backing the issues tree
            settings: Process settings (default: all defaults)
        """
        self.storage = storage
        self.vcs = vcs
        self.settings = settings or Settings()
        self.transactions = TransactionManager(
            storage, vcs, self.settings, on_rollback=self._evict_paths
        )
        self._issues: dict[str, Issue] = {}

    @property
    def messages(self) -> MessagePolicy:
        """Commit message policy of this repository."""
        return self.transactions.messages

    @property
    def short_id_length(self) -> int:
        """Length of abbreviated ids for the current mode."""
        return idgen.short_id_length(self.settings.strict)

    def short_id(self, issue_id: str) -> str:
        """Abbreviate an issue id for display."""
        return idgen.short_id(issue_id, self.settings.strict)

    def all_ids(self) -> list[str]:
        """List the ids of every issue directory, sorted."""
        ids = []
        for prefix in self.storage.list_dir(ISSUES_SUBDIR):
            prefix_path = f"{ISSUES_SUBDIR}/{prefix}"
            if not self.storage.is_dir(prefix_path):
                continue
            for rest in self.storage.list_dir(prefix_path):
                if self.storage.is_dir(f"{prefix_path}/{rest}"):
                    ids.append(prefix + rest)
        return sorted(ids)

    def resolve(self, partial_id: str) -> str:
        """Resolve a partial ID to a full issue ID.

        Raises:
            NotFoundError: If no issue matches
            AmbiguousError: If several issues match
        """
        return resolve_id(partial_id, self.all_ids())

    def find(self, partial_id: str) -> Issue:
        """Resolve a partial ID and load the issue."""
        return self.load(self.resolve(partial_id))

    def _read_optional(self, issue_id: str, name: str) -> str | None:
        path = issue_path(issue_id, name)
        if not self.storage.exists(path):
            return None
        try:
            return self.storage.read(path)
        except UnicodeDecodeError as e:
            msg = f"Issue {issue_id} has an undecodable {name} file"
            raise CorruptIssueError(msg) from e

    def load(self, issue_id: str) -> Issue:
        """Load an issue, using the in-memory cache.

        Args:
            issue_id: Full issue ID

        Returns:
            The cached Issue instance

        Raises:
            CorruptIssueError: If the description is missing or a file cannot be decoded
        """
        cached = self._issues.get(issue_id)
        if cached is not None:
            return cached

        description = self._read_optional(issue_id, DESCRIPTION_FILE)
        if description is None:
            msg = f"Issue {issue_id} has no description"
            raise CorruptIssueError(msg)

        tags_text = self._read_optional(issue_id, TAGS_FILE) or ""
        milestone = (self._read_optional(issue_id, MILESTONE_FILE) or "").strip()
        due_date = self._read_optional(issue_id, DUEDATE_FILE)

        issue = Issue(
            id=issue_id,
            description=description,
            tags={line.strip() for line in tags_text.splitlines() if line.strip()},
            milestone=milestone or None,
            due_date=due_date.strip() if due_date is not None else None,
            comments=self._load_comments(issue_id),
        )
        self._issues[issue_id] = issue
        return issue

    def _load_comments(self, issue_id: str) -> list[Comment]:
        comments_dir = issue_path(issue_id, COMMENTS_DIR)
        comments = []
        for name in self.storage.list_dir(comments_dir):
            body = self._read_optional(issue_id, f"{COMMENTS_DIR}/{name}")
            if body is not None:
                comments.append(Comment(name=name, body=body))
        return comments

    def all_issues(self) -> tuple[list[Issue], list[CorruptIssueError]]:
        """Load every issue.

        Returns:
            Loaded issues and the errors of issues that could not be loaded
        """
        issues: list[Issue] = []
        errors: list[CorruptIssueError] = []
        for issue_id in self.all_ids():
            try:
                issues.append(self.load(issue_id))
            except CorruptIssueError as e:
                logger.warning("Skipping issue: %s", e)
                errors.append(e)
        return issues, errors

    def evict(self, issue_id: str) -> None:
        """Drop an issue from the in-memory cache."""
        self._issues.pop(issue_id, None)

    def _evict_paths(self, paths: list[str]) -> None:
        """Drop the issues owning any of the rolled back paths."""
        for path in paths:
            subdir, _, rest = path.partition("/")
            prefix, _, rest = rest.partition("/")
            tail = rest.partition("/")[0]
            if subdir == ISSUES_SUBDIR and prefix and tail:
                self.evict(prefix + tail)

    def create(
        self,
        txn: Transaction,
        description: str,
        tags: Iterable[str] = (),
        milestone: str | None = None,
        due_date: str | None = None,
        timestamp: datetime | None = None,
    ) -> Issue:
        """Create a new open issue inside a transaction.

        Args:
            txn: Open transaction receiving the writes
            description: Issue description; the first line is the title
            tags: Extra tags; ``closed`` creates the issue closed
            milestone: Optional milestone
            due_date: Optional ISO-8601 due date
            timestamp: Creation time the id is derived from (default: now)

        Returns:
            The new, cached Issue

        Raises:
            ValueError: If the description is empty or a label is invalid
            AllocationExhaustedError: If no free id is found
        """
        if not description.strip():
            msg = "Issue description cannot be empty"
            raise ValueError(msg)
        for label in [*tags, *([milestone] if milestone else [])]:
            validate_label(label)

        generator = IDGenerator(existing_ids=set(self.all_ids()))
        issue_id = generator.allocate(description, timestamp)
        issue = Issue(id=issue_id, description=serialize_description(description), tags={TAG_OPEN})
        for tag in tags:
            apply_tag(issue, tag)
        issue.set_milestone(milestone)
        issue.set_due_date(due_date)

        self.save_description(txn, issue)
        self.save_tags(txn, issue)
        self.save_milestone(txn, issue)
        self.save_due_date(txn, issue)
        self._issues[issue_id] = issue
        logger.info("Created issue %s", issue_id)
        return issue

    def save_description(self, txn: Transaction, issue: Issue) -> None:
        txn.write(issue_path(issue.id, DESCRIPTION_FILE), serialize_description(issue.description))

    def save_tags(self, txn: Transaction, issue: Issue) -> None:
        txn.write(issue_path(issue.id, TAGS_FILE), serialize_tags(issue.tags))

    def save_milestone(self, txn: Transaction, issue: Issue) -> None:
        path = issue_path(issue.id, MILESTONE_FILE)
        if issue.milestone is None:
            txn.remove(path)
        else:
            txn.write(path, f"{issue.milestone}\n")

    def save_due_date(self, txn: Transaction, issue: Issue) -> None:
        path = issue_path(issue.id, DUEDATE_FILE)
        if issue.due_date is None:
            txn.remove(path)
        else:
            txn.write(path, f"{issue.due_date}\n")

    def formatted_view(self, issue: Issue, now: datetime | None = None) -> CachedView:
        """Return the memoized view, looking up the creation date on first use."""
        if not issue.has_view and issue.created_at is None:
            issue.created_at = self.vcs.creation_date(issue_dir(issue.id))
        return issue.view(self.short_id_length, now)

    def history(self, issue: Issue) -> list[LogEntry]:
        """Return the commits that touched an issue, oldest first."""
        return self.vcs.log([issue_dir(issue.id)])

    def read_template(self, name: str) -> str:
        """Read an editor template, falling back to the built-in one."""
        path = f"{TEMPLATES_SUBDIR}/{name}"
        if self.storage.exists(path):
            try:
                return self.storage.read(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Ignoring unreadable template %s: %s", path, e)
        return _DEFAULT_TEMPLATES.get(name, "")


def find_issues_dir(start_dir: str | Path | None = None) -> Path:
    """Find .issues directory by searching upward from start_dir.

    Similar to how git finds .git directories.

    Args:
        start_dir: Directory to start searching from (default: current directory)

    Returns:
        Path to .issues directory

    Raises:
        RepositoryNotFoundError: If no .issues directory exists upwards
    """
    current = Path.cwd() if start_dir is None else Path(start_dir).resolve()

    while True:
        candidate = current / ISSUES_DIR_NAME
        if candidate.is_dir():
            return candidate

        parent = current.parent
        if parent == current:
            msg = "Not an issues repository (or any of the parent directories)"
            raise RepositoryNotFoundError(msg)
        current = parent


def open_repository(issues_dir: str | Path, settings: Settings | None = None) -> IssueRepository:
    """Open the repository rooted at an existing .issues directory."""
    path = Path(issues_dir)
    if not path.is_dir():
        msg = f"Issues directory not found: {path}"
        raise RepositoryNotFoundError(msg)
    return IssueRepository(FileStorage(path), GitVersionControl(path), settings)


def init_repository(
    root: str | Path,
    existing: bool = False,
    settings: Settings | None = None,
) -> IssueRepository:
    """Create the .issues layout below root and commit it.

    Args:
        root: Directory that receives .issues
        existing: Track the issues in the git repository enclosing root
            instead of a new repository inside .issues
        settings: Process settings

    Returns:
        The new IssueRepository

    Raises:
        RepositoryExistsError: If .issues already exists
        RepositoryNotFoundError: If existing is set and root is not in a git work tree
        TransactionFailureError: If the initial commit fails
    """
    issues_dir = Path(root) / ISSUES_DIR_NAME
    if issues_dir.exists():
        msg = f"An {ISSUES_DIR_NAME} directory is already present"
        raise RepositoryExistsError(msg)
    issues_dir.mkdir(parents=True)

    # A failed init removes everything it created
    try:
        repo = _populate(issues_dir, existing, settings)
    except BaseException:
        logger.debug("Removing partially initialized %s", issues_dir)
        shutil.rmtree(issues_dir, ignore_errors=True)
        raise
    logger.info("Initialized issues repository in %s", issues_dir)
    return repo


def _populate(issues_dir: Path, existing: bool, settings: Settings | None) -> IssueRepository:
    if existing:
        vcs = GitVersionControl(issues_dir)
        if not vcs.is_work_tree():
            msg = "Git repository not found"
            raise RepositoryNotFoundError(msg)
    else:
        vcs = GitVersionControl.init_repository(issues_dir)

    repo = IssueRepository(FileStorage(issues_dir), vcs, settings)
    with repo.transactions.begin() as txn:
        save_config(issues_dir, default_config())
        txn.stage(get_config_path(issues_dir).name)
        for name, text in _DEFAULT_TEMPLATES.items():
            txn.write(f"{TEMPLATES_SUBDIR}/{name}", text)
        txn.write(README_FILENAME, README_TEXT)
        txn.commit(repo.messages.init())
    return repo
