"""
Ordered rule tables used by the change classifier.

Every category is a list of matchers evaluated against a normalised,
lower-cased path. Paths are also matched in a "padded" form with a
leading slash so that ``/config/`` matches both ``app/config/x.yml`` and
``config/x.yml``. The tables are deliberately simple keyword heuristics;
changing an entry changes the report contract.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

Matcher = Callable[["NormalizedPath"], bool]


@dataclass(frozen=True)
class NormalizedPath:
    """A changed path prepared for matching.

    Attributes
    ----------
    path : str
        Normalised path with original casing (new side of a rename,
        without a leading ``./`` or ``/``).
    lower : str
        Lower-cased ``path``.
    padded : str
        ``lower`` prefixed with ``/``.
    name : str
        Lower-cased final path segment.
    """

    path: str
    lower: str
    padded: str
    name: str

    @property
    def segments(self) -> List[str]:
        return [part for part in self.path.split("/") if part]

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext if dot else ""


def normalize_path(display_path: str) -> NormalizedPath:
    """Normalise a display path for classification.

    The text after the last ``->`` is used so that renames are classified
    by their new path. One leading ``./`` or ``/`` is removed.
    """
    path = display_path
    if "->" in path:
        path = path.rsplit("->", 1)[1]
    path = path.strip()
    if path.startswith("./"):
        path = path[2:]
    elif path.startswith("/"):
        path = path[1:]
    lower = path.lower()
    return NormalizedPath(
        path=path,
        lower=lower,
        padded="/" + lower,
        name=lower.rsplit("/", 1)[-1],
    )


def contains(*needles: str) -> Matcher:
    return lambda p: any(needle in p.lower for needle in needles)


def segment(*needles: str) -> Matcher:
    """Match ``/needle/`` anywhere in the padded path."""
    return lambda p: any(needle in p.padded for needle in needles)


def endswith(*suffixes: str) -> Matcher:
    return lambda p: p.lower.endswith(suffixes)


def extension(*extensions: str) -> Matcher:
    return lambda p: p.extension in extensions


def filename(*names: str) -> Matcher:
    return lambda p: p.name in names


def any_of(*matchers: Matcher) -> Matcher:
    return lambda p: any(matcher(p) for matcher in matchers)


# ---------------------------------------------------------------------------
# Risk categories
# ---------------------------------------------------------------------------
DATABASE = "database"
AUTH_SECURITY = "auth/security"
INFRA = "infra"
CONFIG = "config"
DEPENDENCIES = "dependencies"

DATABASE_RULE = any_of(
    contains("migrations/", "migration/", "prisma", "flyway"),
    endswith(".sql"),
)
AUTH_RULE = contains("auth", "jwt", "oauth", "permission")
INFRA_RULE = contains("terraform", "helm", "k8s", ".github/workflows")
CONFIG_RULE = any_of(
    segment("/config/"),
    contains(".env"),
    endswith(".yml", ".yaml"),
)
DEPENDENCY_RULE = filename(
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
)

# (category, matcher, forces_high) in priority order
RISK_RULES: Tuple[Tuple[str, Matcher, bool], ...] = (
    (DATABASE, DATABASE_RULE, True),
    (AUTH_SECURITY, AUTH_RULE, True),
    (INFRA, INFRA_RULE, True),
    (CONFIG, CONFIG_RULE, False),
)

# Order of the "signals" change bullet
SIGNAL_RULES: Tuple[Tuple[str, Matcher], ...] = (
    (DEPENDENCIES, DEPENDENCY_RULE),
    (CONFIG, CONFIG_RULE),
    (DATABASE, DATABASE_RULE),
    (AUTH_SECURITY, AUTH_RULE),
    (INFRA, INFRA_RULE),
)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------
TEST_SEGMENTS = frozenset({"test", "tests", "__tests__", "spec"})
_TEST_FILENAME = re.compile(r"\.(spec|test)\.[^./]+$")


def is_test_file(p: NormalizedPath) -> bool:
    if any(part.lower() in TEST_SEGMENTS for part in p.segments):
        return True
    return bool(_TEST_FILENAME.search(p.name))


# ---------------------------------------------------------------------------
# Focus areas ("touches" bullet)
# ---------------------------------------------------------------------------
UI_EXTENSIONS = (
    "html", "htm", "css", "scss", "sass", "less",
    "vue", "svelte", "jsx", "tsx",
)
DATA_EXTENSIONS = ("csv", "tsv", "xlsx", "jsonl")
SCRIPT_EXTENSIONS = ("sh", "bash", "zsh", "ps1", "bat", "cmd")


def _is_docs(p: NormalizedPath) -> bool:
    if "/docs/" in p.padded:
        return True
    stem = p.name.rsplit(".", 1)[0]
    return p.extension == "md" and stem != "readme"


UI_RULE = any_of(
    extension(*UI_EXTENSIONS),
    segment("/ui/", "/components/", "/views/", "/pages/", "/styles/"),
)
API_RULE = segment("/api/", "/server/", "/backend/", "/controllers/", "/routes/", "/services/")
SCRIPTS_RULE = any_of(segment("/scripts/", "/bin/"), extension(*SCRIPT_EXTENSIONS))
DOCS_RULE: Matcher = _is_docs
ASSETS_RULE = segment("/assets/", "/public/")
DATA_RULE = extension(*DATA_EXTENSIONS)
LOCALIZATION_RULE = segment("/i18n/", "/locales/", "/l10n/")
TESTS_RULE: Matcher = is_test_file

FOCUS_RULES: Tuple[Tuple[str, Matcher], ...] = (
    ("UI", UI_RULE),
    ("API/backend", API_RULE),
    ("scripts", SCRIPTS_RULE),
    ("docs", DOCS_RULE),
    ("assets", ASSETS_RULE),
    ("data files", DATA_RULE),
    ("localization", LOCALIZATION_RULE),
    ("tests", TESTS_RULE),
)


# ---------------------------------------------------------------------------
# Release notes
# ---------------------------------------------------------------------------
CHANGELOG_NAME = re.compile(
    r"^(changelog|change_log|changes|history|news|release[_-]?notes|releasenotes|upgrading|upgrade)(\.[^/]*)?$",
    re.IGNORECASE,
)
RELEASE_NOTES_RULE = contains(
    "/release/",
    "/releases/",
    "/release-notes/",
    "/releasenotes/",
    "/notes/",
    "/changelog/",
)
DOCS_PATH_RULE = segment("/docs/")


def is_changelog(p: NormalizedPath) -> bool:
    return bool(CHANGELOG_NAME.match(p.name))


def top_folder(p: NormalizedPath) -> Optional[str]:
    """Return the first path segment, or ``None`` for a root-level file."""
    parts = p.segments
    if len(parts) >= 2:
        return parts[0]
    return None
