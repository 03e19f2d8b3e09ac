"""
Textual guard for model-written SQL against the dataset rows table.

The guard is a best-effort heuristic built on regular expressions, not a SQL
parser. It rejects the obvious destructive and out-of-scope statements but can
be bypassed by obfuscated keywords or comment tricks; it must not be the only
line of defence (run the executor with a read-only database role).
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Union

from novablick.orchestrator.contracts import DatasetScope

DEFAULT_ROWS_TABLE = "dataset_rows"
DEFAULT_SCOPE_COLUMN = "dataset_id"
DEFAULT_ROW_CAP = 1000
DEFAULT_DIALECT = "postgresql"

MUTATING_KEYWORDS: tuple[str, ...] = (
    "insert",
    "update",
    "delete",
    "drop",
    "truncate",
    "alter",
    "create",
    "exec",
    "execute",
    "grant",
    "revoke",
)

_MUTATING_RE = re.compile(
    r"\b(" + "|".join(MUTATING_KEYWORDS) + r")\b",
    re.IGNORECASE,
)
_LEADING_WORD_RE = re.compile(r"^\s*([a-z_]+)", re.IGNORECASE)
# A LIMIT clause closing the statement; LIMIT inside a subquery does not cap the outer rows.
_TRAILING_LIMIT_RE = re.compile(
    r"\blimit\s+\d+(\s*,\s*\d+)?(\s+offset\s+\d+)?[\s;]*$",
    re.IGNORECASE,
)
_QUOTED_ID_RE = re.compile(r"""['"]([^'"]+)['"]""")


class RejectionReason(str, Enum):
    NOT_SELECT = "not_select"
    FORBIDDEN_KEYWORD = "forbidden_keyword"
    MISSING_TABLE = "missing_table"
    MISSING_SCOPE_FILTER = "missing_scope_filter"
    UNAUTHORIZED_DATASET = "unauthorized_dataset"


@dataclass(frozen=True, slots=True)
class QueryPolicy:
    rows_table: str = DEFAULT_ROWS_TABLE
    scope_column: str = DEFAULT_SCOPE_COLUMN
    row_cap: int = DEFAULT_ROW_CAP
    # SQLAlchemy backend name of the executing database; shapes the tool description.
    dialect: str = DEFAULT_DIALECT


@dataclass(frozen=True, slots=True)
class QueryApproved:
    sql: str
    dataset_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def approved(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class QueryRejected:
    reason: RejectionReason
    message: str

    @property
    def approved(self) -> bool:
        return False


GuardVerdict = Union[QueryApproved, QueryRejected]


def _format_scope(scope: DatasetScope) -> str:
    return ", ".join(scope.dataset_ids)


def _scope_filter_patterns(scope_column: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    column = re.escape(scope_column)
    equals = re.compile(rf"\b{column}\s*=\s*['\"]([^'\"]+)['\"]", re.IGNORECASE)
    in_list = re.compile(rf"\b{column}\s+in\s*\(([^)]*)\)", re.IGNORECASE)
    return equals, in_list


def extract_scope_ids(query: str, scope_column: str = DEFAULT_SCOPE_COLUMN) -> List[str]:
    """Return every dataset id used in ``= '<id>'`` or ``IN ('<id>', ...)`` filters, in order."""

    equals, in_list = _scope_filter_patterns(scope_column)
    found: list[tuple[int, str]] = []
    for match in equals.finditer(query):
        found.append((match.start(), match.group(1)))
    for match in in_list.finditer(query):
        for quoted in _QUOTED_ID_RE.finditer(match.group(1)):
            found.append((match.start(1) + quoted.start(), quoted.group(1)))
    return [dataset_id for _, dataset_id in sorted(found)]


def _mask_sql(query: str) -> str:
    """
    Return ``query`` with comments blanked to spaces and the contents of quoted
    literals replaced by ``_``. The result has the same length, so offsets into
    it are offsets into ``query``.
    """

    masked: list[str] = []
    index, length = 0, len(query)
    while index < length:
        char = query[index]
        if char in "'\"":
            end = index + 1
            while end < length:
                if query[end] == char:
                    # Doubled quotes escape a quote inside the literal.
                    if end + 1 < length and query[end + 1] == char:
                        end += 2
                        continue
                    break
                end += 1
            if end < length:
                masked.append(char + "_" * (end - index - 1) + char)
                index = end + 1
            else:
                masked.append(char + "_" * (length - index - 1))
                index = length
        elif query.startswith("--", index):
            end = query.find("\n", index)
            end = length if end == -1 else end
            masked.append(" " * (end - index))
            index = end
        elif query.startswith("/*", index):
            end = query.find("*/", index + 2)
            end = length if end == -1 else end + 2
            masked.append(" " * (end - index))
            index = end
        else:
            masked.append(char)
            index += 1
    return "".join(masked)


def apply_row_cap(query: str, row_cap: int = DEFAULT_ROW_CAP) -> str:
    """Append ``LIMIT row_cap`` unless the statement already ends in a LIMIT clause.

    Trailing comments and semicolons are dropped first so the cap cannot end up
    inside a comment.
    """

    masked = _mask_sql(query)
    if _TRAILING_LIMIT_RE.search(masked):
        return query
    statement = masked.rstrip()
    while statement.endswith(";"):
        statement = statement[:-1].rstrip()
    return f"{query[:len(statement)].lstrip()} LIMIT {row_cap}"


def validate_query(
    query: str,
    scope: DatasetScope | Iterable[str],
    policy: QueryPolicy = QueryPolicy(),
) -> GuardVerdict:
    """
    Validate ``query`` against ``scope``. The first failing check wins.

    Never raises; the verdict is a value so the rejection text can be handed
    back to the model as tool output.
    """

    if not isinstance(scope, DatasetScope):
        scope = DatasetScope(dataset_ids=tuple(scope))

    normalized = query.strip().lower()

    if not normalized.startswith("select"):
        leading = _LEADING_WORD_RE.match(normalized)
        found = ""
        if leading and leading.group(1) in MUTATING_KEYWORDS:
            found = f" Found {leading.group(1).upper()}."
        return QueryRejected(
            reason=RejectionReason.NOT_SELECT,
            message=(
                "Only SELECT queries are allowed. UPDATE, DELETE, DROP, INSERT, and other "
                f"operations are forbidden.{found}"
            ),
        )

    keyword = _MUTATING_RE.search(query)
    if keyword:
        return QueryRejected(
            reason=RejectionReason.FORBIDDEN_KEYWORD,
            message=(
                f"Forbidden SQL keyword detected: {keyword.group(1).upper()}. "
                "Only SELECT queries are allowed."
            ),
        )

    if not re.search(rf"\b{re.escape(policy.rows_table.lower())}\b", normalized):
        return QueryRejected(
            reason=RejectionReason.MISSING_TABLE,
            message=f'Query must reference the "{policy.rows_table}" table.',
        )

    referenced = extract_scope_ids(query, policy.scope_column)
    if not referenced:
        return QueryRejected(
            reason=RejectionReason.MISSING_SCOPE_FILTER,
            message=(
                f"Query must filter by {policy.scope_column} in the WHERE clause. "
                f"You can only query these datasets: {_format_scope(scope)}"
            ),
        )

    for dataset_id in referenced:
        if dataset_id not in scope:
            return QueryRejected(
                reason=RejectionReason.UNAUTHORIZED_DATASET,
                message=(
                    f'Access denied: Dataset ID "{dataset_id}" is not in the allowed list. '
                    f"Allowed IDs: {_format_scope(scope)}"
                ),
            )

    return QueryApproved(
        sql=apply_row_cap(query, policy.row_cap),
        dataset_ids=tuple(dict.fromkeys(referenced)),
    )


__all__ = [
    "DEFAULT_DIALECT",
    "DEFAULT_ROW_CAP",
    "DEFAULT_ROWS_TABLE",
    "DEFAULT_SCOPE_COLUMN",
    "GuardVerdict",
    "MUTATING_KEYWORDS",
    "QueryApproved",
    "QueryPolicy",
    "QueryRejected",
    "RejectionReason",
    "apply_row_cap",
    "extract_scope_ids",
    "validate_query",
]
