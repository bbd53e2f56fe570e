"""
SQL access rules and security checks for tenant schemas.

Checks run over a token-normalized copy of the query produced with sqlparse:
comments are dropped and whitespace is collapsed, so ``DROP/**/DATABASE``
reads the same as ``DROP DATABASE``. Single-quoted literals are masked for the
keyword rules and kept for the rules that inspect literal schema filters.
Dollar-quoted bodies are masked too; statements and functions that run SQL
held in a literal are denied outright.
"""

import re
from dataclasses import dataclass

import sqlparse
from sqlparse import tokens as T

from sqlterm.services.tenant import Tenant

# =============================================================================
# Rule Tables
# =============================================================================

# Schemas a tenant may name explicitly besides their own; both get further
# checks below.
PASSTHROUGH_SCHEMAS: frozenset[str] = frozenset({"public", "information_schema"})

DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\bdrop\s+database\b",
        r"\bcreate\s+database\b",
        r"\bdrop\s+user\b",
        r"\bcreate\s+user\b",
        r"\balter\s+user\b",
        r"\b(create|drop|alter)\s+role\b",
        r"\bset\s+(session\s+)?role\b",
        r"\bset\s+session\s+authorization\b",
        r"\bgrant\b",
        r"\brevoke\b",
        r"\bpg_authid\b",
        r"\bpg_shadow\b",
        r"\bpg_user",
    )
)

# Statements and functions that run SQL or resolve relation names held in
# string literals.
DYNAMIC_SQL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"(?:^|;)\s*do\b",
        r"\bexecute\b",
        r"\bcreate\s+(?:or\s+replace\s+)?(?:trusted\s+)?(?:procedural\s+)?"
        r"(?:function|procedure|language|extension)\b",
        r"\b(?:query|table|schema|database|cursor)_to_xml\w*\s*\(",
        r"\bdblink\w*\s*\(",
        r"\bto_reg\w+\s*\(",
        r"\bhas_\w+_privilege\s*\(",
    )
)

TRANSACTION_CONTROL_PATTERN = re.compile(
    r"^(begin|start\s+transaction|commit|rollback|end|abort|savepoint|release|prepare\s+transaction)\b"
)

# Catalog relations a tenant may read, provided the query filters on its own schema.
ALLOWED_CATALOG_RELATIONS: frozenset[str] = frozenset(
    {
        "information_schema.tables",
        "information_schema.columns",
        "information_schema.key_column_usage",
        "information_schema.table_constraints",
        "information_schema.constraint_column_usage",
        "pg_tables",
    }
)

_CATALOG_DISJUNCTION = re.compile(r"\bor\b|\bunion\b|\bexcept\b|\bintersect\b")
_LITERAL_SCHEMA_FILTER = re.compile(
    r"\b(?:schemaname|table_schema)\s*=\s*['\"]([^'\"]+)['\"]", re.IGNORECASE
)
_SEARCH_PATH_SET = re.compile(
    r"\bset\s+(?:local\s+|session\s+)?search_path\s*(?:to|=)\s*([^;]+)", re.IGNORECASE
)
_SEARCH_PATH_CONFIG = re.compile(r"\bset_config\s*\(\s*'search_path'")
# Literals PostgreSQL resolves as relation names: sequence functions and reg* casts.
_NAME_LITERALS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\b(?:nextval|currval|setval)\s*\(\s*'((?:[^']|'')*)'",
        r"'((?:[^']|'')*)'\s*::\s*reg\w+",
        r"\bcast\s*\(\s*'((?:[^']|'')*)'\s+as\s+reg\w+",
        r"\breg\w+\s+'((?:[^']|'')*)'",
    )
)
_LITERAL_QUALIFIER = re.compile(r'\s*("(?:[^"]|"")+"|[^."\s]+)\s*\.')
_SCHEMA_DDL = re.compile(
    r"\b(?:create|drop|alter|comment\s+on)\s+schema\s+(?:if\s+(?:not\s+)?exists\s+)?([^;]+)",
    re.IGNORECASE,
)
_SCHEMA_DDL_TAIL = re.compile(
    r"\s+(?:cascade|restrict|rename|owner|authorization|is|create)\b.*$", re.IGNORECASE
)
_SCHEMA_RENAME = re.compile(r"\brename\s+to\s+(\"(?:[^\"]|\"\")+\"|[\w$]+)", re.IGNORECASE)

_RELATION_KEYWORDS: frozenset[str] = frozenset(
    {"FROM", "INTO", "UPDATE", "TABLE", "ONLY", "REFERENCES", "TRUNCATE", "COPY"}
)
# Keywords that may sit between a relation keyword and the relation name.
_TRANSPARENT_KEYWORDS: frozenset[str] = frozenset({"AS", "ONLY", "LATERAL", "IF", "NOT", "EXISTS"})
_NON_RELATION_WORDS: frozenset[str] = (
    _RELATION_KEYWORDS | _TRANSPARENT_KEYWORDS | frozenset({"SELECT", "VALUES", "WITH"})
)

ACCESS_DENIED_CATALOG = (
    "Access denied: You can only access your own schema information for privacy protection."
)
ACCESS_DENIED_PUBLIC = "Access denied: Cannot access public schema for privacy protection."
OPERATION_NOT_ALLOWED = "Operation not allowed for security reasons"
TRANSACTION_CONTROL_NOT_ALLOWED = (
    "Transaction control statements are not allowed; each submission runs in its own transaction"
)


def schema_access_denied(schema: str, tenant: Tenant) -> str:
    return (
        f"Access denied: Cannot access schema '{schema}'. "
        f"You can only access your own schema '{tenant.schema_name}'."
    )


def literal_schema_denied(value: str, tenant: Tenant) -> str:
    return (
        f"Access denied: You can only access your own schema '{tenant.schema_name}'. "
        f"Attempted to access '{value}'."
    )


# =============================================================================
# Normalization
# =============================================================================


@dataclass(frozen=True)
class SQLToken:
    """A significant token: ``kind`` is name, quoted, keyword, literal, punct or other."""

    kind: str
    value: str

    @property
    def identifier(self) -> str:
        """The identifier as PostgreSQL resolves it (unquoted names fold to lower case)."""
        if self.kind == "quoted":
            return self.value[1:-1].replace('""', '"')
        return self.value.lower()

    @property
    def keyword(self) -> str:
        return re.sub(r"\s+", " ", self.value.upper())


@dataclass(frozen=True)
class NormalizedSQL:
    """Comment-free views of a query.

    ``raw`` keeps case and literals, ``text`` is ``raw`` lower-cased and
    ``masked`` is ``text`` with every string literal replaced by ``''``.
    """

    raw: str
    text: str
    masked: str
    tokens: tuple[SQLToken, ...]


def _token_kind(token) -> str:
    ttype = token.ttype
    if ttype in T.String.Symbol:
        return "quoted"
    if ttype in T.String or ttype is T.Literal:
        return "literal"
    if ttype in T.Name:
        return "name"
    if ttype in T.Keyword:
        return "keyword"
    if ttype in T.Punctuation:
        return "punct"
    return "other"


def normalize_sql(sql: str) -> NormalizedSQL:
    """Strip comments and collapse whitespace, keeping a literal-masked copy."""
    raw_parts: list[str] = []
    masked_parts: list[str] = []
    significant: list[SQLToken] = []

    for statement in sqlparse.parse(sql):
        for token in statement.flatten():
            if token.ttype in T.Comment or token.is_whitespace:
                raw_parts.append(" ")
                masked_parts.append(" ")
                continue
            kind = _token_kind(token)
            raw_parts.append(token.value)
            masked_parts.append("''" if kind == "literal" else token.value)
            significant.append(SQLToken(kind, token.value))

    raw = re.sub(r"\s+", " ", "".join(raw_parts)).strip()
    masked = re.sub(r"\s+", " ", "".join(masked_parts)).strip().lower()
    return NormalizedSQL(raw=raw, text=raw.lower(), masked=masked, tokens=tuple(significant))


# =============================================================================
# Qualified Name Extraction
# =============================================================================


@dataclass(frozen=True)
class QualifiedName:
    """A dotted name such as ``schema.table`` or ``alias.column``."""

    parts: tuple[str, ...]
    relation_position: bool
    is_call: bool = False


def _is_identifier(token: SQLToken) -> bool:
    if token.kind in ("name", "quoted"):
        return True
    return token.kind == "keyword" and token.value.isidentifier()


def _is_punct(tokens: tuple[SQLToken, ...], index: int, value: str) -> bool:
    return index < len(tokens) and tokens[index].kind == "punct" and tokens[index].value == value


def _alias_after(tokens: tuple[SQLToken, ...], index: int) -> str | None:
    if index >= len(tokens):
        return None
    token = tokens[index]
    if token.kind == "keyword" and token.keyword == "AS" and index + 1 < len(tokens):
        following = tokens[index + 1]
        return following.identifier if _is_identifier(following) else None
    if token.kind in ("name", "quoted"):
        return token.identifier
    return None


def extract_qualified_names(tokens: tuple[SQLToken, ...]) -> tuple[list[QualifiedName], set[str]]:
    """
    Walk the token stream and return dotted names plus the relation names and
    aliases the query declares.

    A name sits in a relation position when it follows FROM/JOIN/INTO/UPDATE/...
    or a comma of a FROM list at the same parenthesis depth.
    """
    names: list[QualifiedName] = []
    relations: set[str] = set()

    depth = 0
    from_list_depth: int | None = None
    expect_relation = False
    i = 0
    while i < len(tokens):
        token = tokens[i]

        if token.kind == "punct":
            if token.value == "(":
                depth += 1
            elif token.value == ")":
                depth -= 1
                if from_list_depth is not None and depth < from_list_depth:
                    from_list_depth = None
                alias = _alias_after(tokens, i + 1)
                if alias:
                    relations.add(alias)
            elif token.value == ";":
                from_list_depth = None
            expect_relation = token.value == "," and from_list_depth == depth
            i += 1
            continue

        if token.kind == "keyword" and not (
            expect_relation and _is_identifier(token) and token.keyword not in _NON_RELATION_WORDS
        ):
            keyword = token.keyword
            if keyword == "FROM":
                from_list_depth = depth
                expect_relation = True
            elif keyword.endswith("JOIN") or keyword in _RELATION_KEYWORDS:
                expect_relation = True
            elif keyword not in _TRANSPARENT_KEYWORDS:
                if from_list_depth == depth:
                    from_list_depth = None
                expect_relation = False
            i += 1
            continue

        if _is_identifier(token):
            parts = [token.identifier]
            j = i + 1
            while _is_punct(tokens, j, ".") and j + 1 < len(tokens) and _is_identifier(tokens[j + 1]):
                parts.append(tokens[j + 1].identifier)
                j += 2

            if len(parts) > 1:
                names.append(
                    QualifiedName(tuple(parts), expect_relation, is_call=_is_punct(tokens, j, "("))
                )
            if expect_relation:
                relations.add(parts[-1])
                alias = _alias_after(tokens, j)
                if alias:
                    relations.add(alias)
            expect_relation = False
            i = j
            continue

        expect_relation = False
        i += 1

    return names, relations


def referenced_schemas(normalized: NormalizedSQL) -> list[str]:
    """Schemas named by dotted references, in textual order."""
    names, relations = extract_qualified_names(normalized.tokens)
    schemas: list[str] = []
    for name in names:
        if name.relation_position or name.is_call:
            schema = name.parts[-2]
        elif len(name.parts) >= 3:
            schema = name.parts[-3]
        elif name.parts[0] in relations:
            continue
        else:
            schema = name.parts[0]
        schemas.append(schema)
    return schemas


def _literal_qualifier(value: str) -> str | None:
    """Schema part of a relation name written as a literal (``'bob.t'``), if any."""
    match = _LITERAL_QUALIFIER.match(value.replace("''", "'"))
    if not match:
        return None
    qualifier = match.group(1)
    if qualifier.startswith('"'):
        return qualifier[1:-1].replace('""', '"')
    return qualifier.lower()


def _split_identifier_list(text: str) -> list[str]:
    identifiers = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        if len(item) > 1 and item.startswith('"') and item.endswith('"'):
            identifiers.append(item[1:-1].replace('""', '"'))
        else:
            identifiers.append(item.strip("'").lower())
    return identifiers


# =============================================================================
# Rules
# =============================================================================


def check_literal_schema_filters(sql: str, tenant: Tenant) -> str | None:
    """Deny literal ``schemaname = '<x>'`` / ``table_schema = '<x>'`` filters naming another schema."""
    for match in _LITERAL_SCHEMA_FILTER.finditer(normalize_sql(sql).raw):
        requested = match.group(1)
        if requested != tenant.schema_name:
            return literal_schema_denied(requested, tenant)
    return None


def check_dangerous_operations(sql: str) -> str | None:
    """Deny operations that are never allowed, whoever the tenant is."""
    masked = normalize_sql(sql).masked
    for pattern in DANGEROUS_PATTERNS + DYNAMIC_SQL_PATTERNS:
        if pattern.search(masked):
            return OPERATION_NOT_ALLOWED
    return None


def _check_schema_references(normalized: NormalizedSQL, tenant: Tenant) -> str | None:
    for schema in referenced_schemas(normalized):
        if schema != tenant.schema_name and schema not in PASSTHROUGH_SCHEMAS:
            return schema_access_denied(schema, tenant)

    for pattern in _NAME_LITERALS:
        for match in pattern.finditer(normalized.raw):
            schema = _literal_qualifier(match.group(1))
            if schema is not None and schema != tenant.schema_name:
                return schema_access_denied(schema, tenant)

    for match in _SEARCH_PATH_SET.finditer(normalized.raw):
        for schema in _split_identifier_list(match.group(1)):
            if schema != tenant.schema_name:
                return schema_access_denied(schema, tenant)
    if _SEARCH_PATH_CONFIG.search(normalized.text):
        return schema_access_denied("search_path", tenant)

    for match in _SCHEMA_DDL.finditer(normalized.raw):
        clause = match.group(1)
        targets = _split_identifier_list(_SCHEMA_DDL_TAIL.sub("", clause))
        renamed = _SCHEMA_RENAME.search(clause)
        if renamed:
            targets.extend(_split_identifier_list(renamed.group(1)))
        for schema in targets:
            if schema != tenant.schema_name:
                return schema_access_denied(schema, tenant)
    return None


def _catalog_references(normalized: NormalizedSQL) -> list[str]:
    references = []
    names, _ = extract_qualified_names(normalized.tokens)
    for name in names:
        if "information_schema" in name.parts[:-1]:
            index = name.parts.index("information_schema")
            references.append(f"information_schema.{name.parts[index + 1]}")
    for token in normalized.tokens:
        if _is_identifier(token) and token.identifier.lower().startswith("pg_"):
            references.append(token.identifier.lower())
    return references


def _catalog_filter_present(relation: str, text: str, tenant: Tenant) -> bool:
    key = re.escape(tenant.schema_key)
    if relation == "pg_tables":
        return re.search(rf"\bschemaname\s*=\s*'{key}'", text) is not None
    return (
        re.search(rf"\btable_schema\s*=\s*'{key}'", text) is not None
        or re.search(r"\btable_schema\s*=\s*current_schema\b", text) is not None
    )


def _check_catalog_access(normalized: NormalizedSQL, tenant: Tenant) -> str | None:
    references = _catalog_references(normalized)
    if not references:
        return None

    if _CATALOG_DISJUNCTION.search(normalized.masked):
        return ACCESS_DENIED_CATALOG
    for relation in references:
        if relation not in ALLOWED_CATALOG_RELATIONS:
            return ACCESS_DENIED_CATALOG
        if not _catalog_filter_present(relation, normalized.text, tenant):
            return ACCESS_DENIED_CATALOG
    return None


def _check_public_schema(normalized: NormalizedSQL) -> str | None:
    if "public" in referenced_schemas(normalized):
        return ACCESS_DENIED_PUBLIC
    return None


def validate_schema_access(sql: str, tenant: Tenant) -> tuple[bool, str | None]:
    """
    Decide whether ``sql`` stays inside the tenant's schema.

    Rules, first match wins:
    1. Dotted references, ``SET search_path`` and schema DDL may only name the
       tenant's schema (``public`` and ``information_schema`` pass to later rules).
    2. ``information_schema.*`` / ``pg_*`` only through allow-listed relations
       filtered on the tenant's schema, with no OR/UNION widening the filter.
    3. No ``public.<table>``.
    4. No dangerous operations or dynamic SQL.
    5. Literal schema filters must name the tenant's schema.

    Returns:
        Tuple of (is_allowed, error_message)
    """
    if not sql or not sql.strip():
        return False, "SQL query is empty"

    normalized = normalize_sql(sql)

    error = (
        _check_schema_references(normalized, tenant)
        or _check_catalog_access(normalized, tenant)
        or _check_public_schema(normalized)
        or check_dangerous_operations(sql)
        or check_literal_schema_filters(sql, tenant)
    )
    if error:
        return False, error
    return True, None


def is_transaction_control(statement: str) -> bool:
    """True for BEGIN/COMMIT/ROLLBACK-style statements."""
    return TRANSACTION_CONTROL_PATTERN.match(normalize_sql(statement).masked) is not None


# =============================================================================
# Main Validation Function
# =============================================================================


def validate_sql_query(sql: str, tenant: Tenant) -> tuple[bool, list[str]]:
    """
    Validate a tenant query in executor order: literal schema filters, schema
    access rules, then dangerous operations.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    error = check_literal_schema_filters(sql, tenant)
    if error:
        return False, [error]

    is_allowed, error = validate_schema_access(sql, tenant)
    if not is_allowed:
        return False, [error or "Access denied"]

    error = check_dangerous_operations(sql)
    if error:
        return False, [error]

    return True, []
