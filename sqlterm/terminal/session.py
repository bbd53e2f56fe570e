"""SQL*Plus-style terminal session: authentication, then a ``SQL>`` prompt."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlterm.config.constants import (
    DATABASE_BANNER,
    SQLPLUS_COPYRIGHT,
    SQLPLUS_RELEASE,
    SQLPLUS_VERSION,
    AuthStep,
    LineKind,
)
from sqlterm.orchestrator.sql_flow import AISQLFlow
from sqlterm.services.auth.service import AuthService
from sqlterm.services.formatting.formatter import format_query_result
from sqlterm.services.schema.service import SchemaService
from sqlterm.services.sql.executor import QueryExecutor
from sqlterm.services.sql.models import HistoryItem, QueryResult
from sqlterm.services.tenant import Tenant
from sqlterm.utils.text_processing import extract_ai_prompt, is_ai_command

logger = logging.getLogger(__name__)

ASK_ACCOUNT = "Do you have an account? (y/n):"
ASK_YES_NO = "Please enter y (yes) or n (no)"
USERNAME_PROMPT = "Enter user-name: "
PASSWORD_PROMPT = "Enter password: "
SQL_PROMPT = "SQL> "
AI_USAGE = "Please provide a prompt after /ai command. Example: /ai show me all users"

HELP_TEXT = (
    "Available commands:",
    "  SQL commands - Execute any SQL query",
    "  /ai <prompt> - Generate and execute SQL using AI",
    "  show tables - List the tables in your schema",
    "  desc <table> - Describe a table",
    "  clear scr - Clear the screen",
    "  help - Show this help message",
    "  exit - Disconnect and logout",
    "",
    "AI Examples:",
    "  /ai show me all tables",
    "  /ai create a users table with id and name",
    "  /ai find all records where name contains John",
    "",
)

_SHOW_TABLES = re.compile(r"^show\s+tables\s*;?$", re.IGNORECASE)
_DESCRIBE = re.compile(r"^desc(?:ribe)?\s+(\"[^\"]+\"|[\w$]+)\s*;?$", re.IGNORECASE)


@dataclass(frozen=True)
class TerminalLine:
    kind: LineKind
    content: str


def _output(content: str = "") -> TerminalLine:
    return TerminalLine(LineKind.OUTPUT, content)


def _error(content: str) -> TerminalLine:
    return TerminalLine(LineKind.ERROR, content)


def _success(content: str) -> TerminalLine:
    return TerminalLine(LineKind.SUCCESS, content)


class TerminalSession:
    """
    State machine behind the terminal.

    ``handle`` takes one input line and returns the lines to display. It
    never raises: every failure is rendered as an error line.
    """

    def __init__(
        self,
        auth: AuthService,
        executor: QueryExecutor,
        flow: AISQLFlow,
        schema_service: SchemaService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.auth = auth
        self.executor = executor
        self.flow = flow
        self.schema_service = schema_service
        self.clock = clock

        self.step = AuthStep.ASK
        self.is_registering = False
        self.tenant: Tenant | None = None
        self.history: list[str] = []
        self.ai_history: list[HistoryItem] = []
        self.screen_cleared = False
        self._pending_username = ""

    @property
    def is_authenticated(self) -> bool:
        return self.tenant is not None

    @property
    def is_password_input(self) -> bool:
        return not self.is_authenticated and self.step == AuthStep.PASSWORD

    @property
    def prompt(self) -> str:
        if self.is_authenticated:
            return SQL_PROMPT
        if self.step == AuthStep.USERNAME:
            return USERNAME_PROMPT
        if self.step == AuthStep.PASSWORD:
            return PASSWORD_PROMPT
        return ""

    def banner(self) -> list[TerminalLine]:
        return [
            _output(f"{SQLPLUS_RELEASE} on {self.clock().strftime('%a %b %d %Y')}"),
            _output(SQLPLUS_VERSION),
            _output(),
            _output(SQLPLUS_COPYRIGHT),
            _output(),
            _output(ASK_ACCOUNT),
        ]

    async def handle(self, line: str) -> list[TerminalLine]:
        text = (line or "").strip()
        shown = "*" * len(text) if self.is_password_input else text
        lines = [TerminalLine(LineKind.INPUT, f"{self.prompt}{shown}")]
        self.screen_cleared = False

        try:
            if self.is_authenticated:
                lines.extend(await self._handle_sql_state(text))
            else:
                lines.extend(await self._handle_auth(text))
        except Exception as e:
            logger.error("Terminal command failed: %s", e, exc_info=True)
            lines.extend([_error(f"ERROR: {e}"), _output()])

        if self.screen_cleared:
            return []
        return lines

    # Authentication

    def _reset_auth(self) -> list[TerminalLine]:
        self.step = AuthStep.ASK
        self.is_registering = False
        self.tenant = None
        self._pending_username = ""
        return [_output(ASK_ACCOUNT)]

    def _connected_lines(self) -> list[TerminalLine]:
        return [
            _success(f"Last Successful login time: {self.clock().strftime('%m/%d/%Y, %I:%M:%S %p')}"),
            _output(),
            _output("Connected to:"),
            _output(DATABASE_BANNER),
            _output(SQLPLUS_VERSION),
            _output(),
        ]

    async def _handle_auth(self, text: str) -> list[TerminalLine]:
        if self.step == AuthStep.ASK:
            answer = text.lower()
            if answer in ("y", "yes"):
                self.is_registering = False
            elif answer in ("n", "no"):
                self.is_registering = True
            else:
                return [_error(ASK_YES_NO), _output(ASK_ACCOUNT)]
            self.step = AuthStep.USERNAME
            return [_output(USERNAME_PROMPT)]

        if self.step == AuthStep.USERNAME:
            self._pending_username = text
            self.step = AuthStep.PASSWORD
            return [_output(PASSWORD_PROMPT)]

        username, password = self._pending_username, text
        if self.is_registering:
            problem = self.auth.validate_registration(username, password)
            result = None if problem else await self.auth.register(username, password)
            code = "ORA-00955"
        else:
            problem = None
            result = await self.auth.login(username, password)
            code = "ORA-01005"

        if result is None or not result.success:
            message = problem or (result.message if result else "")
            return [_error("ERROR:"), _error(f"{code}: {message}"), _output(), *self._reset_auth()]

        self.tenant = Tenant(result.username or username)
        self.step = AuthStep.ASK
        self._pending_username = ""
        self.history = []
        self.ai_history = []
        logger.info("Terminal session connected as '%s'", self.tenant.username)

        lines = []
        if self.is_registering:
            lines.append(_success(f"Account created for user: {self.tenant.username}"))
        self.is_registering = False
        return lines + self._connected_lines()

    # SQL prompt

    def _remember(self, text: str) -> None:
        if text and text not in self.history:
            self.history.append(text)

    async def _handle_sql_state(self, text: str) -> list[TerminalLine]:
        self._remember(text)
        command = text.lower()

        if command in ("clear scr", "clear screen"):
            self.screen_cleared = True
            return []

        if command in ("exit", "quit"):
            logger.info("Terminal session disconnected for '%s'", self.tenant.username)
            return [_output(f"Disconnected from {DATABASE_BANNER}"), _output(), *self._reset_auth()]

        if command == "help":
            return [_output(line) for line in HELP_TEXT]

        if not text:
            return []

        if is_ai_command(text):
            return await self._handle_ai(extract_ai_prompt(text))

        if _SHOW_TABLES.match(text):
            tables = await self.schema_service.list_tables(self.tenant)
            result = QueryResult(
                success=True,
                data=[{"table_name": table} for table in tables],
                row_count=len(tables),
                message="no rows selected",
            )
            return [_output(format_query_result(result)), _output()]

        describe = _DESCRIBE.match(text)
        if describe:
            return await self._describe(describe.group(1))

        result = await self.executor.execute(self.tenant, text)
        return [self._result_line(result), _output()]

    def _result_line(self, result: QueryResult) -> TerminalLine:
        formatted = format_query_result(result)
        return _output(formatted) if result.success else _error(formatted)

    async def _describe(self, name: str) -> list[TerminalLine]:
        table = name[1:-1] if name.startswith('"') else name.lower()
        description = await self.schema_service.describe_table(self.tenant, table)
        if description is None:
            return [_error(f"ERROR: Table '{table}' does not exist"), _output()]

        rows = [
            {
                "Name": column["column_name"],
                "Null?": "" if column["is_nullable"] == "YES" else "NOT NULL",
                "Type": column["data_type"],
            }
            for column in description.columns
        ]
        result = QueryResult(success=True, data=rows, row_count=len(rows))
        return [_output(format_query_result(result)), _output()]

    async def _handle_ai(self, prompt: str) -> list[TerminalLine]:
        if not prompt:
            return [_error(AI_USAGE), _output()]

        lines = [_output(f'Generating SQL for: "{prompt}"'), _output()]
        flow = await self.flow.run(self.tenant, prompt, history=self.ai_history)

        if not flow.steps:
            lines.append(_error(f"AI Error: {flow.error or 'Failed to generate SQL'}"))
            if flow.explanation:
                lines.append(_output(flow.explanation))
            lines.append(_output())
            self.ai_history.append(HistoryItem(prompt=prompt, error=flow.error))
            return lines

        for step in flow.steps:
            lines.extend([_success(f"Generated SQL: {step.sql}"), _output(), _output("Executing query...")])
            if step.result.success:
                lines.append(_output(format_query_result(step.result)))
            else:
                lines.append(_error(f"ERROR: {flow.error or step.result.error}"))
            lines.append(_output())

        self.ai_history.append(
            HistoryItem(prompt=prompt, sql_query=" ".join(flow.commands), error=flow.error)
        )
        return lines
