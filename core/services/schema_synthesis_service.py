"""
Schema synthesis service.

Turns free-text report instructions into new metric columns with the help
of the suggestion service (an LLM behind core.ai_client.AIClient).

The work is split in two stages so that the network stage can run on a
worker thread while the grid is only ever mutated on the caller's thread:

    batch = service.fetch_batch(instructions, session.column_order)   # network
    added = service.apply_batch(session, batch)                       # grid mutation

synthesize() runs both stages in one call. At most one fetch is in flight
per service instance; a second request is refused, not queued.
"""

import json
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..ai_client import AIClient, parse_json_content
from ..domain.grid import MetricType, ProposedColumn
from ..domain.grid.models import RESERVED_FIELDS
from .metric_grid_service import MetricGridService


class SuggestionError(Exception):
    """The suggestion service failed or returned a non-conforming response."""


class SynthesisBusyError(Exception):
    """A synthesis request is already in flight."""


@dataclass
class PlannedColumn:
    """A proposal that will be added, with its resolved option list."""
    proposal: ProposedColumn
    options: List[str] = field(default_factory=list)


@dataclass
class SuggestionBatch:
    """
    Result of the network stage.

    Attributes:
        planned: Columns to add, in the order the service returned them
        skipped: Proposed fields that already existed or repeated an earlier proposal
        option_failures: Select columns whose option request failed (options left empty)
    """
    planned: List[PlannedColumn] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    option_failures: List[str] = field(default_factory=list)


def parse_suggestions(content: str) -> List[ProposedColumn]:
    """
    Parse the column suggestion response.

    Accepts a JSON array of column objects, or an object wrapping the array
    under "columns".

    Raises:
        SuggestionError: if the content is not a conforming suggestion list
    """
    try:
        data = parse_json_content(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise SuggestionError(f"Suggestion response is not valid JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("columns"), list):
        data = data["columns"]
    if not isinstance(data, list):
        raise SuggestionError("Suggestion response must be a list of columns")

    try:
        return [ProposedColumn.from_dict(item) for item in data]
    except ValueError as e:
        raise SuggestionError(str(e)) from e


def parse_options(content: str) -> List[str]:
    """
    Parse an option list response (JSON array of strings, or {"options": [...]}).

    Raises:
        SuggestionError: if the content is not a list of strings
    """
    try:
        data = parse_json_content(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise SuggestionError(f"Options response is not valid JSON: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("options"), list):
        data = data["options"]
    if not isinstance(data, list) or not all(isinstance(o, str) for o in data):
        raise SuggestionError("Options response must be a list of strings")
    return list(data)


class SchemaSynthesisService:
    """
    Service for generating metric columns from instructions.

    Args:
        client: Object with analyze_instructions(text) and
                generate_column_options(header_name, description) methods
                returning responses with a .content string (an AIClient)
    """

    def __init__(self, client: AIClient):
        self._client = client
        self._in_flight = threading.Lock()

    @property
    def client(self) -> AIClient:
        return self._client

    @property
    def is_busy(self) -> bool:
        return self._in_flight.locked()

    # -------------------------------------------------------------------------
    # Suggestion service calls
    # -------------------------------------------------------------------------

    def request_suggestions(self, instructions: str) -> List[ProposedColumn]:
        """First call: propose columns for the instructions."""
        try:
            response = self._client.analyze_instructions(instructions)
        except Exception as e:
            raise SuggestionError(f"Failed to analyze instructions: {e}") from e
        return parse_suggestions(response.content)

    def request_options(self, proposal: ProposedColumn) -> List[str]:
        """Second call: propose options for one select column."""
        try:
            response = self._client.generate_column_options(proposal.header_name, proposal.description)
        except Exception as e:
            raise SuggestionError(f"Failed to generate options for {proposal.field}: {e}") from e
        return parse_options(response.content)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def fetch_batch(self, instructions: str, existing_fields: Iterable[str]) -> SuggestionBatch:
        """
        Network stage: fetch proposals and options for the new select columns.

        Proposals are considered in order; a proposal whose field is already
        present, is reserved for row identity, or was proposed earlier in the
        batch is skipped.

        Raises:
            SynthesisBusyError: another fetch is in flight
            SuggestionError: the column suggestion call failed (nothing to apply)
        """
        if not self._in_flight.acquire(blocking=False):
            raise SynthesisBusyError("Column generation is already running")
        try:
            print(f"[schema-synthesis] Requesting column suggestions ({len(instructions)} chars)")
            proposals = self.request_suggestions(instructions)

            batch = SuggestionBatch()
            seen = set(existing_fields) | RESERVED_FIELDS
            for proposal in proposals:
                if proposal.field in seen:
                    batch.skipped.append(proposal.field)
                    continue
                seen.add(proposal.field)

                options: List[str] = []
                if proposal.metric_type == MetricType.SELECT:
                    try:
                        options = self.request_options(proposal)
                    except SuggestionError as e:
                        print(f"[schema-synthesis] Options for {proposal.field} left empty: {e}")
                        batch.option_failures.append(proposal.field)
                batch.planned.append(PlannedColumn(proposal, options))

            print(f"[schema-synthesis] {len(batch.planned)} new column(s), {len(batch.skipped)} skipped")
            return batch
        finally:
            self._in_flight.release()

    def apply_batch(self, session: MetricGridService, batch: SuggestionBatch) -> List[str]:
        """
        Grid stage: add the planned columns to the session in order.

        Columns that appeared in the session since the fetch are skipped.
        A closed session is left untouched.

        Returns:
            Fields that were added
        """
        if session.closed:
            print("[schema-synthesis] Session closed; discarding generated columns")
            return []

        added = []
        for planned in batch.planned:
            proposal = planned.proposal
            if proposal.field in RESERVED_FIELDS or session.schema.has_column(proposal.field):
                continue
            session.add_column(proposal.field, proposal.header_name, proposal.metric_type, planned.options)
            added.append(proposal.field)
        return added

    def synthesize(self, session: MetricGridService, instructions: str) -> Optional[List[str]]:
        """
        Generate columns for the instructions and add them to the session.

        Outcomes are reported through the session's notification channel.

        Returns:
            Added fields, or None if the request was refused or failed
        """
        if not self.check_instructions(session, instructions):
            return None

        try:
            batch = self.fetch_batch(instructions, session.column_order)
        except (SynthesisBusyError, SuggestionError) as e:
            self.report_failure(session, e)
            return None

        return self.finish(session, batch)

    @staticmethod
    def check_instructions(session: MetricGridService, instructions: str) -> bool:
        """Report and return False when there is nothing to analyze."""
        if not instructions or not instructions.strip():
            session.notifications.error("Пожалуйста, введите инструкции перед генерацией столбцов")
            return False
        return True

    def finish(self, session: MetricGridService, batch: SuggestionBatch) -> List[str]:
        """Apply a fetched batch and report success."""
        added = self.apply_batch(session, batch)
        if not session.closed:
            session.notifications.success("Столбцы успешно сгенерированы на основе инструкций!")
        return added

    @staticmethod
    def report_failure(session: MetricGridService, error: Exception) -> None:
        """Report a refused or failed fetch."""
        if session.closed:
            return
        if isinstance(error, SynthesisBusyError):
            session.notifications.error("Генерация столбцов уже выполняется")
            return
        print(f"[schema-synthesis] Error generating columns: {error}")
        session.notifications.error(
            "Ошибка при генерации столбцов. Пожалуйста, проверьте инструкции и попробуйте снова."
        )


def create_synthesis_service(settings: Optional[dict] = None) -> SchemaSynthesisService:
    """Build a service whose AIClient is configured from the app config."""
    from ..config import get_ai_settings

    settings = settings if settings is not None else get_ai_settings()
    client = AIClient(
        provider=settings.get('ai_provider', 'openai'),
        api_key=settings.get('api_key'),
        model=settings.get('ai_model') or None,
        ollama_base_url=settings.get('ollama_base_url') or None,
    )
    return SchemaSynthesisService(client)
