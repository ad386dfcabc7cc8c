"""
Process-wide state container for the deal team.

Holds named slices (agents, deals, messages, logs, portfolio, firm profile,
current view). Lifecycle:
- hydrate(): every slice is read from the key-value store once at startup;
  a missing or unreadable key falls back to the slice default, so startup
  never fails because of stored data
- write-back: each mutation persists the mutated slice alone; store failures
  are logged and swallowed because the in-memory state stays authoritative
- reset(): clears every durable key and rebuilds the defaults

The container is passed explicitly to the StepRunner and the orchestrator.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

import structlog
from pydantic import TypeAdapter

from ..models.deal import DealRecord, DealRoom, DealStage
from ..models.messages import FileAttachment, Message, MessageAttachment, MessageRole
from ..models.pipeline import Agent, AgentRole, AgentStatus, StepRecord, default_agents
from ..models.portfolio import FirmProfile, PortfolioCompany
from ..pipeline.normalizer import normalize
from ..utils import new_id
from .kv import KeyValueStore

logger = structlog.get_logger(__name__)


class StateSlice(str, Enum):
    """Durable slice names; stored under ``<prefix><name>``."""

    AGENTS = 'agents'
    DEALS = 'deals'
    MESSAGES = 'messages'
    LOGS = 'logs'
    PORTFOLIO = 'portfolio'
    FIRM_PROFILE = 'firmProfile'
    CURRENT_VIEW = 'currentView'


# Single-deal key written before deals became a collection.
LEGACY_DEAL_KEY = 'dealData'
LEGACY_DEAL_ID = 'legacy-migration'


class ViewMode(str, Enum):
    PIPELINE = 'pipeline'
    PORTFOLIO = 'portfolio'


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# =============================================================================
# Slice Codecs
# =============================================================================


@dataclass(frozen=True)
class _Codec:
    load: Callable[[str], Any]
    dump: Callable[[Any], str]


def _adapter_codec(tp: Any) -> _Codec:
    adapter = TypeAdapter(tp)
    return _Codec(
        load=adapter.validate_json,
        dump=lambda value: adapter.dump_json(value, by_alias=True, warnings=False).decode(),
    )


def _load_deal_room(raw: dict[str, Any]) -> DealRoom:
    # Records are re-normalized on the way in so rooms written by older
    # versions gain any fields added since.
    title = raw.get('title') or 'New Deal'
    return DealRoom.model_validate({**raw, 'data': normalize(raw.get('data'), title)})


def _load_deals(raw: str) -> list[DealRoom]:
    rooms = json.loads(raw)
    if not isinstance(rooms, list):
        raise ValueError('deals slice is not a list')
    if not all(isinstance(room, dict) for room in rooms):
        raise ValueError('deals slice holds a non-object room')
    return [_load_deal_room(room) for room in rooms]


def _dump_deals(rooms: list[DealRoom]) -> str:
    return json.dumps([room.to_json_dict() for room in rooms])


def _load_view(raw: str) -> ViewMode:
    value = json.loads(raw)
    # The single-deal view was folded into the pipeline view.
    if value == 'deal':
        return ViewMode.PIPELINE
    return ViewMode(value)


_CODECS: dict[StateSlice, _Codec] = {
    StateSlice.AGENTS: _adapter_codec(list[Agent]),
    StateSlice.DEALS: _Codec(load=_load_deals, dump=_dump_deals),
    StateSlice.MESSAGES: _adapter_codec(list[Message]),
    StateSlice.LOGS: _adapter_codec(list[StepRecord]),
    StateSlice.PORTFOLIO: _adapter_codec(list[PortfolioCompany]),
    StateSlice.FIRM_PROFILE: _adapter_codec(FirmProfile),
    StateSlice.CURRENT_VIEW: _Codec(load=_load_view, dump=lambda view: json.dumps(view.value)),
}


def _initial_messages(profile: FirmProfile) -> list[Message]:
    return [
        Message(
            id='0',
            role='system',
            content=(
                'Deal team initialized.\n'
                f'Active Mandate: {profile.fund_name} ({profile.fund_type}) '
                f'targeting {", ".join(profile.target_sectors)}.'
            ),
            sender='SYSTEM',
        )
    ]


# =============================================================================
# StateStore
# =============================================================================


class StateStore:
    """
    Named state slices backed by a key-value store.

    Usage:
        state = StateStore(FileKeyValueStore('.deal_team'))
        state.hydrate()
        state.add_message('user', 'Find me a vertical SaaS target')
    """

    def __init__(self, kv: KeyValueStore, key_prefix: str = 'dealteam_'):
        self.kv = kv
        self.key_prefix = key_prefix
        self._set_defaults()

    def _set_defaults(self) -> None:
        self.agents: list[Agent] = default_agents()
        self.firm_profile: FirmProfile = FirmProfile()
        self.deals: list[DealRoom] = []
        self.messages: list[Message] = _initial_messages(self.firm_profile)
        self.logs: list[StepRecord] = []
        self.portfolio: list[PortfolioCompany] = []
        self.current_view: ViewMode = ViewMode.PIPELINE

        # Session-only state, never persisted
        self.active_deal_id: str | None = None
        self.is_processing: bool = False

    def key(self, state_slice: StateSlice | str) -> str:
        name = state_slice.value if isinstance(state_slice, StateSlice) else state_slice
        return f'{self.key_prefix}{name}'

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _read(self, state_slice: StateSlice) -> Any | None:
        """Deserialized slice value, or None when missing or unreadable."""
        key = self.key(state_slice)
        try:
            raw = self.kv.get(key)
        except Exception as exc:
            logger.warning('state.read_failed', key=key, error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return _CODECS[state_slice].load(raw)
        except Exception as exc:
            logger.warning('state.deserialize_failed', key=key, error=str(exc))
            return None

    def hydrate(self) -> 'StateStore':
        """Load every slice from the store, falling back to defaults."""
        self.agents = self._read(StateSlice.AGENTS) or default_agents()
        self.firm_profile = self._read(StateSlice.FIRM_PROFILE) or FirmProfile()

        deals = self._read(StateSlice.DEALS)
        if deals is None:
            # An unreadable deals key is never overwritten by a migration.
            deals = self._migrate_legacy_deal() if self._key_absent(StateSlice.DEALS) else []
        self.deals = deals

        messages = self._read(StateSlice.MESSAGES)
        self.messages = messages if messages is not None else _initial_messages(self.firm_profile)
        self.logs = self._read(StateSlice.LOGS) or []
        self.portfolio = self._read(StateSlice.PORTFOLIO) or []
        self.current_view = self._read(StateSlice.CURRENT_VIEW) or ViewMode.PIPELINE

        logger.info(
            'state.hydrated',
            deals=len(self.deals),
            messages=len(self.messages),
            logs=len(self.logs),
            portfolio=len(self.portfolio),
        )
        return self

    def _key_absent(self, state_slice: StateSlice) -> bool:
        """True only when the slice key is known not to exist."""
        try:
            return self.kv.get(self.key(state_slice)) is None
        except Exception:
            return False

    def _migrate_legacy_deal(self) -> list[DealRoom]:
        """Wrap a single legacy deal record into the deal collection shape."""
        key = self.key(LEGACY_DEAL_KEY)
        try:
            raw = self.kv.get(key)
            legacy = json.loads(raw) if raw else None
        except Exception as exc:
            logger.warning('state.legacy_read_failed', key=key, error=str(exc))
            return []

        if not isinstance(legacy, dict) or not legacy.get('companyName'):
            return []

        title = str(legacy['companyName'])
        now = _utcnow()
        try:
            room = DealRoom(
                id=LEGACY_DEAL_ID,
                title=title,
                stage=DealStage.DILIGENCE,
                data=normalize(legacy, title),
                created_at=now,
                last_updated=now,
                tags=['Migrated'],
            )
        except Exception as exc:
            logger.warning('state.legacy_migration_failed', key=key, error=str(exc))
            return []

        self.deals = [room]
        self._persist(StateSlice.DEALS)
        logger.info('state.legacy_deal_migrated', title=title)
        return self.deals

    def _persist(self, state_slice: StateSlice) -> None:
        """Best-effort write-back of one slice."""
        key = self.key(state_slice)
        value = getattr(self, state_slice.name.lower())
        try:
            self.kv.set(key, _CODECS[state_slice].dump(value))
        except Exception as exc:
            logger.warning('state.persist_failed', key=key, error=str(exc))

    def reset(self) -> None:
        """Clear all durable keys and restart from defaults."""
        try:
            self.kv.clear()
        except Exception as exc:
            logger.warning('state.clear_failed', error=str(exc))
        self._set_defaults()
        logger.info('state.reset')

    # -------------------------------------------------------------------------
    # Agents
    # -------------------------------------------------------------------------

    def agent(self, role: AgentRole) -> Agent | None:
        return next((a for a in self.agents if a.role == role), None)

    def update_agent(
        self,
        role: AgentRole,
        status: AgentStatus | None = None,
        current_task: str | None = None,
    ) -> None:
        for agent in self.agents:
            if agent.role == role:
                if status is not None:
                    agent.status = status
                if current_task is not None:
                    agent.current_task = current_task
        self._persist(StateSlice.AGENTS)

    def update_all_agents(self, status: AgentStatus, current_task: str | None = None) -> None:
        for agent in self.agents:
            agent.status = status
            if current_task is not None:
                agent.current_task = current_task
        self._persist(StateSlice.AGENTS)

    # -------------------------------------------------------------------------
    # Step log
    # -------------------------------------------------------------------------

    def append_log(self, record: StepRecord) -> None:
        self.logs.append(record)
        self._persist(StateSlice.LOGS)

    def logs_for_trace(self, trace_id: str) -> list[StepRecord]:
        """Every step of one run, in order."""
        return [r for r in self.logs if r.trace_id == trace_id]

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    def add_message(
        self,
        role: MessageRole,
        content: str,
        sender: str | None = None,
        attachments: list[MessageAttachment] | None = None,
        input_attachments: list[FileAttachment] | None = None,
        suggested_actions: list[str] | None = None,
    ) -> Message:
        """Append a message tagged with the active deal."""
        message = Message(
            id=new_id(),
            deal_id=self.active_deal_id,
            role=role,
            content=content,
            sender=sender,
            attachments=attachments or [],
            input_attachments=input_attachments or [],
            suggested_actions=suggested_actions or [],
        )
        self.messages.append(message)
        self._persist(StateSlice.MESSAGES)
        return message

    def active_messages(self) -> list[Message]:
        """Global messages plus those of the active deal room."""
        if self.active_deal_id:
            return [m for m in self.messages if m.deal_id in (None, self.active_deal_id)]
        return [m for m in self.messages if m.deal_id is None]

    # -------------------------------------------------------------------------
    # Deals
    # -------------------------------------------------------------------------

    def get_deal(self, deal_id: str | None) -> DealRoom | None:
        if deal_id is None:
            return None
        return next((d for d in self.deals if d.id == deal_id), None)

    @property
    def active_deal(self) -> DealRoom | None:
        return self.get_deal(self.active_deal_id)

    def create_deal(
        self,
        record: DealRecord,
        title: str | None = None,
        stage: DealStage = DealStage.SOURCING,
    ) -> DealRoom:
        """Add a new deal room for ``record`` and make it active."""
        room = DealRoom(
            id=new_id(),
            title=title or record.company_name,
            stage=stage,
            data=record,
        )
        self.deals.append(room)
        self.active_deal_id = room.id
        self._persist(StateSlice.DEALS)
        return room

    def update_deal(self, deal_id: str, mutate: Callable[[DealRoom], None]) -> DealRoom | None:
        """Apply ``mutate`` to one deal room in place and persist the deals slice."""
        room = self.get_deal(deal_id)
        if room is None:
            logger.warning('state.deal_not_found', deal_id=deal_id)
            return None
        mutate(room)
        room.last_updated = _utcnow()
        self._persist(StateSlice.DEALS)
        return room

    def commit_deal_record(
        self,
        record: DealRecord,
        title: str | None = None,
        stage: DealStage | None = None,
    ) -> DealRoom:
        """
        Store a freshly structured record.

        Creates the deal room on first commit; later commits merge the new
        fields into the active room's record and append to its deliverables.
        """
        room = self.active_deal
        if room is None:
            return self.create_deal(record, title=title, stage=stage or DealStage.SOURCING)

        def merge(target: DealRoom) -> None:
            merged = record.model_copy(
                update={'deliverables': [*target.data.deliverables, *record.deliverables]}
            )
            target.data = merged
            if title:
                target.title = title
            if stage is not None:
                target.stage = stage

        self.update_deal(room.id, merge)
        return room

    # -------------------------------------------------------------------------
    # Portfolio, profile, view
    # -------------------------------------------------------------------------

    def extend_portfolio(self, companies: list[PortfolioCompany]) -> None:
        self.portfolio.extend(companies)
        self._persist(StateSlice.PORTFOLIO)

    def set_firm_profile(self, profile: FirmProfile) -> None:
        self.firm_profile = profile
        self._persist(StateSlice.FIRM_PROFILE)

    def set_view(self, view: ViewMode) -> None:
        self.current_view = view
        self.active_deal_id = None
        self._persist(StateSlice.CURRENT_VIEW)
