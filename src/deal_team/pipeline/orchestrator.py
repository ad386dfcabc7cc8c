"""
Deal team orchestrator.

Runs the fixed agent sequences for each user intent:

Sourcing flow (plain text request):
1. MD: mandate check and search strategy
2. Scout: web-grounded candidate search (zero candidates aborts the run)
3. VP: target selection
4. Scout: deep dive, alongside a cosmetic comps entry
5. Associate: deal package (model, LBO, memo)
6. Scout: HQ verification (fatal on failure)
7. Commit the deal record
8. VP: concept image (best effort)
9. MD: final IC opinion

Document flow (request with attachments):
1. Diligence: document extraction
2. Associate: deal package from the extracted data
3. Commit the deal record at the Diligence stage
4. MD: final IC opinion

Every step runs through the StepRunner under one trace id. Any raising
step aborts the run; whatever was already committed stays committed.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

import structlog

from ..clients.base import ModelClient
from ..errors import DealTeamError, NoCandidatesError, PipelineBusyError, PipelineError
from ..logging import PipelineTimer, logging_context
from ..models.deal import DealRecord, DealRoom, DealStage, Deliverable, DeliverableType
from ..models.messages import FileAttachment, MessageAttachment
from ..models.pipeline import AgentRole, AgentStatus, StepRecord, agent_name_for
from ..utils import generate_trace_id, new_id
from .design import DesignStudio
from .diligence import DiligenceAnalyst
from .sourcing import TargetSourcer
from .step_runner import StepRunner
from .strategy import MandateStrategist
from .structuring import DealStructurer

if TYPE_CHECKING:
    from ..store.state import StateStore

logger = structlog.get_logger(__name__)

T = TypeVar('T')

SYSTEM_SENDER = 'SYSTEM'

# Latency shown on the simulated comps entry.
COMPS_PLACEHOLDER_LATENCY_MS = 150

SOURCING_ACTIONS = ('Create Teaser for {company}', 'Run sensitivity analysis', 'Export CSV Model')
DOCUMENT_ACTIONS = ('Create Pitch Deck', 'Generate One Pager', 'Export LBO Model')
PORTFOLIO_ACTIONS = ('View Portfolio Dashboard', 'Benchmark Active Deals')


class RunIntent(str, Enum):
    SOURCING = 'sourcing'
    DOCUMENT_ANALYSIS = 'document_analysis'
    PORTFOLIO_INGESTION = 'portfolio_ingestion'
    DELIVERABLE = 'deliverable'


@dataclass
class RunResult:
    """Outcome of one user-triggered run."""

    trace_id: str
    intent: RunIntent

    deal_id: str | None = None
    company_name: str | None = None
    candidates: list[str] = field(default_factory=list)
    opinion: str | None = None
    image_url: str | None = None
    deliverable_id: str | None = None
    companies_added: int = 0

    error: str | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True if the run finished without aborting."""
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            'trace_id': self.trace_id,
            'intent': self.intent.value,
            'deal_id': self.deal_id,
            'company_name': self.company_name,
            'candidates': self.candidates,
            'has_image': self.image_url is not None,
            'deliverable_id': self.deliverable_id,
            'companies_added': self.companies_added,
            'success': self.success,
            'error': self.error,
            'stage_timings': self.stage_timings,
        }


@dataclass
class RunContext:
    """Mutable accumulator for one run, threaded through its steps."""

    trace_id: str
    prompt: str
    intent: RunIntent
    timer: PipelineTimer = field(default_factory=PipelineTimer)

    record: DealRecord | None = None
    deal_id: str | None = None
    candidates: list[str] = field(default_factory=list)
    opinion: str | None = None
    image_url: str | None = None
    deliverable_id: str | None = None
    companies_added: int = 0

    def result(self, error: str | None = None) -> RunResult:
        return RunResult(
            trace_id=self.trace_id,
            intent=self.intent,
            deal_id=self.deal_id,
            company_name=self.record.company_name if self.record is not None else None,
            candidates=list(self.candidates),
            opinion=self.opinion,
            image_url=self.image_url,
            deliverable_id=self.deliverable_id,
            companies_added=self.companies_added,
            error=error,
            stage_timings=self.timer.summary()['stages'],
        )


def _error_message(exc: BaseException) -> str:
    # The user-facing text leaves out the debugging context.
    if isinstance(exc, DealTeamError):
        return exc.message
    return str(exc)


class DealTeamOrchestrator:
    """
    Sequences the deal team agents against a shared StateStore.

    Usage:
        state = StateStore(FileKeyValueStore('.deal_team')).hydrate()
        team = DealTeamOrchestrator(state, OpenAIModelClient())
        result = await team.handle_user_message('Find a founder-led HVAC services business')
    """

    def __init__(
        self,
        state: StateStore,
        client: ModelClient | None = None,
        strategist: MandateStrategist | None = None,
        sourcer: TargetSourcer | None = None,
        structurer: DealStructurer | None = None,
        analyst: DiligenceAnalyst | None = None,
        designer: DesignStudio | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            state: Shared state container (agents, deals, messages, logs)
            client: Model client used to build any service not passed in
            strategist, sourcer, structurer, analyst, designer: Service overrides
        """
        services = (strategist, sourcer, structurer, analyst, designer)
        if client is None and any(service is None for service in services):
            raise ValueError('A model client is required unless every service is provided')

        self.state = state
        self.runner = StepRunner(state)
        self.strategist = strategist or MandateStrategist(client)
        self.sourcer = sourcer or TargetSourcer(client)
        self.structurer = structurer or DealStructurer(client)
        self.analyst = analyst or DiligenceAnalyst(client)
        self.designer = designer or DesignStudio(client)

    # =========================================================================
    # Entry points
    # =========================================================================

    async def handle_user_message(
        self,
        text: str,
        attachments: list[FileAttachment] | None = None,
    ) -> RunResult:
        """
        Run the flow matching the user's message.

        Attachments select the document flow; plain text the sourcing flow.
        A failed run is reported through the conversation (system message),
        the agent roster (everyone in error) and the returned RunResult.

        Raises:
            PipelineBusyError: Another run is in progress
        """
        self._acquire()
        self.state.add_message('user', text, input_attachments=attachments)

        intent = RunIntent.DOCUMENT_ANALYSIS if attachments else RunIntent.SOURCING
        ctx = RunContext(trace_id=generate_trace_id(), prompt=text, intent=intent)
        log = logger.bind(trace_id=ctx.trace_id, intent=intent.value)
        log.info('orchestrator.run_started')

        try:
            if attachments:
                await self.run_document_analysis(text, attachments, ctx.trace_id, ctx)
            else:
                await self.run_sourcing(text, ctx.trace_id, ctx)
        except Exception as exc:
            message = _error_message(exc)
            log.error('orchestrator.run_failed', error=message, error_type=type(exc).__name__)
            self.state.add_message(
                'system',
                f'Pipeline Execution Failed: {message}. \n\nCheck the System Log for details.',
                sender=SYSTEM_SENDER,
            )
            self.state.update_all_agents(AgentStatus.ERROR)
            return ctx.result(error=message)
        finally:
            self.state.is_processing = False

        log.info('orchestrator.run_completed', deal_id=ctx.deal_id, **ctx.timer.summary())
        return ctx.result()

    async def run_sourcing(
        self,
        prompt: str,
        trace_id: str,
        ctx: RunContext | None = None,
    ) -> RunResult:
        """
        Sourcing flow: from a free-text mandate to a committed deal and opinion.

        Raises:
            NoCandidatesError: The scout found nothing
            Exception: Whatever a failing step raised
        """
        ctx = ctx or RunContext(trace_id=trace_id, prompt=prompt, intent=RunIntent.SOURCING)
        profile = self.state.firm_profile
        md_name = agent_name_for(AgentRole.MD)

        with logging_context(trace_id=trace_id):
            strategy = await self._step(
                ctx, 'strategy', AgentRole.MD, 'Analyzing Mandate & Strategy',
                lambda: self.strategist.get_strategy(prompt, profile),
            )
            self.state.add_message('model', strategy, sender=md_name)

            self.state.update_agent(AgentRole.VP, AgentStatus.WORKING, 'Dispatching Scout Swarm...')
            candidates = await self._step(
                ctx, 'scouting', AgentRole.SCOUT, 'Market Scan & Sourcing (Live Web)',
                lambda: self.sourcer.scout_targets(strategy, profile.fund_name),
            )
            if not candidates:
                raise NoCandidatesError('Scout returned 0 targets. Try refining your search criteria.')
            ctx.candidates = candidates
            self._log_event(
                trace_id, AgentRole.SCOUT, f'Identified candidates: {", ".join(candidates)}'
            )

            self.state.update_agent(
                AgentRole.VP,
                AgentStatus.THINKING,
                f'Selecting best fit from: {len(candidates)} candidates...',
            )
            target = await self._step(
                ctx, 'selection', AgentRole.VP, 'Target Filtering & Selection',
                lambda: self.sourcer.select_target(
                    candidates, f'{prompt}\n\n{profile.format_mandate()}'
                ),
            )

            deep_dive, _ = await asyncio.gather(
                self._step(
                    ctx, 'deep_dive', AgentRole.SCOUT,
                    f'Triangulated Deep Dive: {target} (Financials/News/Benchmarks)',
                    lambda: self.sourcer.deep_dive(target),
                ),
                self._comps_placeholder(trace_id),
            )

            record = await self._step(
                ctx, 'structuring', AgentRole.ASSOCIATE,
                'Constructing LBO & Financial Models (Gap Filling Active)',
                lambda: self.structurer.generate_structure(
                    target,
                    deep_dive.text,
                    candidates,
                    self.state.portfolio,
                    fund_name=profile.fund_name,
                ),
            )
            ctx.record = record

            map_links = await self._step(
                ctx, 'location', AgentRole.SCOUT, 'HQ Location Verification',
                lambda: self.sourcer.verify_location(record.company_name),
            )
            record.grounding_urls = [*deep_dive.sources, *map_links]
            if map_links:
                record.location = 'HQ Verified via Maps'

            room = self._commit(ctx, record, title=record.company_name)

            with logging_context(deal_id=room.id):
                image_url = await self._step(
                    ctx, 'concept_image', AgentRole.VP, 'Generating Asset (Logo)',
                    lambda: self.designer.generate_concept_image(
                        f'{record.company_name} {record.sector} logo'
                    ),
                )
                ctx.image_url = image_url

                self.state.update_agent(
                    AgentRole.MD, AgentStatus.THINKING, 'Final Investment Committee Review...'
                )
                opinion = await self._step(
                    ctx, 'opinion', AgentRole.MD, 'Formulating Investment Opinion',
                    lambda: self.strategist.final_opinion(record, profile, prompt),
                )
                ctx.opinion = opinion

                attachments = [MessageAttachment(type='image', url=image_url)] if image_url else []
                self.state.add_message(
                    'model',
                    opinion,
                    sender=md_name,
                    attachments=attachments,
                    suggested_actions=[a.format(company=record.company_name) for a in SOURCING_ACTIONS],
                )

        return ctx.result()

    async def run_document_analysis(
        self,
        prompt: str,
        attachments: list[FileAttachment],
        trace_id: str,
        ctx: RunContext | None = None,
    ) -> RunResult:
        """
        Document flow: uploaded files to a committed Diligence-stage deal and opinion.

        Raises:
            DiligenceError: No company could be identified in the documents
            Exception: Whatever a failing step raised
        """
        ctx = ctx or RunContext(trace_id=trace_id, prompt=prompt, intent=RunIntent.DOCUMENT_ANALYSIS)
        profile = self.state.firm_profile

        with logging_context(trace_id=trace_id):
            if self.state.active_deal is None:
                self.state.add_message(
                    'system', 'Starting new Diligence Room for document analysis...', sender=SYSTEM_SENDER
                )
            self.state.add_message(
                'system',
                'Documents detected. Activating Diligence Agent for analysis...',
                sender=SYSTEM_SENDER,
            )

            analysis = await self._step(
                ctx, 'document_analysis', AgentRole.DILIGENCE,
                'Analyzing & Extracting Data from Documents',
                lambda: self.analyst.analyze_documents(attachments, prompt, profile.fund_name),
            )
            company_name = str(analysis['companyName'])

            record = await self._step(
                ctx, 'structuring', AgentRole.ASSOCIATE,
                'Building Financial Model from Extracted Data',
                lambda: self.structurer.generate_structure(
                    company_name,
                    json.dumps(analysis),
                    [],
                    self.state.portfolio,
                    fund_name=profile.fund_name,
                ),
            )
            ctx.record = record
            room = self._commit(ctx, record, title=company_name, stage=DealStage.DILIGENCE)

            with logging_context(deal_id=room.id):
                self.state.update_agent(
                    AgentRole.MD, AgentStatus.THINKING, 'Reviewing Diligence Findings...'
                )
                opinion = await self._step(
                    ctx, 'opinion', AgentRole.MD, 'Formulating Investment Opinion',
                    lambda: self.strategist.final_opinion(record, profile, prompt),
                )
                ctx.opinion = opinion
                self.state.add_message(
                    'model',
                    opinion,
                    sender=agent_name_for(AgentRole.MD),
                    suggested_actions=list(DOCUMENT_ACTIONS),
                )

        return ctx.result()

    async def ingest_portfolio(self, files: list[FileAttachment]) -> RunResult:
        """
        Add the companies described in ``files`` to the portfolio.

        Failures are reported in the conversation and the RunResult.

        Raises:
            PipelineBusyError: Another run is in progress
        """
        self._acquire()
        ctx = RunContext(trace_id=generate_trace_id(), prompt='', intent=RunIntent.PORTFOLIO_INGESTION)
        self.state.add_message(
            'system', f'Ingesting {len(files)} portfolio documents...', sender=SYSTEM_SENDER
        )

        try:
            with logging_context(trace_id=ctx.trace_id):
                companies = await self._step(
                    ctx, 'portfolio_ingestion', AgentRole.DILIGENCE,
                    'Parsing Portfolio Data & Normalizing Metrics',
                    lambda: self.analyst.ingest_portfolio(files, self.state.firm_profile.fund_name),
                )
        except Exception as exc:
            logger.error('orchestrator.portfolio_ingestion_failed', trace_id=ctx.trace_id, error=str(exc))
            self.state.add_message('system', 'Portfolio ingestion failed. See logs.', sender=SYSTEM_SENDER)
            return ctx.result(error=_error_message(exc))
        finally:
            self.state.is_processing = False

        self.state.extend_portfolio(companies)
        ctx.companies_added = len(companies)
        self.state.add_message(
            'system',
            f'Successfully onboarded {len(companies)} companies to Portfolio Command.',
            sender=SYSTEM_SENDER,
            suggested_actions=list(PORTFOLIO_ACTIONS),
        )
        return ctx.result()

    async def generate_deliverable(self, deliverable_type: DeliverableType) -> RunResult:
        """
        Draft and render a deliverable for the active deal.

        The deliverable is stored as ``rendering`` as soon as its outline
        exists; slide images are attached one by one and it is marked
        ``completed`` at the end. Slides whose render fails keep no image.

        Raises:
            PipelineBusyError: Another run is in progress
            PipelineError: No deal room is active
        """
        room = self.state.active_deal
        if room is None:
            raise PipelineError('Select a deal room before generating a deliverable')

        self._acquire()
        ctx = RunContext(trace_id=generate_trace_id(), prompt='', intent=RunIntent.DELIVERABLE)
        ctx.deal_id = room.id
        ctx.record = room.data
        fund_name = self.state.firm_profile.fund_name
        label = deliverable_type.value

        try:
            with logging_context(trace_id=ctx.trace_id, deal_id=room.id):
                self.state.update_agent(
                    AgentRole.DESIGN, AgentStatus.THINKING, f'Drafting content structure for {label}...'
                )
                slides = await self._step(
                    ctx, 'outline', AgentRole.DESIGN, f'Drafting {label} content',
                    lambda: self.designer.generate_deliverable_content(room.data, deliverable_type, fund_name),
                )

                deliverable = Deliverable(
                    id=new_id(),
                    type=deliverable_type,
                    title=f'{room.title} - {label}',
                    status='rendering',
                    slides=slides,
                )
                ctx.deliverable_id = deliverable.id
                self.state.update_deal(room.id, lambda r: r.data.deliverables.append(deliverable))

                for index, slide in enumerate(deliverable.slides, start=1):
                    image_url = await self._step(
                        ctx, f'slide_{index}', AgentRole.DESIGN,
                        f'Rendering visual for Slide {index}/{len(deliverable.slides)}',
                        lambda slide=slide: self.designer.generate_slide_design(slide, room.title, fund_name),
                    )
                    if image_url:
                        slide.image_url = image_url
                        self.state.update_deal(room.id, _no_change)

                deliverable.status = 'completed'
                self.state.update_deal(room.id, _no_change)
                self.state.add_message(
                    'system',
                    f'{label} for {room.title} has been generated. Check the Deliverables tab.',
                    sender=SYSTEM_SENDER,
                )
        except Exception as exc:
            logger.error(
                'orchestrator.deliverable_failed', trace_id=ctx.trace_id, type=label, error=str(exc)
            )
            return ctx.result(error=_error_message(exc))
        finally:
            self.state.update_agent(AgentRole.DESIGN, AgentStatus.IDLE)
            self.state.is_processing = False

        return ctx.result()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _acquire(self) -> None:
        if self.state.is_processing:
            raise PipelineBusyError('A pipeline run is already in progress')
        self.state.is_processing = True

    async def _step(
        self,
        ctx: RunContext,
        stage: str,
        role: AgentRole,
        description: str,
        work: Callable[[], Awaitable[T]],
    ) -> T:
        with ctx.timer.stage(stage):
            return await self.runner.run_step(role, description, work, ctx.trace_id)

    def _commit(
        self,
        ctx: RunContext,
        record: DealRecord,
        title: str,
        stage: DealStage | None = None,
    ) -> DealRoom:
        room = self.state.commit_deal_record(record, title=title, stage=stage)
        ctx.deal_id = room.id
        logger.info('orchestrator.deal_committed', deal_id=room.id, company=record.company_name)
        return room

    def _log_event(
        self,
        trace_id: str,
        role: AgentRole,
        message: str,
        latency_ms: int | None = None,
    ) -> None:
        """Completed log entry that did not come from a step."""
        self.state.append_log(
            StepRecord(
                id=new_id(),
                trace_id=trace_id,
                agent_name=agent_name_for(role),
                role=role,
                message=message,
                status=AgentStatus.COMPLETED,
                latency_ms=latency_ms,
            )
        )

    async def _comps_placeholder(self, trace_id: str) -> None:
        """Comps agent activity shown while the deep dive runs; no model call."""
        self.state.update_agent(AgentRole.COMPS, AgentStatus.WORKING, 'Spreading Multiples...')
        await asyncio.sleep(0)
        self._log_event(
            trace_id,
            AgentRole.COMPS,
            'Comparable Set Analysis (Simulated)',
            latency_ms=COMPS_PLACEHOLDER_LATENCY_MS,
        )
        self.state.update_agent(AgentRole.COMPS, AgentStatus.IDLE, 'Standby')


def _no_change(room: DealRoom) -> None:
    """update_deal() callback for changes already applied in place."""
