"""
Tests for the DealTeamOrchestrator flows.

Every service is an AsyncMock so the sequencing, state updates and failure
handling can be checked without any model call.

Run with: pytest tests/test_orchestrator.py -v
"""

from unittest.mock import AsyncMock

import pytest

from deal_team.errors import (
    DiligenceError,
    PipelineBusyError,
    PipelineError,
    SourcingError,
    StrategyError,
)
from deal_team.models.deal import DealStage, DeliverableType, Slide
from deal_team.models.messages import FileAttachment
from deal_team.models.pipeline import AgentRole, AgentStatus
from deal_team.models.portfolio import PortfolioCompany
from deal_team.pipeline import (
    DealStructurer,
    DealTeamOrchestrator,
    DeepDiveResult,
    DesignStudio,
    DiligenceAnalyst,
    MandateStrategist,
    RunIntent,
    TargetSourcer,
)
from deal_team.pipeline.normalizer import normalize
from deal_team.store import StateStore

IMAGE_URI = 'data:image/png;base64,iVBORw0KGgo='


@pytest.fixture
def services(sample_deal_payload):
    """Mocked services returning a successful sourcing run."""
    strategist = AsyncMock(spec=MandateStrategist)
    strategist.get_strategy.return_value = 'Target founder-led HVAC platforms in the Midwest.'
    strategist.final_opinion.return_value = 'GO. Strong recurring base at a fair multiple.'

    sourcer = AsyncMock(spec=TargetSourcer)
    sourcer.scout_targets.return_value = ['Acme Field Services', 'Beta HVAC', 'Gamma Air']
    sourcer.select_target.return_value = 'Acme Field Services'
    sourcer.deep_dive.return_value = DeepDiveResult(
        text='Acme has ~$80M revenue.', sources=['https://news.example.com/acme']
    )
    sourcer.verify_location.return_value = ['https://maps.example.com/acme']

    structurer = AsyncMock(spec=DealStructurer)

    async def structure(company_name, raw_data, candidates=None, portfolio=None, fund_name='the fund'):
        record = normalize(sample_deal_payload, company_name)
        record.candidates_analyzed = list(candidates or [])
        return record

    structurer.generate_structure.side_effect = structure

    analyst = AsyncMock(spec=DiligenceAnalyst)
    analyst.analyze_documents.return_value = {'companyName': 'Docu Corp', 'revenue': 40}
    analyst.ingest_portfolio.return_value = [
        PortfolioCompany(id='p1', name='Alpha', sector='Software', revenue=30, ebitda=8),
        PortfolioCompany(id='p2', name='Beta', sector='Healthcare', revenue=50, ebitda=11),
    ]

    designer = AsyncMock(spec=DesignStudio)
    designer.generate_concept_image.return_value = IMAGE_URI
    designer.generate_deliverable_content.return_value = [
        Slide(title='Overview', content_points=['Route-dense platform']),
        Slide(title='Financials', content_points=['$12M EBITDA']),
    ]
    designer.generate_slide_design.return_value = IMAGE_URI

    return {
        'strategist': strategist,
        'sourcer': sourcer,
        'structurer': structurer,
        'analyst': analyst,
        'designer': designer,
    }


@pytest.fixture
def team(state: StateStore, services) -> DealTeamOrchestrator:
    return DealTeamOrchestrator(state, **services)


@pytest.fixture
def pdf() -> FileAttachment:
    return FileAttachment(name='cim.pdf', type='application/pdf', data='data:application/pdf;base64,JVBERi0=')


class TestConstruction:
    """Services are either injected or built from a client."""

    def test_requires_client_when_services_missing(self, state: StateStore):
        with pytest.raises(ValueError):
            DealTeamOrchestrator(state)

    def test_all_services_injected(self, team: DealTeamOrchestrator, services):
        assert team.sourcer is services['sourcer']
        assert team.runner.state is team.state


class TestSourcingFlow:
    """Plain text request to a committed deal room."""

    @pytest.mark.asyncio
    async def test_successful_run(self, team: DealTeamOrchestrator, state: StateStore, services):
        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert result.success
        assert result.intent == RunIntent.SOURCING
        assert result.company_name == 'Acme Field Services'
        assert result.candidates == ['Acme Field Services', 'Beta HVAC', 'Gamma Air']
        assert result.image_url == IMAGE_URI
        assert result.opinion.startswith('GO')

        assert len(state.deals) == 1
        room = state.deals[0]
        assert room.id == result.deal_id
        assert state.active_deal_id == room.id
        assert room.stage == DealStage.SOURCING
        assert room.data.location == 'HQ Verified via Maps'
        assert room.data.grounding_urls == [
            'https://news.example.com/acme',
            'https://maps.example.com/acme',
        ]
        assert room.data.candidates_analyzed == result.candidates
        assert state.is_processing is False

    @pytest.mark.asyncio
    async def test_services_called_with_run_data(self, team: DealTeamOrchestrator, state: StateStore, services):
        state.extend_portfolio([PortfolioCompany(id='p1', name='Alpha', ebitda=8)])

        await team.handle_user_message('Find me an HVAC roll-up')

        services['sourcer'].scout_targets.assert_awaited_once_with(
            'Target founder-led HVAC platforms in the Midwest.', state.firm_profile.fund_name
        )
        candidates, context = services['sourcer'].select_target.await_args.args
        assert context.startswith('Find me an HVAC roll-up\n\n')
        assert state.firm_profile.fund_name in context

        args = services['structurer'].generate_structure.await_args
        assert args.args[0] == 'Acme Field Services'
        assert args.args[1] == 'Acme has ~$80M revenue.'
        assert [c.name for c in args.args[3]] == ['Alpha']

        services['designer'].generate_concept_image.assert_awaited_once_with(
            'Acme Field Services Industrials logo'
        )

    @pytest.mark.asyncio
    async def test_conversation_and_log(self, team: DealTeamOrchestrator, state: StateStore):
        result = await team.handle_user_message('Find me an HVAC roll-up')

        user, strategy, opinion = state.messages[-3:]
        assert user.role == 'user'
        assert strategy.sender == 'Athena (MD)'
        assert opinion.deal_id == result.deal_id
        assert opinion.attachments[0].url == IMAGE_URI
        assert opinion.suggested_actions[0] == 'Create Teaser for Acme Field Services'

        logs = state.logs_for_trace(result.trace_id)
        assert len(logs) == len(state.logs)
        messages = [entry.message for entry in logs]
        assert 'Market Scan & Sourcing (Live Web) - Completed' in messages
        assert 'Identified candidates: Acme Field Services, Beta HVAC, Gamma Air' in messages
        comps = next(e for e in logs if e.message == 'Comparable Set Analysis (Simulated)')
        assert comps.role == AgentRole.COMPS
        assert comps.latency_ms == 150
        assert messages[-1] == 'Formulating Investment Opinion - Completed'

    @pytest.mark.asyncio
    async def test_stage_timings(self, team: DealTeamOrchestrator):
        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert set(result.stage_timings) == {
            'strategy', 'scouting', 'selection', 'deep_dive',
            'structuring', 'location', 'concept_image', 'opinion',
        }
        assert result.to_dict()['has_image'] is True

    @pytest.mark.asyncio
    async def test_no_image_no_attachment(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['designer'].generate_concept_image.return_value = None

        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert result.success
        assert result.image_url is None
        assert state.messages[-1].attachments == []

    @pytest.mark.asyncio
    async def test_no_map_links_keeps_location(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['sourcer'].verify_location.return_value = []

        await team.handle_user_message('Find me an HVAC roll-up')

        assert state.deals[0].data.location == 'Columbus, OH'


class TestSourcingFailures:
    """A raising step aborts the run; committed state is kept."""

    @pytest.mark.asyncio
    async def test_zero_candidates(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['sourcer'].scout_targets.return_value = []

        result = await team.handle_user_message('Find me a unicorn')

        assert not result.success
        assert 'Scout returned 0 targets' in result.error
        services['structurer'].generate_structure.assert_not_awaited()
        assert state.deals == []
        assert {a.status for a in state.agents} == {AgentStatus.ERROR}
        assert state.messages[-1].role == 'system'
        assert state.messages[-1].content.startswith('Pipeline Execution Failed: Scout returned 0 targets')
        assert state.is_processing is False

    @pytest.mark.asyncio
    async def test_strategy_failure(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['strategist'].get_strategy.side_effect = StrategyError('MD Strategy Generation Failed: boom')

        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert result.error == 'MD Strategy Generation Failed: boom'
        services['sourcer'].scout_targets.assert_not_awaited()
        failed = state.logs[-1]
        assert failed.status == AgentStatus.ERROR
        assert failed.message == 'FAILED: Analyzing Mandate & Strategy'

    @pytest.mark.asyncio
    async def test_location_failure_is_fatal(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['sourcer'].verify_location.side_effect = SourcingError('Location Verification Failed: down')

        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert not result.success
        assert state.deals == []
        services['designer'].generate_concept_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_opinion_failure_keeps_deal(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['strategist'].final_opinion.side_effect = StrategyError('Opinion Generation Failed: x')

        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert not result.success
        assert len(state.deals) == 1
        assert result.deal_id == state.deals[0].id

    @pytest.mark.asyncio
    async def test_next_run_after_failure(self, team: DealTeamOrchestrator, state: StateStore, services):
        services['sourcer'].scout_targets.return_value = []
        await team.handle_user_message('Find me a unicorn')

        services['sourcer'].scout_targets.return_value = ['Acme Field Services']
        result = await team.handle_user_message('Find me an HVAC roll-up')

        assert result.success


class TestBusyGuard:
    """Only one run at a time."""

    @pytest.mark.asyncio
    async def test_rejects_concurrent_run(self, team: DealTeamOrchestrator, state: StateStore, services):
        state.is_processing = True

        with pytest.raises(PipelineBusyError):
            await team.handle_user_message('Find me an HVAC roll-up')

        services['strategist'].get_strategy.assert_not_awaited()
        assert state.messages[-1].role == 'system'

    @pytest.mark.asyncio
    async def test_guard_covers_portfolio_ingestion(self, team: DealTeamOrchestrator, state: StateStore, pdf):
        state.is_processing = True

        with pytest.raises(PipelineBusyError):
            await team.ingest_portfolio([pdf])


class TestDocumentFlow:
    """Attachments select the diligence flow."""

    @pytest.mark.asyncio
    async def test_successful_run(self, team: DealTeamOrchestrator, state: StateStore, services, pdf):
        result = await team.handle_user_message('Review this CIM', [pdf])

        assert result.success
        assert result.intent == RunIntent.DOCUMENT_ANALYSIS
        room = state.deals[0]
        assert room.stage == DealStage.DILIGENCE
        assert room.title == 'Docu Corp'
        services['sourcer'].scout_targets.assert_not_awaited()

        args = services['structurer'].generate_structure.await_args.args
        assert args[0] == 'Docu Corp'
        assert '"companyName": "Docu Corp"' in args[1]
        assert args[2] == []

        assert state.messages[-1].suggested_actions == [
            'Create Pitch Deck', 'Generate One Pager', 'Export LBO Model'
        ]
        user_message = next(m for m in state.messages if m.role == 'user')
        assert user_message.input_attachments[0].name == 'cim.pdf'

    @pytest.mark.asyncio
    async def test_new_room_announced(self, team: DealTeamOrchestrator, state: StateStore, pdf):
        await team.handle_user_message('Review this CIM', [pdf])

        contents = [m.content for m in state.messages]
        assert 'Starting new Diligence Room for document analysis...' in contents
        assert 'Documents detected. Activating Diligence Agent for analysis...' in contents

    @pytest.mark.asyncio
    async def test_documents_merge_into_active_deal(self, team: DealTeamOrchestrator, state: StateStore, pdf):
        sourced = await team.handle_user_message('Find me an HVAC roll-up')

        result = await team.handle_user_message('Here is the CIM', [pdf])

        assert len(state.deals) == 1
        assert result.deal_id == sourced.deal_id
        assert state.deals[0].stage == DealStage.DILIGENCE
        assert 'Starting new Diligence Room for document analysis...' not in [
            m.content for m in state.messages
        ]

    @pytest.mark.asyncio
    async def test_extraction_failure(self, team: DealTeamOrchestrator, state: StateStore, services, pdf):
        services['analyst'].analyze_documents.side_effect = DiligenceError(
            'Document Analysis Failed: Failed to extract company name from document'
        )

        result = await team.handle_user_message('Review this CIM', [pdf])

        assert result.error.endswith('Failed to extract company name from document')
        assert state.deals == []


class TestPortfolioIngestion:
    """Portfolio documents extend the portfolio."""

    @pytest.mark.asyncio
    async def test_success(self, team: DealTeamOrchestrator, state: StateStore, pdf):
        result = await team.ingest_portfolio([pdf])

        assert result.success
        assert result.companies_added == 2
        assert [c.name for c in state.portfolio] == ['Alpha', 'Beta']
        assert state.messages[-1].content == 'Successfully onboarded 2 companies to Portfolio Command.'
        assert state.is_processing is False

    @pytest.mark.asyncio
    async def test_failure(self, team: DealTeamOrchestrator, state: StateStore, services, pdf):
        services['analyst'].ingest_portfolio.side_effect = DiligenceError(
            'Portfolio Ingestion Failed: Failed to parse portfolio array.'
        )

        result = await team.ingest_portfolio([pdf])

        assert not result.success
        assert state.portfolio == []
        assert state.messages[-1].content == 'Portfolio ingestion failed. See logs.'
        assert state.is_processing is False


class TestDeliverables:
    """Deliverables render against the active deal room."""

    @pytest.mark.asyncio
    async def test_requires_active_deal(self, team: DealTeamOrchestrator):
        with pytest.raises(PipelineError):
            await team.generate_deliverable(DeliverableType.TEASER)

    @pytest.mark.asyncio
    async def test_renders_slides(self, team: DealTeamOrchestrator, state: StateStore, services):
        await team.handle_user_message('Find me an HVAC roll-up')

        result = await team.generate_deliverable(DeliverableType.TEASER)

        assert result.success
        deliverables = state.active_deal.data.deliverables
        assert len(deliverables) == 1
        deliverable = deliverables[0]
        assert deliverable.id == result.deliverable_id
        assert deliverable.status == 'completed'
        assert deliverable.title == 'Acme Field Services - Teaser'
        assert [s.image_url for s in deliverable.slides] == [IMAGE_URI, IMAGE_URI]
        assert services['designer'].generate_slide_design.await_count == 2
        assert state.agent(AgentRole.DESIGN).status == AgentStatus.IDLE
        assert state.messages[-1].content.startswith('Teaser for Acme Field Services has been generated')

    @pytest.mark.asyncio
    async def test_failed_render_keeps_slide_without_image(
        self, team: DealTeamOrchestrator, state: StateStore, services
    ):
        await team.handle_user_message('Find me an HVAC roll-up')
        services['designer'].generate_slide_design.side_effect = [None, IMAGE_URI]

        await team.generate_deliverable(DeliverableType.PITCH_DECK)

        slides = state.active_deal.data.deliverables[0].slides
        assert [s.image_url for s in slides] == [None, IMAGE_URI]

    @pytest.mark.asyncio
    async def test_outline_failure(self, team: DealTeamOrchestrator, state: StateStore, services):
        from deal_team.errors import DesignError

        await team.handle_user_message('Find me an HVAC roll-up')
        services['designer'].generate_deliverable_content.side_effect = DesignError(
            'Deliverable Content Failed: timeout'
        )

        result = await team.generate_deliverable(DeliverableType.CIM)

        assert result.error == 'Deliverable Content Failed: timeout'
        assert state.active_deal.data.deliverables == []
        assert state.is_processing is False
        assert state.agent(AgentRole.DESIGN).status == AgentStatus.IDLE
