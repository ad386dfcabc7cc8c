"""
Data models for the Deal Team orchestrator.
"""

from .deal import (
    Comparable,
    DealPackage,
    DealRecord,
    DealRoom,
    DealStage,
    Deliverable,
    DeliverableType,
    FinancialModels,
    FinancialRow,
    FinancialSection,
    InvestmentMemo,
    LabeledAmount,
    LabeledText,
    LBODetailed,
    LBOModel,
    SensitivityExit,
    SensitivityRow,
    Slide,
)
from .extraction import DocumentAnalysis, PortfolioExtraction, SlideOutline, response_schema
from .messages import FileAttachment, Message, MessageAttachment
from .pipeline import (
    Agent,
    AgentRole,
    AgentStatus,
    ErrorDetail,
    StepRecord,
    agent_name_for,
    default_agents,
)
from .portfolio import FirmProfile, PortfolioCompany

__all__ = [
    # Deal record
    'Comparable',
    'DealPackage',
    'DealRecord',
    'DealRoom',
    'DealStage',
    'Deliverable',
    'DeliverableType',
    'FinancialModels',
    'FinancialRow',
    'FinancialSection',
    'InvestmentMemo',
    'LabeledAmount',
    'LabeledText',
    'LBODetailed',
    'LBOModel',
    'SensitivityExit',
    'SensitivityRow',
    'Slide',
    # Structured output targets
    'DocumentAnalysis',
    'PortfolioExtraction',
    'SlideOutline',
    'response_schema',
    # Conversation
    'FileAttachment',
    'Message',
    'MessageAttachment',
    # Pipeline
    'Agent',
    'AgentRole',
    'AgentStatus',
    'ErrorDetail',
    'StepRecord',
    'agent_name_for',
    'default_agents',
    # Portfolio
    'FirmProfile',
    'PortfolioCompany',
]
