"""
Configuration management for the Deal Team orchestrator.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class Config:
    """Configuration settings loaded from environment."""

    # OpenAI
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')

    # Model routing: reasoning model for the MD, analyst model for deep dives
    # and structuring, fast model for everything else.
    REASONING_MODEL: str = os.getenv('DEAL_TEAM_REASONING_MODEL', 'o4-mini')
    ANALYST_MODEL: str = os.getenv('DEAL_TEAM_ANALYST_MODEL', 'gpt-4.1')
    FAST_MODEL: str = os.getenv('DEAL_TEAM_FAST_MODEL', 'gpt-4.1-mini')
    IMAGE_MODEL: str = os.getenv('DEAL_TEAM_IMAGE_MODEL', 'gpt-image-1')
    IMAGE_FALLBACK_MODEL: str = os.getenv('DEAL_TEAM_IMAGE_FALLBACK_MODEL', 'dall-e-3')

    # Generation limits
    REASONING_BUDGET: int = int(os.getenv('DEAL_TEAM_REASONING_BUDGET', '1024'))
    STRUCTURING_MAX_TOKENS: int = int(os.getenv('DEAL_TEAM_STRUCTURING_MAX_TOKENS', '8192'))

    # State persistence
    STATE_DIR: str = os.getenv('DEAL_TEAM_STATE_DIR', str(_project_root / '.deal_team'))
    KEY_PREFIX: str = os.getenv('DEAL_TEAM_KEY_PREFIX', 'dealteam_')

    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def validate(cls) -> list[str]:
        """Names of settings that are missing or unusable; empty when ready to run."""
        problems = [] if cls.OPENAI_API_KEY else ['OPENAI_API_KEY']
        if cls.REASONING_BUDGET <= 0:
            problems.append('DEAL_TEAM_REASONING_BUDGET')
        if cls.STRUCTURING_MAX_TOKENS <= 0:
            problems.append('DEAL_TEAM_STRUCTURING_MAX_TOKENS')
        return problems


# Singleton config instance
config = Config()
