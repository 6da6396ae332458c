"""
Configuration management for storage, account rules, stories and the reply service.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass
class StoreConfig:
    """Configuration for the partition store backend."""
    backend: str  # 'sqlite' or 'memory'
    path: str


@dataclass
class AccountConfig:
    """Configuration for account creation rules."""
    identifier_digits: int
    min_secret_length: int


@dataclass
class StoryConfig:
    """Configuration for the shared story feed."""
    ttl_hours: int
    max_active_per_owner: int
    playback_seconds: float


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock LLM service."""
    region: str
    model_id: str
    max_tokens: int
    temperature: float
    retry_attempts: int
    retry_delay: float


@dataclass
class ReplyConfig:
    """Configuration for the automated reply collaborator."""
    enabled: bool
    fallback_text: str


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    store: StoreConfig
    account: AccountConfig
    story: StoryConfig
    bedrock_llm: BedrockLLMConfig
    reply: ReplyConfig
    mcp: MCPConfig


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    store_config = StoreConfig(backend=os.getenv('SIMCHAT_STORE_BACKEND', 'sqlite'),
                               path=os.getenv('SIMCHAT_STORE_PATH', os.path.join('data', 'simchat.db')))

    account_config = AccountConfig(identifier_digits=8,
                                   min_secret_length=int(os.getenv('SIMCHAT_MIN_SECRET_LENGTH', '4')))

    story_config = StoryConfig(ttl_hours=int(os.getenv('SIMCHAT_STORY_TTL_HOURS', '14')),
                               max_active_per_owner=int(os.getenv('SIMCHAT_STORY_MAX_ACTIVE', '15')),
                               playback_seconds=float(os.getenv('SIMCHAT_STORY_PLAYBACK_SECONDS', '5')))

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_id=os.getenv('BEDROCK_LLM_MODEL_ID', 'anthropic.claude-3-haiku-20240307-v1:0'),
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '512')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.7')),
                                          retry_attempts=int(os.getenv('BEDROCK_LLM_RETRY_ATTEMPTS', '3')),
                                          retry_delay=float(os.getenv('BEDROCK_LLM_RETRY_DELAY', '1.0')))

    reply_config = ReplyConfig(enabled=_env_bool('SIMCHAT_REPLY_ENABLED', 'false'),
                               fallback_text=os.getenv(
                                   'SIMCHAT_REPLY_FALLBACK',
                                   "Sorry, I'm having trouble connecting right now. Please try again later."))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'sse'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     store=store_config,
                     account=account_config,
                     story=story_config,
                     bedrock_llm=bedrock_llm_config,
                     reply=reply_config,
                     mcp=mcp_config)


# Global configuration instance
config = load_config()
