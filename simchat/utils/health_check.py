"""
Health check utilities for the application.
"""

from typing import Any, Dict, Optional

from .bedrock_llm import BedrockLLM
from .config import config
from .logging_config import get_logger
from .partition_store import PartitionStore, create_store

logger = get_logger(__name__)


def get_health_status(store: Optional[PartitionStore] = None) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Args:
        store: Partition store to probe, built from config if None

    Returns:
        Dictionary with health status of each component
    """
    health_status = {}

    try:
        store = store or create_store(config.store)
        health_status['partition_store'] = {
            'healthy': store.health_check(),
            'service': 'Partition store',
            'backend': config.store.backend
        }
    except Exception as e:
        health_status['partition_store'] = {'healthy': False, 'service': 'Partition store', 'error': str(e)}

    # The reply collaborator is optional; only probe it when enabled.
    if config.reply.enabled:
        try:
            llm = BedrockLLM(config.bedrock_llm)
            health_status['bedrock_llm'] = {
                'healthy': llm.health_check(),
                'service': 'Amazon Bedrock LLM',
                'model': config.bedrock_llm.model_id
            }
        except Exception as e:
            health_status['bedrock_llm'] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    return health_status


def check_health(store: Optional[PartitionStore] = None) -> bool:
    """Check the health of all system components.

    Returns:
        True if all components are healthy, False otherwise
    """
    health_status = get_health_status(store)
    all_healthy = all(status.get('healthy', False) for status in health_status.values())

    if all_healthy:
        logger.info('All system components are healthy')
    else:
        logger.warning('Some system components are unhealthy')

    return all_healthy
