"""
Session Module - 토큰 저장소와 Graph 설정
"""

from .graph_config import GraphConfig, get_graph_config
from .token_store import TokenStore

__all__ = ['GraphConfig', 'get_graph_config', 'TokenStore']
