"""
Core Module - Protocol 정의

mcp_mailbox가 토큰 저장소와 HTTP 구현을 직접 의존하지 않도록 추상화.
"""

from .protocols import TokenProviderProtocol, GraphApiProtocol

__all__ = ['TokenProviderProtocol', 'GraphApiProtocol']
