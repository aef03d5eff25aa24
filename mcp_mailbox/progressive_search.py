"""
Progressive Search - 단계적 메일 검색

검색 전략을 순서대로 시도하여 처음으로 결과가 나온 전략의 결과를 반환

전략 순서 (DEFAULT_SEARCH_STRATEGIES):
    1. filter-from-exact          : 발신자 주소 정확히 일치 ($filter, 메일함 전체)
    2. filter-subject-startswith  : 제목 접두사 ($filter)
    3. kql-combined-search        : 모든 텍스트 조건을 KQL로 결합 ($search)
    4. kql-single-term-<field>    : subject, from, to, query 각각 단독 KQL
    5. boolean-filters-only       : 불리언 필터만 (결과가 비어도 그대로 반환)

오류 처리:
    - GraphAuthError: 즉시 전파
    - GraphApiError: 시도 기록에 남기고 다음 전략으로 진행
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, TYPE_CHECKING

from .graph_api_client import GraphApiError, GraphAuthError
from .graph_query_params import (
    QueryParams,
    ORDER_BY_RECEIVED_DESC,
    escape_odata_string,
    build_kql_clause,
    build_base_params,
    add_boolean_filters,
    add_boolean_filters_to_filter,
)
from .mailbox_types import (
    SearchTerms,
    FilterTerms,
    AttemptOutcome,
    StrategyAttempt,
    SearchAttemptLog,
    SearchResult,
)

if TYPE_CHECKING:
    from core.protocols import GraphApiProtocol

logger = logging.getLogger(__name__)

MAILBOX_MESSAGES_PATH = "me/messages"
CONSISTENCY_HEADERS = {"ConsistencyLevel": "eventual"}

# KQL 결합 순서
KQL_COMBINED_FIELDS = ("query", "subject", "from", "to")
# 단독 KQL 시도 순서
KQL_SINGLE_TERM_FIELDS = ("subject", "from", "to", "query")


@dataclass(frozen=True)
class SearchStrategy:
    """
    검색 전략 서술자

    Attributes:
        name: 시도 기록에 남는 태그
        precondition: 이 전략을 시도할지 여부
        build_params: 쿼리 파라미터 생성 (max_count 포함)
        path: 고정 경로 (None이면 검색 대상 폴더 엔드포인트)
        headers: 추가 요청 헤더
        terminal: True이면 결과가 비어도 그대로 반환
    """
    name: str
    precondition: Callable[[SearchTerms, FilterTerms], bool]
    build_params: Callable[[SearchTerms, FilterTerms, int], QueryParams]
    path: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    terminal: bool = False


def _term_value(search_terms: SearchTerms, term: str) -> Optional[str]:
    if term == "from":
        return search_terms.from_address
    return getattr(search_terms, term)


def _from_is_address(search_terms: SearchTerms, filter_terms: FilterTerms) -> bool:
    return bool(search_terms.from_address and "@" in search_terms.from_address)


def _build_from_exact_params(search_terms: SearchTerms, filter_terms: FilterTerms, max_count: int) -> QueryParams:
    escaped_from = escape_odata_string(search_terms.from_address).lower()
    params = build_base_params(max_count)
    params["$filter"] = f"sender/emailAddress/address eq '{escaped_from}'"
    params["$count"] = "true"
    return add_boolean_filters_to_filter(params, filter_terms)


def _has_subject(search_terms: SearchTerms, filter_terms: FilterTerms) -> bool:
    return bool(search_terms.subject)


def _build_subject_startswith_params(search_terms: SearchTerms, filter_terms: FilterTerms, max_count: int) -> QueryParams:
    params = build_base_params(max_count, order_by=ORDER_BY_RECEIVED_DESC)
    params["$filter"] = f"startswith(subject,'{escape_odata_string(search_terms.subject)}')"
    return add_boolean_filters_to_filter(params, filter_terms)


def _has_text_terms(search_terms: SearchTerms, filter_terms: FilterTerms) -> bool:
    return search_terms.has_text_terms()


def _build_combined_kql_params(search_terms: SearchTerms, filter_terms: FilterTerms, max_count: int) -> QueryParams:
    clauses = []
    for term in KQL_COMBINED_FIELDS:
        value = _term_value(search_terms, term)
        if not value:
            continue
        # 결합 검색에서는 query를 따옴표 없이 그대로 사용
        clauses.append(value if term == "query" else build_kql_clause(term, value))

    params = build_base_params(max_count, order_by=ORDER_BY_RECEIVED_DESC)
    params["$search"] = " ".join(clauses)
    return add_boolean_filters(params, filter_terms)


def _single_term_strategy(term: str) -> SearchStrategy:
    def precondition(search_terms: SearchTerms, filter_terms: FilterTerms) -> bool:
        return bool(_term_value(search_terms, term))

    def build_params(search_terms: SearchTerms, filter_terms: FilterTerms, max_count: int) -> QueryParams:
        params = build_base_params(max_count, order_by=ORDER_BY_RECEIVED_DESC)
        params["$search"] = build_kql_clause(term, _term_value(search_terms, term))
        return add_boolean_filters(params, filter_terms)

    return SearchStrategy(
        name=f"kql-single-term-{term}",
        precondition=precondition,
        build_params=build_params,
    )


def _has_boolean_filters(search_terms: SearchTerms, filter_terms: FilterTerms) -> bool:
    return filter_terms.has_any()


def _build_boolean_only_params(search_terms: SearchTerms, filter_terms: FilterTerms, max_count: int) -> QueryParams:
    params = build_base_params(max_count, order_by=ORDER_BY_RECEIVED_DESC)
    return add_boolean_filters(params, filter_terms)


DEFAULT_SEARCH_STRATEGIES = (
    SearchStrategy(
        name="filter-from-exact",
        precondition=_from_is_address,
        build_params=_build_from_exact_params,
        path=MAILBOX_MESSAGES_PATH,
        headers=CONSISTENCY_HEADERS,
    ),
    SearchStrategy(
        name="filter-subject-startswith",
        precondition=_has_subject,
        build_params=_build_subject_startswith_params,
    ),
    SearchStrategy(
        name="kql-combined-search",
        precondition=_has_text_terms,
        build_params=_build_combined_kql_params,
    ),
    *(_single_term_strategy(term) for term in KQL_SINGLE_TERM_FIELDS),
    SearchStrategy(
        name="boolean-filters-only",
        precondition=_has_boolean_filters,
        build_params=_build_boolean_only_params,
        terminal=True,
    ),
)


class ProgressiveSearchPlanner:
    """전략 테이블을 순서대로 실행하는 검색기"""

    def __init__(
        self,
        graph_client: "GraphApiProtocol",
        strategies: Sequence[SearchStrategy] = DEFAULT_SEARCH_STRATEGIES,
    ):
        self.graph_client = graph_client
        self.strategies = tuple(strategies)

    async def search(
        self,
        endpoint: str,
        search_terms: Optional[SearchTerms],
        filter_terms: Optional[FilterTerms],
        max_count: int,
    ) -> SearchResult:
        """
        단계적 검색 실행

        Args:
            endpoint: 대상 폴더의 messages 엔드포인트
            search_terms: 텍스트 조건
            filter_terms: 불리언 필터
            max_count: 최대 결과 수

        Returns:
            SearchResult (items + 시도 기록)

        Raises:
            GraphAuthError: 인증 실패
        """
        search_terms = search_terms or SearchTerms()
        filter_terms = filter_terms or FilterTerms()
        attempt_log = SearchAttemptLog()

        for strategy in self.strategies:
            if not strategy.precondition(search_terms, filter_terms):
                continue

            params = strategy.build_params(search_terms, filter_terms, max_count)
            path = strategy.path or endpoint
            logger.info(f"Search strategy {strategy.name}: {path}")

            try:
                items = await self.graph_client.call_paginated(
                    path,
                    params=params,
                    max_count=max_count,
                    headers=dict(strategy.headers) or None,
                )
            except GraphAuthError:
                raise
            except GraphApiError as e:
                logger.warning(f"Search strategy {strategy.name} failed ({e.kind}): {e}")
                attempt_log.record(StrategyAttempt(
                    strategy=strategy.name,
                    outcome=AttemptOutcome.ERROR,
                    error_kind=e.kind,
                    error_message=str(e),
                ))
                continue

            outcome = AttemptOutcome.OK if items else AttemptOutcome.EMPTY
            attempt_log.record(StrategyAttempt(
                strategy=strategy.name,
                outcome=outcome,
                item_count=len(items),
            ))

            if items or strategy.terminal:
                logger.info(f"Search finished with {strategy.name}: {len(items)} item(s)")
                return SearchResult(items=items, attempt_log=attempt_log)

        attempt_log.failed = True
        logger.info(f"All search strategies exhausted: {attempt_log.strategies}")
        return SearchResult(items=[], attempt_log=attempt_log)


async def progressive_search(
    graph_client: "GraphApiProtocol",
    endpoint: str,
    search_terms: Optional[SearchTerms],
    filter_terms: Optional[FilterTerms],
    max_count: int,
) -> SearchResult:
    """기본 전략 테이블로 한 번 검색"""
    planner = ProgressiveSearchPlanner(graph_client)
    return await planner.search(endpoint, search_terms, filter_terms, max_count)
