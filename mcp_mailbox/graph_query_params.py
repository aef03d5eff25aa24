"""
Graph Query Params - OData 쿼리 파라미터 빌더
$filter, $search, $orderby, $select, $top 파라미터 dict 생성

역할:
    - OData 문자열 리터럴 이스케이프
    - KQL 절 생성
    - 불리언 필터 조건을 기존 $filter에 병합 (기존 조건 보존)

모든 함수는 입력 dict를 변경하지 않고 새 dict를 반환
"""

from typing import Any, Dict, List, Optional

from .mailbox_types import EMAIL_SELECT_FIELDS, FilterTerms

QueryParams = Dict[str, Any]

# Graph 한 페이지 최대 크기
MAX_PAGE_SIZE = 50
ORDER_BY_RECEIVED_DESC = "receivedDateTime desc"


def escape_odata_string(value: str) -> str:
    """OData 문자열 리터럴 이스케이프 (' -> '')"""
    return value.replace("'", "''")


def build_kql_clause(field: str, value: str) -> str:
    """
    KQL 절 생성

    Args:
        field: subject, from, to 또는 query (query는 필드 없이 따옴표만)
        value: 검색 값 (큰따옴표는 이스케이프하지 않음)

    Returns:
        'field:"value"' 또는 '"value"'
    """
    if field == "query":
        return f'"{value}"'
    return f'{field}:"{value}"'


def build_base_params(max_count: int, order_by: Optional[str] = None) -> QueryParams:
    """
    모든 검색 전략에 공통인 파라미터

    Args:
        max_count: 요청 최대 개수
        order_by: 정렬 ($orderby), None이면 생략

    Returns:
        $top, $select (+ $orderby) 파라미터
    """
    params: QueryParams = {
        "$top": min(MAX_PAGE_SIZE, max_count),
        "$select": EMAIL_SELECT_FIELDS,
    }
    if order_by:
        params["$orderby"] = order_by
    return params


def build_boolean_conditions(filter_terms: Optional[FilterTerms]) -> List[str]:
    """True로 지정된 불리언 필터를 $filter 조건 목록으로 변환"""
    conditions: List[str] = []
    if filter_terms is None:
        return conditions

    if filter_terms.has_attachments is True:
        conditions.append("hasAttachments eq true")
    if filter_terms.unread_only is True:
        conditions.append("isRead eq false")

    return conditions


def add_boolean_filters(params: QueryParams, filter_terms: Optional[FilterTerms]) -> QueryParams:
    """
    $search 기반 전략용 - 불리언 조건만으로 $filter 설정

    기존 $filter는 보지 않음 (호출 측에서 다른 $filter를 쓰지 않을 때만 사용)

    Args:
        params: 기존 파라미터
        filter_terms: 불리언 필터

    Returns:
        새 파라미터 dict
    """
    merged = dict(params)
    conditions = build_boolean_conditions(filter_terms)
    if conditions:
        merged["$filter"] = " and ".join(conditions)
    return merged


def add_boolean_filters_to_filter(params: QueryParams, filter_terms: Optional[FilterTerms]) -> QueryParams:
    """
    $filter 기반 전략용 - 기존 $filter를 괄호로 감싸고 and로 연결

    Example:
        add_boolean_filters_to_filter({"$filter": "a eq 1"}, FilterTerms(has_attachments=True))
        -> {"$filter": "(a eq 1) and hasAttachments eq true"}

    Args:
        params: 기존 파라미터
        filter_terms: 불리언 필터

    Returns:
        새 파라미터 dict
    """
    merged = dict(params)
    conditions = build_boolean_conditions(filter_terms)
    if not conditions:
        return merged

    additional = " and ".join(conditions)
    existing = merged.get("$filter")
    if existing:
        merged["$filter"] = f"({existing}) and {additional}"
    else:
        merged["$filter"] = additional
    return merged
